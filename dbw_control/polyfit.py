"""Least-squares polynomial fitting of the local reference path.

The fit solves the Vandermonde system through a QR factorization instead of
the normal equations, which squares the condition number.
"""

from typing import Union

import numpy as np
import numpy.typing as npt

from .config import MAX_CONDITION_NUMBER, POLY_DEGREE
from .exceptions import FitDegreeError, IllConditionedFitError


def polyfit(
    xs: npt.ArrayLike,
    ys: npt.ArrayLike,
    degree: int = POLY_DEGREE,
    max_condition_number: float = MAX_CONDITION_NUMBER,
) -> npt.NDArray[np.float64]:
    """Fit a polynomial of fixed degree to sample points.

    Builds A[i, j] = xs[i] ** j, factors A = QR and solves R c = Qᵀ y.

    Args:
        xs: Sample x coordinates (length n)
        ys: Sample y coordinates (length n)
        degree: Polynomial degree d. Requires d >= 1 and d < n - 1.
        max_condition_number: Largest accepted condition number of R.

    Returns:
        Coefficients of length d + 1, lowest-order term first.

    Raises:
        FitDegreeError: If lengths differ or degree >= n - 1.
        IllConditionedFitError: If R is near-singular or the result is not finite.
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    if xs.ndim != 1 or xs.shape != ys.shape:
        raise FitDegreeError(f"x/y samples must be 1-D and equal length: {xs.shape} vs {ys.shape}")

    n = xs.size
    if degree < 1 or degree >= n - 1:
        raise FitDegreeError(f"Degree {degree} needs at least {degree + 2} samples, got {n}")

    if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
        raise IllConditionedFitError("Sample points contain non-finite values")

    A = np.vander(xs, degree + 1, increasing=True)
    Q, R = np.linalg.qr(A)

    condition = np.linalg.cond(R)
    if not np.isfinite(condition) or condition > max_condition_number:
        raise IllConditionedFitError(f"Fit is ill-conditioned (cond(R) = {condition:.3g})")

    coeffs = np.linalg.solve(R, Q.T @ ys)
    if not np.all(np.isfinite(coeffs)):
        raise IllConditionedFitError("Fit produced non-finite coefficients")
    return coeffs


def polyeval(coeffs: npt.ArrayLike, x: Union[float, npt.ArrayLike]) -> Union[float, np.ndarray]:
    """Evaluate a polynomial with lowest-order coefficient first.

    Args:
        coeffs: Polynomial coefficients [c0, c1, ..., cd]
        x: Scalar or array of evaluation points

    Returns:
        Polynomial value(s) at x, same shape as x.
    """
    coeffs = np.asarray(coeffs, dtype=np.float64)
    result = np.polynomial.polynomial.polyval(x, coeffs)
    if np.ndim(result) == 0:
        return float(result)
    return result
