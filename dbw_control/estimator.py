"""Tracking error estimation from the fitted reference polynomial."""

import math
from typing import NamedTuple

import numpy.typing as npt


class TrackingErrors(NamedTuple):
    """Cross-track and heading error at the vehicle origin."""

    cte: float
    epsi: float


def tracking_errors(coeffs: npt.ArrayLike) -> TrackingErrors:
    """Derive cross-track and heading error from local-frame coefficients.

    The vehicle sits at the local origin facing +x, so the cross-track error is
    the polynomial at x = 0 (the constant term) and the heading error is the
    negative angle of the path tangent there, -atan(c1).

    Args:
        coeffs: Polynomial coefficients, lowest-order first (length >= 2).

    Returns:
        TrackingErrors(cte, epsi) with cte in meters and epsi in radians.

    Raises:
        ValueError: If fewer than two coefficients are given.
    """
    if len(coeffs) < 2:
        raise ValueError(f"Need at least 2 coefficients, got {len(coeffs)}")
    cte = float(coeffs[0])
    epsi = -math.atan(float(coeffs[1]))
    return TrackingErrors(cte=cte, epsi=epsi)
