"""Optimizer interface and output validation.

The model-predictive solver itself lives outside this package. Anything that
implements ``Optimizer.solve`` can drive the loop; ``FeedbackOptimizer`` is a
small proportional-derivative stand-in used for bench runs and tests.
"""

import math
from abc import ABC, abstractmethod

import numpy as np
import numpy.typing as npt

from .config import (
    FEEDBACK_K_CTE,
    FEEDBACK_K_EPSI,
    FEEDBACK_K_SPEED,
    FEEDBACK_TARGET_SPEED,
    MAX_STEERING_ANGLE,
)
from .exceptions import OptimizerError
from .messages import ControlCommand


class Optimizer(ABC):
    """
    Abstract finite-horizon controller.

    ``solve`` receives the latency-compensated state [x, y, psi, v, cte, epsi]
    and the reference polynomial coefficients, and returns a control vector
    whose first two entries are [steering angle, signed actuation]. Further
    entries (predicted trajectory, etc.) are ignored. Must be bounded-time.
    """

    @abstractmethod
    def solve(
        self, state: npt.NDArray[np.float64], coeffs: npt.NDArray[np.float64]
    ) -> npt.ArrayLike:
        pass


def validate_solution(solution: npt.ArrayLike) -> ControlCommand:
    """Check an optimizer result and extract the first control action.

    Args:
        solution: Control vector returned by ``Optimizer.solve``.

    Returns:
        ControlCommand built from the first two entries.

    Raises:
        OptimizerError: If there are fewer than two entries or they are not finite.
    """
    try:
        values = np.asarray(solution, dtype=np.float64).ravel()
    except (TypeError, ValueError) as e:
        raise OptimizerError(f"Optimizer output is not numeric: {e}") from e

    if values.size < 2:
        raise OptimizerError(f"Optimizer returned {values.size} values, need at least 2")

    steering, actuation = float(values[0]), float(values[1])
    if not (math.isfinite(steering) and math.isfinite(actuation)):
        raise OptimizerError(f"Optimizer returned non-finite control ({steering}, {actuation})")

    return ControlCommand(steering=steering, actuation=actuation)


class FeedbackOptimizer(Optimizer):
    """Proportional-derivative stand-in for the MPC solver.

    Control law:
        steering  = clamp(k_epsi * epsi - k_cte * cte, ±max_steering)
        actuation = clamp(k_speed * (target_speed - v), ±1)

    Steering uses the solver convention (positive = right turn); the loop
    negates it into the bicycle-model angle when ``invert_steering`` is set.
    """

    def __init__(
        self,
        target_speed: float = FEEDBACK_TARGET_SPEED,
        k_cte: float = FEEDBACK_K_CTE,
        k_epsi: float = FEEDBACK_K_EPSI,
        k_speed: float = FEEDBACK_K_SPEED,
        max_steering: float = MAX_STEERING_ANGLE,
    ):
        self.target_speed = target_speed
        self.k_cte = k_cte
        self.k_epsi = k_epsi
        self.k_speed = k_speed
        self.max_steering = max_steering

    def solve(
        self, state: npt.NDArray[np.float64], coeffs: npt.NDArray[np.float64]
    ) -> npt.NDArray[np.float64]:
        v, cte, epsi = float(state[3]), float(state[4]), float(state[5])

        # Path left of the vehicle (cte > 0) needs a left turn, i.e. negative output
        steering = -(self.k_cte * cte) + self.k_epsi * epsi
        steering = max(-self.max_steering, min(self.max_steering, steering))

        actuation = self.k_speed * (self.target_speed - v)
        actuation = max(-1.0, min(1.0, actuation))

        return np.array([steering, actuation], dtype=np.float64)
