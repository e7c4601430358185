"""
Kinematic bicycle model for latency compensation.

This module forward-projects the vehicle state through the actuation latency
window so the optimizer plans from the state at the moment the next command
actually takes effect.
"""

import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from .config import LATENCY_SECONDS, WHEELBASE_LF


@dataclass(frozen=True)
class VehicleState:
    """Latency-compensated vehicle state in the local frame."""

    x: float
    y: float
    psi: float
    v: float
    cte: float
    epsi: float

    def to_array(self) -> npt.NDArray[np.float64]:
        """Return the state as [x, y, psi, v, cte, epsi]."""
        return np.array([self.x, self.y, self.psi, self.v, self.cte, self.epsi], dtype=np.float64)


def project_state(
    v: float,
    cte: float,
    epsi: float,
    delta: float,
    throttle: float,
    latency: float = LATENCY_SECONDS,
    wheelbase: float = WHEELBASE_LF,
) -> VehicleState:
    """
    Project the local-frame state through the latency window.

    The vehicle starts at the local origin with zero heading and the previous
    command is held constant over the window (zero-order hold):
        psi'  = delta
        x'    = v * cos(psi') * L
        y'    = v * sin(psi') * L
        cte'  = cte + v * sin(epsi) * L
        epsi' = epsi + v * delta * L / Lf
        psi'' = psi' + v * delta * L / Lf
        v'    = v + throttle * L

    Args:
        v: Current speed (m/s)
        cte: Cross-track error at the origin (m)
        epsi: Heading error at the origin (rad)
        delta: Previous steering angle in model convention (rad)
        throttle: Previous signed actuation value
        latency: Latency window L (s)
        wheelbase: Front axle distance Lf (m)

    Returns:
        VehicleState at the end of the latency window.

    Example:
        >>> project_state(v=10.0, cte=0.0, epsi=0.0, delta=0.0, throttle=0.0)
        VehicleState(x=1.0, y=0.0, psi=0.0, v=10.0, cte=0.0, epsi=0.0)
    """
    psi = delta
    x = v * math.cos(psi) * latency
    y = v * math.sin(psi) * latency
    yaw_change = v * delta * latency / wheelbase
    cte = cte + v * math.sin(epsi) * latency
    epsi = epsi + yaw_change
    psi = psi + yaw_change
    v = v + throttle * latency

    return VehicleState(x=x, y=y, psi=psi, v=v, cte=cte, epsi=epsi)
