"""Coordinate frame utilities for the tracking pipeline.

This module converts the planner's global-frame waypoints into the
vehicle-centered, heading-aligned local frame:
- Finds the waypoint nearest to the vehicle
- Extracts a fixed-size waypoint window starting there
- Applies the rigid transform (translate by -position, rotate by -heading)
"""

import math
from typing import TYPE_CHECKING, Sequence, Tuple

import numpy as np
import numpy.typing as npt

from .exceptions import WaypointWindowError

if TYPE_CHECKING:
    from .messages import Waypoint


def yaw_from_quaternion(x: float, y: float, z: float, w: float) -> float:
    """Extract the heading (rotation about z) from a unit quaternion.

    Args:
        x, y, z, w: Quaternion components.

    Returns:
        Yaw angle in radians, in [-π, π].
    """
    return math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))


def closest_waypoint(path_x: np.ndarray, path_y: np.ndarray, x: float, y: float) -> int:
    """Find index of the waypoint closest to a global position.

    Args:
        path_x: Array of waypoint x coordinates
        path_y: Array of waypoint y coordinates
        x: Vehicle x position (m)
        y: Vehicle y position (m)

    Returns:
        Index of closest waypoint (lowest index on ties)

    Raises:
        WaypointWindowError: If there are no waypoints.
    """
    if len(path_x) == 0:
        raise WaypointWindowError("No waypoints available")
    distances = np.hypot(path_x - x, path_y - y)
    return int(np.argmin(distances))


def waypoint_window(
    waypoints: Sequence["Waypoint"], start: int, size: int
) -> Tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Copy ``size`` consecutive waypoints beginning at ``start``.

    Args:
        waypoints: Ordered global-frame waypoints.
        start: Index of the first waypoint in the window.
        size: Number of waypoints in the window.

    Returns:
        Tuple of (xs, ys) as freshly allocated arrays of length ``size``.

    Raises:
        WaypointWindowError: If the window would extend past the last waypoint.
    """
    if start < 0 or size < 1 or start + size > len(waypoints):
        raise WaypointWindowError(
            f"Waypoint window [{start}, {start + size}) exceeds {len(waypoints)} waypoints"
        )
    window = waypoints[start:start + size]
    xs = np.array([wp.x for wp in window], dtype=np.float64)
    ys = np.array([wp.y for wp in window], dtype=np.float64)
    return xs, ys


def global_to_local(
    px: float, py: float, psi: float, xs: npt.ArrayLike, ys: npt.ArrayLike
) -> Tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Transform global-frame points into the vehicle frame.

    The vehicle sits at the local origin facing +x:
        local_x = dx * cos(-psi) - dy * sin(-psi)
        local_y = dx * sin(-psi) + dy * cos(-psi)
    where dx = x - px, dy = y - py. Distances and angles are preserved.

    Args:
        px: Vehicle global x position (m)
        py: Vehicle global y position (m)
        psi: Vehicle heading (rad)
        xs: Global x coordinates of the points
        ys: Global y coordinates of the points

    Returns:
        Tuple of (local_x, local_y) arrays, same length as the input.

    Raises:
        WaypointWindowError: If no points are given.
        ValueError: If xs and ys differ in length.
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    if xs.shape != ys.shape:
        raise ValueError(f"x/y length mismatch: {xs.shape} vs {ys.shape}")
    if xs.size == 0:
        raise WaypointWindowError("At least one point is required")

    dx = xs - px
    dy = ys - py
    cos_psi = math.cos(-psi)
    sin_psi = math.sin(-psi)
    local_x = dx * cos_psi - dy * sin_psi
    local_y = dx * sin_psi + dy * cos_psi
    return local_x, local_y
