"""Configuration parameters for the drive-by-wire MPC control loop.

This module centralizes all configuration parameters including:
- Physical vehicle parameters
- Latency compensation and curve fitting settings
- Control loop timing
- Stand-in optimizer gains
- Visualization settings
- WebSocket connection parameters

All parameters are documented with their purpose, units and valid ranges.
Runtime values are gathered into ``ControllerConfig``, which can be overlaid
from a YAML file at startup and is never re-read afterwards.
"""

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

# ============================================================================
# Physical Vehicle Parameters
# ============================================================================

VEHICLE_MASS = 1736.35
"""Vehicle mass including fuel and passengers (kg).
Carried for downstream torque conversion; not used by the tracking pipeline."""

WHEELBASE_LF = 2.67
"""Distance from the center of mass to the front axle (meters).

Single effective length of the kinematic bicycle model. Tuned against the
simulator vehicle so that a constant steering angle reproduces the observed
turning radius."""

MAX_STEERING_ANGLE = 0.436332
"""Steering angle limit used by the stand-in optimizer (radians, = 25°)."""


# ============================================================================
# Latency Compensation
# ============================================================================

LATENCY_SECONDS = 0.1
"""Actuation latency window (seconds).

Time between sensing and the moment the next command takes effect. The
vehicle state is forward-projected through this window before optimization.
"""

INVERT_STEERING = True
"""Convert the published steering command to the bicycle-model angle by
negation (δ = -steering).

The drive-by-wire steering command is positive for a left turn while the
optimizer's model angle is positive for a right turn."""


# ============================================================================
# Reference Curve Fitting
# ============================================================================

POLY_DEGREE = 3
"""Degree of the reference polynomial fitted in the vehicle frame.
A cubic captures lane curvature and its rate of change."""

WAYPOINT_WINDOW = 5
"""Number of waypoints taken from the nearest waypoint onwards (count).

Must satisfy ``WAYPOINT_WINDOW >= POLY_DEGREE + 2`` so the least-squares fit
keeps a one-sample margin over an exact interpolation."""

MAX_CONDITION_NUMBER = 1e10
"""Largest accepted condition number of the QR factor R (dimensionless).
Fits above this are treated as ill-conditioned and discarded."""


# ============================================================================
# Control Loop Timing
# ============================================================================

LOOP_RATE_HZ = 50.0
"""Fixed control loop rate (Hz). 50 Hz = 20 ms period, the DBW command rate."""


# ============================================================================
# Stand-in Optimizer (proportional-derivative feedback)
# ============================================================================

FEEDBACK_TARGET_SPEED = 10.0
"""Cruise speed tracked by the stand-in optimizer (m/s)."""

FEEDBACK_K_CTE = 0.25
"""Steering gain on cross-track error (rad/m, range: [0, 1])."""

FEEDBACK_K_EPSI = 1.0
"""Steering gain on heading error (dimensionless, range: [0, 2])."""

FEEDBACK_K_SPEED = 0.2
"""Actuation gain on speed error (1/(m/s), range: [0, 1])."""


# ============================================================================
# Plot and Terminal Colors
# ============================================================================

PLOT_ORANGE = "#f74823"
"""Cross-track error, brake commands and skipped-tick markers."""

PLOT_BLUE = "#2374f7"
"""Heading error, steering and throttle commands."""

PLOT_TAUPE = "#686a5f"
"""Neutral color for zero lines, edges and secondary traces."""

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for status lines (RGB: 35, 116, 247)."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""


# ============================================================================
# WebSocket Configuration
# ============================================================================

WS_URI = "ws://localhost:8765"
"""WebSocket endpoint of the vehicle bridge."""

WS_RETRY_DELAY_SECONDS = 1
"""Initial retry delay for failed WebSocket connections (seconds)."""

WS_MAX_RETRY_DELAY_SECONDS = 60
"""Maximum retry delay with exponential backoff (seconds)."""

WS_TIMEOUT_SECONDS = 5.0
"""Timeout for WebSocket message reception (seconds)."""

OUTBOUND_QUEUE_SIZE = 32
"""Maximum number of commands waiting to be sent (older ones are dropped when full)."""

RECORD_FLUSH_SECONDS = 0.5
"""Interval between writes of buffered run-recording rows (seconds)."""


@dataclass(frozen=True)
class ControllerConfig:
    """Startup configuration of the control loop.

    Defaults mirror the module constants above. Instances are immutable; use
    ``load_config`` or ``dataclasses.replace`` to derive variants.
    """

    vehicle_mass: float = VEHICLE_MASS
    latency: float = LATENCY_SECONDS
    wheelbase: float = WHEELBASE_LF
    poly_degree: int = POLY_DEGREE
    loop_rate_hz: float = LOOP_RATE_HZ
    waypoint_window: int = WAYPOINT_WINDOW
    invert_steering: bool = INVERT_STEERING
    max_condition_number: float = MAX_CONDITION_NUMBER
    ws_uri: str = WS_URI

    def __post_init__(self) -> None:
        if self.loop_rate_hz <= 0:
            raise ValueError(f"loop_rate_hz must be positive, got {self.loop_rate_hz}")
        if self.latency < 0:
            raise ValueError(f"latency must be non-negative, got {self.latency}")
        if self.wheelbase <= 0:
            raise ValueError(f"wheelbase must be positive, got {self.wheelbase}")
        if self.poly_degree < 1:
            raise ValueError(f"poly_degree must be at least 1, got {self.poly_degree}")
        if self.waypoint_window < 1:
            raise ValueError(f"waypoint_window must be at least 1, got {self.waypoint_window}")
        if self.waypoint_window < self.poly_degree + 2:
            raise ValueError(
                f"waypoint_window must be at least poly_degree + 2 = {self.poly_degree + 2}, "
                f"got {self.waypoint_window}"
            )

    @property
    def period(self) -> float:
        """Loop period in seconds."""
        return 1.0 / self.loop_rate_hz

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_config(config_path: Optional[Union[str, Path]] = None) -> ControllerConfig:
    """Load configuration, overlaying a YAML file on the defaults.

    Args:
        config_path: Path to a YAML mapping of ``ControllerConfig`` field names
            to values. If None, the defaults are returned.

    Returns:
        ControllerConfig with file values applied.

    Raises:
        ValueError: If the file is not valid YAML, is not a mapping, contains
            unknown keys, or holds values of the wrong type.
    """
    config = ControllerConfig()
    if config_path is None:
        return config

    path = Path(config_path)
    if not path.exists():
        logging.warning(f"Config file {path} not found. Using defaults.")
        return config

    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Config file {path} is not valid YAML: {e}") from e

    if data is None:
        return config
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(ControllerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys in {path}: {', '.join(unknown)}")

    try:
        return replace(config, **data)
    except TypeError as e:
        raise ValueError(f"Invalid value type in {path}: {e}") from e
