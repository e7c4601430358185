"""
Message Types

Inbound state messages (waypoints, pose, velocity) and outbound drive-by-wire
commands (steering, throttle, brake) exchanged with the transport layer.
"""

from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Dict, Optional

from .transform import yaw_from_quaternion


class ThrottleCmdType(IntEnum):
    """Throttle pedal command interpretation."""

    NONE = 0
    PEDAL = 1
    PERCENT = 2


class BrakeCmdType(IntEnum):
    """Brake pedal command interpretation."""

    NONE = 0
    PEDAL = 1
    PERCENT = 2
    TORQUE = 3


@dataclass(frozen=True)
class Waypoint:
    """Reference waypoint in the global frame."""

    x: float
    y: float
    yaw: float = 0.0
    speed: float = 0.0  # Planner reference speed (m/s)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Waypoint":
        return Waypoint(
            x=float(data["x"]),
            y=float(data["y"]),
            yaw=float(data.get("yaw", 0.0)),
            speed=float(data.get("speed", 0.0)),
        )


@dataclass(frozen=True)
class Pose:
    """Vehicle pose in the global frame."""

    x: float
    y: float
    yaw: float

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Pose":
        """Build a pose from a message carrying either ``yaw`` or a quaternion.

        Args:
            data: Mapping with ``x``, ``y`` and either ``yaw`` (radians) or
                ``orientation`` as ``{x, y, z, w}``.

        Raises:
            KeyError: If neither heading representation is present.
        """
        if "yaw" in data:
            yaw = float(data["yaw"])
        else:
            q = data["orientation"]
            yaw = yaw_from_quaternion(
                float(q["x"]), float(q["y"]), float(q["z"]), float(q["w"])
            )
        return Pose(x=float(data["x"]), y=float(data["y"]), yaw=yaw)


@dataclass(frozen=True)
class Velocity:
    """Vehicle velocity in its own frame."""

    linear: float
    angular: float = 0.0

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Velocity":
        return Velocity(
            linear=float(data["linear"]),
            angular=float(data.get("angular", 0.0)),
        )


@dataclass(frozen=True)
class ControlCommand:
    """
    First action returned by the optimizer.

    Positive ``actuation`` is a throttle percentage, non-positive ``actuation``
    is brake torque. The sign is the dispatch discriminant.
    """

    steering: float
    actuation: float

    @property
    def is_throttle(self) -> bool:
        return self.actuation > 0.0


@dataclass(frozen=True)
class SteeringCmd:
    steering_wheel_angle_cmd: float
    enable: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ThrottleCmd:
    pedal_cmd: float
    pedal_cmd_type: ThrottleCmdType = ThrottleCmdType.PERCENT
    enable: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["pedal_cmd_type"] = int(self.pedal_cmd_type)
        return data


@dataclass(frozen=True)
class BrakeCmd:
    pedal_cmd: float
    pedal_cmd_type: BrakeCmdType = BrakeCmdType.TORQUE
    enable: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["pedal_cmd_type"] = int(self.pedal_cmd_type)
        return data


def parse_enabled(data: Dict[str, Any]) -> bool:
    """Read the drive-by-wire enable flag from a message payload."""
    value: Optional[Any] = data.get("enabled", data.get("data"))
    if not isinstance(value, bool):
        raise TypeError(f"Invalid enabled flag: expected bool, got {type(value).__name__}")
    return value
