"""
Input channels and publisher interfaces.

Inbound state arrives through single-slot, latest-value-wins channels that a
control tick reads once as a consistent snapshot. Outbound commands leave
through the ``Publisher`` interface, which hides the transport (WebSocket,
recording for tests, etc.).
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, List, Optional, Tuple, TypeVar

from .messages import Pose, Velocity, Waypoint

T = TypeVar("T")


class ChannelStatus(Enum):
    """Whether an input channel has ever received a value."""

    UNSET = "unset"
    READY = "ready"


class LatestValue(Generic[T]):
    """
    Single-slot holder keeping only the most recent value.

    Not synchronized on its own; ``InputBuffer`` guards all slots with one lock.
    """

    def __init__(self) -> None:
        self._value: Optional[T] = None
        self.status = ChannelStatus.UNSET

    def put(self, value: T) -> None:
        self._value = value
        self.status = ChannelStatus.READY

    @property
    def value(self) -> Optional[T]:
        return self._value


@dataclass(frozen=True)
class InputSnapshot:
    """Consistent view of all inputs taken at the start of a tick."""

    enabled: bool
    waypoints: Optional[Tuple[Waypoint, ...]]
    pose: Optional[Pose]
    velocity: Optional[Velocity]
    enabled_status: ChannelStatus
    waypoints_status: ChannelStatus
    pose_status: ChannelStatus
    velocity_status: ChannelStatus

    @property
    def all_ready(self) -> bool:
        """True when every channel has received at least one value."""
        return all(
            status is ChannelStatus.READY
            for status in (
                self.enabled_status,
                self.waypoints_status,
                self.pose_status,
                self.velocity_status,
            )
        )


class InputBuffer:
    """
    Latest-value slots for the four inbound channels.

    Writers may run on any thread; a single lock makes ``snapshot`` atomic with
    respect to every writer. Waypoints are copied into a tuple on write so the
    caller's list can be reused or mutated afterwards.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._enabled: LatestValue[bool] = LatestValue()
        self._waypoints: LatestValue[Tuple[Waypoint, ...]] = LatestValue()
        self._pose: LatestValue[Pose] = LatestValue()
        self._velocity: LatestValue[Velocity] = LatestValue()

    def put_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._enabled.put(bool(enabled))

    def put_waypoints(self, waypoints: List[Waypoint]) -> None:
        copied = tuple(waypoints)
        with self._lock:
            self._waypoints.put(copied)

    def put_pose(self, pose: Pose) -> None:
        with self._lock:
            self._pose.put(pose)

    def put_velocity(self, velocity: Velocity) -> None:
        with self._lock:
            self._velocity.put(velocity)

    def snapshot(self) -> InputSnapshot:
        with self._lock:
            return InputSnapshot(
                enabled=bool(self._enabled.value),
                waypoints=self._waypoints.value,
                pose=self._pose.value,
                velocity=self._velocity.value,
                enabled_status=self._enabled.status,
                waypoints_status=self._waypoints.status,
                pose_status=self._pose.status,
                velocity_status=self._velocity.status,
            )


class Publisher(ABC, Generic[T]):
    """
    Abstract outbound channel for one message type.

    Implementations: WebSocket (client.py), recording (tests), callback.
    ``publish`` must not block on I/O.
    """

    @abstractmethod
    def publish(self, message: T) -> None:
        """
        Publish a message.

        Args:
            message: Outbound command message
        """
        pass


class RecordingPublisher(Publisher[T]):
    """Publisher that keeps every message in memory."""

    def __init__(self) -> None:
        self.messages: List[T] = []

    def publish(self, message: T) -> None:
        self.messages.append(message)

    @property
    def last(self) -> Optional[T]:
        return self.messages[-1] if self.messages else None


class CallbackPublisher(Publisher[T]):
    """Publisher that forwards every message to a callable."""

    def __init__(self, callback: Callable[[T], None]) -> None:
        self._callback = callback

    def publish(self, message: T) -> None:
        self._callback(message)
