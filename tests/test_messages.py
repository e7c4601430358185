import math

import pytest

from dbw_control.messages import (
    BrakeCmd,
    ControlCommand,
    Pose,
    SteeringCmd,
    ThrottleCmd,
    Velocity,
    Waypoint,
    parse_enabled,
)


def test_pose_from_yaw():
    pose = Pose.from_dict({"x": 1, "y": 2, "yaw": 0.5})
    assert pose == Pose(1.0, 2.0, 0.5)


def test_pose_from_quaternion():
    half = math.pi / 4
    pose = Pose.from_dict(
        {"x": 0.0, "y": 0.0, "orientation": {"x": 0.0, "y": 0.0, "z": math.sin(half), "w": math.cos(half)}}
    )
    assert pose.yaw == pytest.approx(math.pi / 2)


def test_pose_without_heading_raises():
    with pytest.raises(KeyError):
        Pose.from_dict({"x": 0.0, "y": 0.0})


def test_waypoint_defaults():
    wp = Waypoint.from_dict({"x": 3, "y": 4})
    assert wp == Waypoint(3.0, 4.0, yaw=0.0, speed=0.0)
    assert Waypoint.from_dict({"x": 0, "y": 0, "speed": 11.1}).speed == 11.1


def test_velocity_from_dict():
    assert Velocity.from_dict({"linear": 4.5}) == Velocity(4.5, 0.0)


def test_command_wire_format():
    assert SteeringCmd(0.2).to_dict() == {"steering_wheel_angle_cmd": 0.2, "enable": True}
    assert ThrottleCmd(0.4).to_dict() == {"pedal_cmd": 0.4, "pedal_cmd_type": 2, "enable": True}
    assert BrakeCmd(0.7).to_dict() == {"pedal_cmd": 0.7, "pedal_cmd_type": 3, "enable": True}


def test_is_throttle_uses_strict_sign():
    assert ControlCommand(0.0, 0.1).is_throttle
    assert not ControlCommand(0.0, 0.0).is_throttle
    assert not ControlCommand(0.0, -0.1).is_throttle


def test_parse_enabled():
    assert parse_enabled({"enabled": True}) is True
    assert parse_enabled({"data": False}) is False
    with pytest.raises(TypeError):
        parse_enabled({"enabled": "yes"})
    with pytest.raises(TypeError):
        parse_enabled({})
