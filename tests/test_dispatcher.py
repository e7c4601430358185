import pytest

from dbw_control.channels import RecordingPublisher
from dbw_control.dispatcher import CommandDispatcher
from dbw_control.messages import BrakeCmd, BrakeCmdType, ControlCommand, ThrottleCmd, ThrottleCmdType


@pytest.fixture
def publishers():
    return RecordingPublisher(), RecordingPublisher(), RecordingPublisher()


@pytest.fixture
def dispatcher(publishers):
    return CommandDispatcher(*publishers)


@pytest.mark.parametrize("actuation", [-5.0, -1.0, -1e-9, -0.0, 0.0, 1e-9, 0.3, 1.0, 7.5])
def test_exactly_one_actuation_command(dispatcher, publishers, actuation):
    steering, throttle, brake = publishers

    dispatcher.dispatch(ControlCommand(steering=0.1, actuation=actuation))

    assert len(steering.messages) == 1
    assert len(throttle.messages) + len(brake.messages) == 1
    if actuation > 0:
        assert throttle.last.pedal_cmd == actuation
    else:
        assert brake.last.pedal_cmd == abs(actuation)


def test_throttle_is_percent_type(dispatcher, publishers):
    _, throttle, _ = publishers
    pedal = dispatcher.dispatch(ControlCommand(steering=0.0, actuation=0.4))
    assert isinstance(pedal, ThrottleCmd)
    assert throttle.last.pedal_cmd_type is ThrottleCmdType.PERCENT
    assert throttle.last.enable


def test_brake_is_torque_type_with_magnitude(dispatcher, publishers):
    _, _, brake = publishers
    pedal = dispatcher.dispatch(ControlCommand(steering=0.0, actuation=-0.7))
    assert isinstance(pedal, BrakeCmd)
    assert brake.last.pedal_cmd_type is BrakeCmdType.TORQUE
    assert brake.last.pedal_cmd == pytest.approx(0.7)
    assert brake.last.enable


def test_steering_carries_optimizer_output(dispatcher, publishers):
    steering, _, _ = publishers
    dispatcher.dispatch(ControlCommand(steering=-0.25, actuation=0.1))
    assert steering.last.steering_wheel_angle_cmd == -0.25
    assert steering.last.enable


def test_zero_actuation_brakes():
    assert isinstance(CommandDispatcher.actuation_command(0.0), BrakeCmd)
