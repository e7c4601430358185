import asyncio
import math
from dataclasses import replace

import numpy as np
import pytest

from dbw_control.channels import RecordingPublisher
from dbw_control.config import ControllerConfig
from dbw_control.controller import DbwController, LoopState
from dbw_control.dispatcher import CommandDispatcher
from dbw_control.exceptions import OptimizerError
from dbw_control.messages import BrakeCmd, ControlCommand, Pose, ThrottleCmd, Velocity, Waypoint
from dbw_control.optimizer import Optimizer


class FixedOptimizer(Optimizer):
    """Returns a fixed control vector and remembers its inputs."""

    def __init__(self, solution):
        self.solution = solution
        self.calls = []

    def solve(self, state, coeffs):
        self.calls.append((np.array(state), np.array(coeffs)))
        return self.solution


class FailingOptimizer(Optimizer):
    def solve(self, state, coeffs):
        raise RuntimeError("did not converge")


def make_controller(optimizer=None, config=None):
    steering, throttle, brake = RecordingPublisher(), RecordingPublisher(), RecordingPublisher()
    controller = DbwController(
        optimizer=optimizer or FixedOptimizer([0.05, 0.5]),
        dispatcher=CommandDispatcher(steering, throttle, brake),
        config=config or ControllerConfig(),
    )
    return controller, steering, throttle, brake


def feed_straight_road(controller, n=5, speed=10.0):
    controller.on_waypoints([Waypoint(float(i + 1), 0.0) for i in range(n)])
    controller.on_pose(Pose(0.0, 0.0, 0.0))
    controller.on_velocity(Velocity(speed))
    controller.on_enabled(True)


def test_idle_until_all_inputs_ready():
    controller, steering, throttle, brake = make_controller()
    controller.on_enabled(True)
    controller.on_pose(Pose(0.0, 0.0, 0.0))

    assert controller.step() is None
    assert controller.state is LoopState.IDLE
    assert not steering.messages and not throttle.messages and not brake.messages


def test_straight_road_scenario():
    optimizer = FixedOptimizer([0.05, 0.5])
    controller, steering, throttle, brake = make_controller(optimizer)
    feed_straight_road(controller)

    command = controller.step()

    assert controller.state is LoopState.ACTIVE
    assert command == ControlCommand(0.05, 0.5)
    state, coeffs = optimizer.calls[0]
    np.testing.assert_allclose(coeffs, np.zeros(4), atol=1e-9)
    # [x, y, psi, v, cte, epsi] after 0.1 s at 10 m/s with no prior command
    np.testing.assert_allclose(state, [1.0, 0.0, 0.0, 10.0, 0.0, 0.0], atol=1e-9)
    assert steering.last.steering_wheel_angle_cmd == 0.05
    assert isinstance(throttle.last, ThrottleCmd)
    assert brake.messages == []


def test_negative_actuation_brakes():
    controller, _, throttle, brake = make_controller(FixedOptimizer([0.0, -0.3]))
    feed_straight_road(controller)
    controller.step()
    assert throttle.messages == []
    assert isinstance(brake.last, BrakeCmd)
    assert brake.last.pedal_cmd == pytest.approx(0.3)


def test_previous_command_feeds_latency_compensation():
    optimizer = FixedOptimizer([0.1, 0.5])
    controller, *_ = make_controller(optimizer)
    feed_straight_road(controller)

    controller.step()
    controller.step()

    state, _ = optimizer.calls[1]
    delta = -0.1  # published steering is inverted into the bicycle model
    yaw_change = 10.0 * delta * 0.1 / 2.67
    assert state[0] == pytest.approx(10.0 * math.cos(delta) * 0.1)
    assert state[2] == pytest.approx(delta + yaw_change)
    assert state[3] == pytest.approx(10.0 + 0.5 * 0.1)
    assert state[5] == pytest.approx(yaw_change)


def test_steering_sign_kept_when_inversion_disabled():
    optimizer = FixedOptimizer([0.1, 0.0])
    controller, *_ = make_controller(optimizer, ControllerConfig(invert_steering=False))
    feed_straight_road(controller)

    controller.step()
    controller.step()

    state, _ = optimizer.calls[1]
    assert state[2] == pytest.approx(0.1 + 10.0 * 0.1 * 0.1 / 2.67)


def test_short_window_skips_tick():
    controller, steering, throttle, brake = make_controller()
    feed_straight_road(controller, n=3)

    assert controller.step() is None
    assert controller.skip_count == 1
    assert not steering.messages and not throttle.messages and not brake.messages


def test_window_past_end_skips_tick():
    controller, steering, *_ = make_controller()
    feed_straight_road(controller, n=6)
    controller.on_pose(Pose(5.0, 0.0, 0.0))  # closest is index 4, window needs 5

    assert controller.step() is None
    assert steering.messages == []


def test_ill_conditioned_fit_without_history_skips():
    controller, steering, *_ = make_controller(config=ControllerConfig(max_condition_number=1.0))
    feed_straight_road(controller)

    assert controller.step() is None
    assert steering.messages == []


def test_ill_conditioned_fit_reuses_previous_coefficients():
    optimizer = FixedOptimizer([0.0, 0.2])
    controller, steering, *_ = make_controller(optimizer)
    feed_straight_road(controller)
    controller.on_waypoints([Waypoint(float(i + 1), 0.1 * (i + 1)) for i in range(5)])
    controller.step()
    first_coeffs = optimizer.calls[0][1]

    controller.config = replace(controller.config, max_condition_number=1.0)
    assert controller.step() is not None

    np.testing.assert_array_equal(optimizer.calls[1][1], first_coeffs)
    assert len(steering.messages) == 2


def test_optimizer_failure_holds_previous_command():
    controller, steering, *_ = make_controller(FixedOptimizer([0.1, 0.2]))
    feed_straight_road(controller)
    controller.step()

    controller.optimizer = FailingOptimizer()
    assert controller.step() is None

    assert controller.previous_command == ControlCommand(0.1, 0.2)
    assert len(steering.messages) == 1


@pytest.mark.parametrize("solution", [[0.1], [math.nan, 0.2], [0.1, math.inf]])
def test_invalid_optimizer_output_is_not_dispatched(solution):
    controller, steering, *_ = make_controller(FixedOptimizer(solution))
    feed_straight_road(controller)
    assert controller.step() is None
    assert steering.messages == []


def test_solve_wraps_optimizer_exceptions():
    controller, *_ = make_controller(FailingOptimizer())
    feed_straight_road(controller)
    snapshot = controller.inputs.snapshot()
    coeffs = controller.fit_reference(snapshot)
    state = controller.build_state(snapshot, coeffs)
    with pytest.raises(OptimizerError):
        controller.solve(state, coeffs)


def test_disable_returns_to_idle():
    controller, steering, *_ = make_controller()
    feed_straight_road(controller)
    controller.step()

    controller.on_enabled(False)
    assert controller.step() is None
    assert controller.state is LoopState.IDLE
    assert len(steering.messages) == 1


def test_no_dispatch_after_stop():
    controller, steering, *_ = make_controller()
    feed_straight_road(controller)
    controller.stop()

    assert controller.step() is None
    assert steering.messages == []


def test_optimizer_receives_copies():
    class MutatingOptimizer(Optimizer):
        def solve(self, state, coeffs):
            coeffs[:] = 99.0
            return [0.0, 0.1]

    controller, *_ = make_controller(MutatingOptimizer())
    feed_straight_road(controller)
    controller.step()
    np.testing.assert_allclose(controller.previous_coeffs, np.zeros(4), atol=1e-9)


def test_run_loop_ticks_until_stopped():
    controller, steering, *_ = make_controller(config=ControllerConfig(loop_rate_hz=200.0))
    feed_straight_road(controller)

    async def run_briefly():
        task = asyncio.create_task(controller.run())
        await asyncio.sleep(0.1)
        controller.stop()
        await asyncio.wait_for(task, timeout=1.0)

    asyncio.run(run_briefly())

    assert len(steering.messages) >= 2
    assert controller.tick_count == len(steering.messages)
