"""
Fixed-rate drive-by-wire control loop.

Each tick reads a consistent snapshot of the inbound channels and, while the
loop is Active, runs the tracking pipeline:

    waypoint window -> vehicle frame -> cubic fit -> cte/epsi
        -> latency projection -> optimizer -> command dispatch

Pipeline failures skip the tick; they never stop the loop.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np
import numpy.typing as npt

from .channels import InputBuffer, InputSnapshot
from .config import TERM_BLUE, TERM_RESET, ControllerConfig
from .data_collector import DataCollector
from .dispatcher import CommandDispatcher
from .estimator import tracking_errors
from .exceptions import IllConditionedFitError, OptimizerError, PipelineError
from .messages import ControlCommand, Pose, Velocity, Waypoint
from .model import VehicleState, project_state
from .optimizer import Optimizer, validate_solution
from .polyfit import polyfit
from .transform import closest_waypoint, global_to_local, waypoint_window


class LoopState(Enum):
    """Whether the loop produces commands."""

    IDLE = "idle"
    ACTIVE = "active"


def control_state(snapshot: InputSnapshot) -> LoopState:
    """Active only when drive-by-wire is enabled and every input is ready."""
    if snapshot.enabled and snapshot.all_ready:
        return LoopState.ACTIVE
    return LoopState.IDLE


class DbwController:
    """Drive-by-wire trajectory tracking loop.

    Inbound transport callbacks call the ``on_*`` methods from any thread or
    task. ``run`` executes ``step`` at the configured rate until ``stop`` is
    called. At most one tick runs at a time; updates arriving during a tick
    are seen on the next one.

    Attributes:
        config: Startup configuration.
        optimizer: External solver producing [steering, actuation, ...].
        dispatcher: Outbound command dispatcher.
        inputs: Latest-value input channels.
        state: Current loop state (Idle/Active).
        previous_command: Last dispatched command, fed to latency compensation.
        previous_coeffs: Last successful fit, reused on an ill-conditioned tick.
        should_stop: Flag indicating whether to stop the control loop.
    """

    def __init__(
        self,
        optimizer: Optimizer,
        dispatcher: CommandDispatcher,
        config: Optional[ControllerConfig] = None,
        data_collector: Optional[DataCollector] = None,
    ) -> None:
        self.config = config or ControllerConfig()
        self.optimizer = optimizer
        self.dispatcher = dispatcher
        self.data_collector = data_collector

        self.inputs = InputBuffer()
        self.state = LoopState.IDLE
        self.previous_command = ControlCommand(steering=0.0, actuation=0.0)
        self.previous_coeffs: Optional[npt.NDArray[np.float64]] = None
        self.should_stop: bool = False

        self.tick_count: int = 0
        self.skip_count: int = 0

    # ------------------------------------------------------------------
    # Inbound channels
    # ------------------------------------------------------------------

    def on_enabled(self, enabled: bool) -> None:
        self.inputs.put_enabled(enabled)

    def on_waypoints(self, waypoints: List[Waypoint]) -> None:
        self.inputs.put_waypoints(waypoints)

    def on_pose(self, pose: Pose) -> None:
        self.inputs.put_pose(pose)

    def on_velocity(self, velocity: Velocity) -> None:
        self.inputs.put_velocity(velocity)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def fit_reference(self, snapshot: InputSnapshot) -> npt.NDArray[np.float64]:
        """Fit the reference polynomial in the vehicle frame.

        Args:
            snapshot: Inputs for this tick (waypoints and pose must be set).

        Returns:
            Polynomial coefficients, lowest-order first.

        Raises:
            PreconditionError: If the waypoint window or fit preconditions fail.
            IllConditionedFitError: If the fit is unusable and no previous fit exists.
        """
        pose = snapshot.pose
        waypoints = snapshot.waypoints
        path_x = np.array([wp.x for wp in waypoints], dtype=np.float64)
        path_y = np.array([wp.y for wp in waypoints], dtype=np.float64)

        start = closest_waypoint(path_x, path_y, pose.x, pose.y)
        xs, ys = waypoint_window(waypoints, start, self.config.waypoint_window)
        local_x, local_y = global_to_local(pose.x, pose.y, pose.yaw, xs, ys)

        try:
            coeffs = polyfit(
                local_x,
                local_y,
                degree=self.config.poly_degree,
                max_condition_number=self.config.max_condition_number,
            )
        except IllConditionedFitError as e:
            if self.previous_coeffs is None:
                raise
            logging.warning(f"{e}; reusing previous coefficients")
            return self.previous_coeffs.copy()

        self.previous_coeffs = coeffs
        return coeffs.copy()

    def build_state(self, snapshot: InputSnapshot, coeffs: npt.NDArray[np.float64]) -> VehicleState:
        """Compute tracking errors and project them through the latency window."""
        errors = tracking_errors(coeffs)
        previous = self.previous_command
        delta = -previous.steering if self.config.invert_steering else previous.steering

        return project_state(
            v=snapshot.velocity.linear,
            cte=errors.cte,
            epsi=errors.epsi,
            delta=delta,
            throttle=previous.actuation,
            latency=self.config.latency,
            wheelbase=self.config.wheelbase,
        )

    def solve(self, state: VehicleState, coeffs: npt.NDArray[np.float64]) -> ControlCommand:
        """Run the optimizer and validate its first control action.

        Raises:
            OptimizerError: If the optimizer fails or returns unusable values.
        """
        try:
            solution = self.optimizer.solve(state.to_array(), coeffs.copy())
        except OptimizerError:
            raise
        except Exception as e:
            raise OptimizerError(f"Optimizer failed: {type(e).__name__}: {e}") from e
        return validate_solution(solution)

    def plan(self, snapshot: InputSnapshot) -> Tuple[VehicleState, npt.NDArray[np.float64], ControlCommand]:
        """Run the full pipeline for one snapshot without dispatching."""
        coeffs = self.fit_reference(snapshot)
        state = self.build_state(snapshot, coeffs)
        command = self.solve(state, coeffs)
        return state, coeffs, command

    def step(self, timestamp: Optional[float] = None) -> Optional[ControlCommand]:
        """Run one control tick.

        Args:
            timestamp: Tick time for recording (default: wall clock).

        Returns:
            The dispatched command, or None if the loop is Idle, the tick was
            skipped, or shutdown was requested.
        """
        if timestamp is None:
            timestamp = time.time()

        snapshot = self.inputs.snapshot()
        new_state = control_state(snapshot)
        if new_state is not self.state:
            logging.info(f"{TERM_BLUE}Control loop {self.state.value} → {new_state.value}{TERM_RESET}")
            self.state = new_state
        if new_state is LoopState.IDLE:
            return None

        try:
            state, coeffs, command = self.plan(snapshot)
        except PipelineError as e:
            self.skip_count += 1
            logging.warning(f"Skipping tick: {type(e).__name__}: {e}")
            if self.data_collector:
                self.data_collector.log_skip(timestamp, f"{type(e).__name__}: {e}")
            return None

        if self.should_stop:
            return None

        self.dispatcher.dispatch(command)
        self.previous_command = command
        self.tick_count += 1

        logging.debug(
            f"cte={state.cte:+.3f} epsi={state.epsi:+.4f} v={state.v:.2f} "
            f"-> steering={command.steering:+.4f} actuation={command.actuation:+.4f}"
        )
        if self.data_collector:
            self.data_collector.log_tick(timestamp, state, coeffs, command)
        return command

    async def run(self) -> None:
        """Run ``step`` at the configured rate until ``stop`` is called."""
        period = self.config.period
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        logging.info(f"{TERM_BLUE}✓ Control loop running at {self.config.loop_rate_hz:.0f} Hz{TERM_RESET}")
        while not self.should_stop:
            self.step()

            next_tick += period
            delay = next_tick - loop.time()
            if delay < 0:
                logging.debug(f"Tick overran period by {-delay * 1000.0:.1f} ms")
                next_tick = loop.time()
                delay = 0.0
            await asyncio.sleep(delay)

        logging.info(
            f"Control loop stopped after {self.tick_count} commands ({self.skip_count} skipped ticks)"
        )

    def stop(self) -> None:
        """Signal the loop to stop; no command is dispatched afterwards."""
        self.should_stop = True
