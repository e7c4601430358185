"""
WebSocket Transport for the Drive-by-Wire Controller

This module connects the control loop to a vehicle bridge over WebSocket. It
receives enable/waypoint/pose/velocity messages, feeds them into the
controller's input channels, and sends the steering, throttle and brake
commands the loop dispatches.
"""

import asyncio
import json
import logging
import signal
from typing import Any, Dict, Optional, Union

import websockets

from .config import (
    OUTBOUND_QUEUE_SIZE,
    RECORD_FLUSH_SECONDS,
    TERM_BLUE,
    TERM_RESET,
    WS_MAX_RETRY_DELAY_SECONDS,
    WS_RETRY_DELAY_SECONDS,
    WS_TIMEOUT_SECONDS,
    ControllerConfig,
)
from .channels import Publisher
from .controller import DbwController
from .data_collector import DataCollector
from .dispatcher import CommandDispatcher
from .messages import Pose, Velocity, Waypoint, parse_enabled
from .optimizer import FeedbackOptimizer, Optimizer


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    This formatter provides clean console output by showing INFO messages without
    timestamps while preserving full context for WARNING, ERROR, and DEBUG messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record based on its level.

        Args:
            record: The log record to format.

        Returns:
            Formatted log message string.
        """
        if record.levelno == logging.INFO:
            return record.getMessage()
        return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


class WebSocketPublisher(Publisher[Any]):
    """Publisher that queues JSON-ready commands for the sender task.

    ``publish`` never awaits; when the queue is full the oldest pending command
    is dropped so the newest one always goes out.

    Attributes:
        queue: Outbound queue shared by all command publishers.
        message_type: Value of the ``message_type`` field on the wire.
    """

    def __init__(self, queue: "asyncio.Queue[Dict[str, Any]]", message_type: str) -> None:
        self.queue = queue
        self.message_type = message_type

    def publish(self, message: Any) -> None:
        payload = {"message_type": self.message_type, **message.to_dict()}
        if self.queue.full():
            dropped = self.queue.get_nowait()
            logging.debug(f"Outbound queue full, dropped {dropped['message_type']}")
        self.queue.put_nowait(payload)


class DbwClient:
    """WebSocket transport around a ``DbwController``.

    Attributes:
        config: Startup configuration (``ws_uri`` is the bridge endpoint).
        controller: The control loop fed by this transport.
        outbound: Commands waiting to be sent.
        data_collector: Optional CSV recorder shared with the controller.
        should_stop: Flag indicating whether to stop the transport.
    """

    def __init__(
        self,
        config: Optional[ControllerConfig] = None,
        optimizer: Optional[Optimizer] = None,
        data_collector: Optional[DataCollector] = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Startup configuration (default: built-in defaults).
            optimizer: Control solver (default: ``FeedbackOptimizer``).
            data_collector: Optional run recorder.

        Raises:
            ValueError: If the configured URI format is invalid.
        """
        self.config = config or ControllerConfig()
        uri = self.config.ws_uri
        if not uri or not uri.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URI: {uri}. Must start with 'ws://' or 'wss://'")

        self.uri: str = uri
        self.should_stop: bool = False
        self.data_collector = data_collector

        self.outbound: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=OUTBOUND_QUEUE_SIZE)
        dispatcher = CommandDispatcher(
            steering_publisher=WebSocketPublisher(self.outbound, "steering_cmd"),
            throttle_publisher=WebSocketPublisher(self.outbound, "throttle_cmd"),
            brake_publisher=WebSocketPublisher(self.outbound, "brake_cmd"),
        )
        self.controller = DbwController(
            optimizer=optimizer or FeedbackOptimizer(),
            dispatcher=dispatcher,
            config=self.config,
            data_collector=data_collector,
        )

    def process_waypoints_message(self, data: Dict[str, Any]) -> None:
        """Replace the reference path with the waypoints in ``data``."""
        waypoints = data.get("waypoints", [])
        if not isinstance(waypoints, list):
            logging.warning(f"Invalid waypoints data type: expected list, got {type(waypoints)}")
            return
        self.controller.on_waypoints([Waypoint.from_dict(wp) for wp in waypoints])

    def parse_and_route_message(self, message: Union[str, bytes]) -> None:
        """Parse incoming message and route to the matching input channel.

        Args:
            message: Raw JSON message string or bytes from WebSocket.
        """
        try:
            if isinstance(message, bytes):
                message = message.decode("utf-8")
            data = json.loads(message)

            message_type = data.get("message_type")

            if message_type == "dbw_enabled":
                enabled = parse_enabled(data)
                logging.info(f"{TERM_BLUE}Drive-by-wire {'enabled' if enabled else 'disabled'}{TERM_RESET}")
                self.controller.on_enabled(enabled)
            elif message_type == "final_waypoints":
                self.process_waypoints_message(data)
            elif message_type == "current_pose":
                self.controller.on_pose(Pose.from_dict(data))
            elif message_type == "current_velocity":
                self.controller.on_velocity(Velocity.from_dict(data))
            else:
                logging.debug(f"Ignoring message of type {message_type!r}")

        except json.JSONDecodeError as e:
            logging.error(f"Error parsing JSON: {e}")
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logging.error(f"Error processing message data: {e}")

    def discard_pending_commands(self) -> None:
        """Drop commands queued while disconnected; the loop will issue fresh ones."""
        while not self.outbound.empty():
            self.outbound.get_nowait()

    async def send_commands(self, websocket: Any) -> None:
        """Send queued commands until cancelled."""
        while True:
            payload = await self.outbound.get()
            await websocket.send(json.dumps(payload))

    async def receive_messages(self, websocket: Any) -> None:
        """Route inbound messages until stopped or the server closes."""
        while not self.should_stop:
            try:
                message = await asyncio.wait_for(websocket.recv(), timeout=WS_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                continue
            except websockets.exceptions.ConnectionClosed:
                logging.warning("Connection closed by server")
                return
            self.parse_and_route_message(message)

    async def run_transport(self) -> None:
        """Connect to the bridge and exchange messages.

        Maintains a connection to the WebSocket server with automatic retry logic
        and exponential backoff. Continues running until ``should_stop`` is set.
        """
        retry_delay = WS_RETRY_DELAY_SECONDS

        while not self.should_stop:
            try:
                async with websockets.connect(self.uri) as websocket:
                    logging.info(f"{TERM_BLUE}✓ Connected to {self.uri}{TERM_RESET}")
                    retry_delay = WS_RETRY_DELAY_SECONDS
                    self.discard_pending_commands()

                    sender = asyncio.create_task(self.send_commands(websocket))
                    try:
                        await self.receive_messages(websocket)
                    finally:
                        sender.cancel()
                        try:
                            await sender
                        except (asyncio.CancelledError, websockets.exceptions.ConnectionClosed):
                            pass

            except (OSError, websockets.exceptions.WebSocketException) as e:
                if self.should_stop:
                    break
                logging.error(f"Connection error: {e}")
                logging.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay = min(retry_delay * 2, WS_MAX_RETRY_DELAY_SECONDS)

    async def write_recordings(self, interval: float = RECORD_FLUSH_SECONDS) -> None:
        """Periodically write buffered run rows from a worker thread.

        File I/O never runs on the event loop, so ticks and the transport are
        not stalled by disk writes. Remaining rows are written on cleanup.
        """
        if self.data_collector is None:
            return
        loop = asyncio.get_running_loop()
        while not self.should_stop:
            await asyncio.sleep(interval)
            await loop.run_in_executor(None, self.data_collector.write_pending)

    async def run(self) -> None:
        """Run the control loop, the transport and run recording until stopped."""
        try:
            await asyncio.gather(self.controller.run(), self.run_transport(), self.write_recordings())
        finally:
            self.stop()

    def stop(self) -> None:
        """Signal both the transport and the control loop to stop."""
        self.should_stop = True
        self.controller.stop()

    def __enter__(self) -> "DbwClient":
        if self.data_collector:
            self.data_collector.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.data_collector:
            self.data_collector.cleanup()


async def main(config: ControllerConfig, output_dir: str = ".", record: bool = True) -> None:
    """Main entry point for the drive-by-wire client.

    Creates a DbwClient, sets up signal handlers for graceful shutdown, and
    runs the control loop with its transport.

    Args:
        config: Startup configuration.
        output_dir: Base directory for recorded runs.
        record: Whether to record ticks to CSV.
    """
    data_collector = DataCollector(output_dir=output_dir, degree=config.poly_degree) if record else None

    logging.info(f"{TERM_BLUE}Configuration: {config.to_dict()}{TERM_RESET}")

    with DbwClient(config, data_collector=data_collector) as client:
        loop = asyncio.get_running_loop()

        def signal_handler() -> None:
            """Handle shutdown signals (SIGINT, SIGTERM)."""
            logging.info("\nShutdown signal received...")
            client.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

        await client.run()
