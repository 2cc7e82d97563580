#!/usr/bin/env python3
"""
WebSocket Bridge for the Carrot Controller

This module connects the carrot controller to a WebSocket server that streams
goal poses and front-laser scans. Every accepted goal produces a velocity
command and a carrot marker, which are sent back over the same connection.
Goals, commands and scans are logged to CSV files for later plotting.

Message formats (JSON):
    in:  {"message_type": "goal", "frame_id", "position": [x, y, z], "orientation": [x, y, z, w]}
    in:  {"message_type": "scan", "frame_id", "angle_min", "angle_increment", "ranges": [...]}
    out: {"message_type": "cmd_vel", "linear": [x, y, 0], "angular": [0, 0, wz]}
    out: {"message_type": "marker", "frame_id", "ns", "type", "width", "color", "points"}
"""

import asyncio
import json
import logging
import signal
import time
from typing import Any, Dict, List, Optional, Union

import websockets

from carrot_control.config import (
    TERM_BLUE,
    TERM_ORANGE,
    TERM_RESET,
    WS_MAX_RETRY_DELAY_SECONDS,
    WS_RETRY_DELAY_SECONDS,
    WS_TIMEOUT_SECONDS,
    WS_URI,
)
from carrot_control.controller import CarrotController
from carrot_control.data_collector import DataCollector
from carrot_control.model import (
    CarrotMarker,
    FrameMismatchError,
    Limits,
    PoseStamped,
    RangeScan,
    VelocityCommand,
)


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
        else:
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
            format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        formatter = CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        handler.setFormatter(formatter)
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


class CarrotClient:
    """WebSocket bridge around a CarrotController.

    Incoming scans feed the controller's scan buffer; incoming goals run one
    control-loop invocation. Outgoing messages (commands and markers) are
    queued in `outbox` by the controller sinks and flushed after each message.

    Attributes:
        uri: WebSocket URI to connect to.
        controller: The carrot controller.
        data_collector: Handles CSV file logging.
        outbox: Messages waiting to be sent.
        should_stop: Flag indicating whether to stop the control loop.
    """

    def __init__(
        self,
        uri: str,
        output_dir: str = ".",
        limits: Optional[Limits] = None,
        data_collector: Optional[DataCollector] = None,
    ) -> None:
        """Initialize the client.

        Args:
            uri: WebSocket URI to connect to (must start with ws:// or wss://).
            output_dir: Base directory for output files (default: current directory).
            limits: Controller limits. Default: Limits().
            data_collector: CSV logger. Default: a new DataCollector in output_dir.

        Raises:
            ValueError: If URI format is invalid.
        """
        if not uri or not uri.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URI: {uri}. Must start with 'ws://' or 'wss://'")

        self.uri: str = uri
        self.should_stop: bool = False
        self.outbox: List[Dict[str, Any]] = []

        self.data_collector = (
            data_collector if data_collector is not None else DataCollector(output_dir=output_dir)
        )
        self.controller = CarrotController(
            limits=limits,
            command_sink=self._queue_command,
            marker_sink=self._queue_marker,
        )

        logging.info(f"{TERM_BLUE}Controller limits: {self.controller.limits.to_dict()}{TERM_RESET}")

    def _queue_command(self, command: VelocityCommand) -> None:
        self.outbox.append(command.to_dict())

    def _queue_marker(self, marker: CarrotMarker) -> None:
        self.outbox.append(marker.to_dict())

    def process_scan_message(self, data: Dict[str, Any]) -> None:
        """Feed a scan message to the controller and log accepted scans.

        Args:
            data: Parsed JSON scan message.
        """
        scan = RangeScan.from_dict(data)
        self.controller.update_scan(scan)
        if self.controller.scan_buffer.latest() is scan:
            stamp = scan.stamp if scan.stamp is not None else time.time()
            self.data_collector.log_scan(stamp, scan)

    def process_goal_message(self, data: Dict[str, Any]) -> Optional[VelocityCommand]:
        """Run one control-loop invocation for a goal message.

        Args:
            data: Parsed JSON goal message.

        Returns:
            The computed command, or None if the goal was rejected.
        """
        pose = PoseStamped.from_dict(data)
        try:
            command = self.controller.move_to_goal(pose)
        except FrameMismatchError as e:
            logging.warning(f"{TERM_ORANGE}Goal rejected: {e}{TERM_RESET}")
            return None

        diagnostics = self.controller.get_diagnostics()
        self.data_collector.log_goal(diagnostics["timestamp"], pose, self.controller.goal)
        self.data_collector.log_command(diagnostics)
        return command

    def parse_and_route_message(self, message: Union[str, bytes]) -> None:
        """Parse incoming message and route to appropriate handler.

        Args:
            message: Raw JSON message string or bytes from WebSocket.
        """
        try:
            if isinstance(message, bytes):
                message = message.decode("utf-8")
            data = json.loads(message)
            if not isinstance(data, dict):
                logging.error(f"Ignoring message that is not a JSON object: {message!r}")
                return

            message_type = data.get("message_type")

            if message_type == "scan":
                self.process_scan_message(data)
            elif message_type == "goal":
                self.process_goal_message(data)
            elif message_type == "stop":
                logging.info(f"{TERM_BLUE}Stop requested by server{TERM_RESET}")
                self.should_stop = True
            else:
                logging.debug(f"\nReceived unknown message: {json.dumps(data, indent=2)}\n")

        except json.JSONDecodeError as e:
            logging.error(f"Error parsing JSON: {e}")
        except (KeyError, TypeError, ValueError) as e:
            logging.error(f"Error processing message data: {e}")
        except Exception as e:
            logging.error(f"Unexpected error processing message: {e}", exc_info=True)

    async def flush_outbox(self, websocket: Any) -> None:
        """Send all queued messages over the connection."""
        while self.outbox:
            message = self.outbox.pop(0)
            await websocket.send(json.dumps(message))
            if message["message_type"] == "cmd_vel":
                logging.debug(
                    f"Sent command: linear={message['linear']}, angular={message['angular']}"
                )

    async def run_control_loop(self) -> None:
        """Connect to WebSocket and run the control loop.

        Maintains a connection to the WebSocket server with automatic retry logic
        and exponential backoff. Continues running until should_stop flag is set.
        """
        retry_delay = WS_RETRY_DELAY_SECONDS
        max_retry_delay = WS_MAX_RETRY_DELAY_SECONDS

        while not self.should_stop:
            try:
                async with websockets.connect(self.uri) as websocket:
                    logging.info(f"{TERM_BLUE}✓ Connected to server{TERM_RESET}")
                    retry_delay = WS_RETRY_DELAY_SECONDS

                    while not self.should_stop:
                        try:
                            message = await asyncio.wait_for(
                                websocket.recv(), timeout=WS_TIMEOUT_SECONDS
                            )
                            self.parse_and_route_message(message)
                            await self.flush_outbox(websocket)

                        except asyncio.TimeoutError:
                            continue
                        except websockets.exceptions.ConnectionClosed:
                            logging.warning("Connection closed by server")
                            break

            except (OSError, websockets.exceptions.WebSocketException) as e:
                if self.should_stop:
                    break
                logging.error(f"Connection error: {e}")
                logging.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay = min(retry_delay * 2, max_retry_delay)

    def stop(self) -> None:
        """Signal the client to stop."""
        self.should_stop = True

    def __enter__(self) -> "CarrotClient":
        """Context manager entry point.

        Returns:
            Self reference for use in with statement.
        """
        self.data_collector.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit point - ensures cleanup is called."""
        self.data_collector.cleanup()


async def main(
    uri: str = WS_URI, output_dir: str = ".", limits: Optional[Limits] = None
) -> None:
    """Main entry point for the WebSocket bridge.

    Creates a CarrotClient instance, sets up signal handlers for graceful
    shutdown, and starts the control loop.

    Args:
        uri: WebSocket server URI.
        output_dir: Base directory for CSV output.
        limits: Controller limits. Default: Limits().
    """
    with CarrotClient(uri, output_dir=output_dir, limits=limits) as client:
        loop = asyncio.get_running_loop()

        def signal_handler() -> None:
            """Handle shutdown signals (SIGINT, SIGTERM)."""
            logging.info("\nShutdown signal received...")
            client.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

        await client.run_control_loop()
