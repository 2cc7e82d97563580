"""Carrot controller: one control-loop invocation per goal.

Given a goal pose in the tracking frame, the controller:
1. Validates the frame and extracts the heading (with a dead band)
2. Asks the safety gate whether forward translation is allowed
3. Clears the translational part of the goal if the path is blocked
4. Runs the linear and angular profilers against the previous command
5. Stores the command for acceleration bounding on the next invocation

Commands and carrot markers are emitted through injectable sinks, and all
diagnostics go through an injectable logger.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

import numpy as np

from .angular_profiler import AngularVelocityProfiler
from .config import MIN_DT, TRACKING_FRAME
from .linear_profiler import LinearVelocityProfiler
from .model import (
    CarrotMarker,
    ControllerState,
    FrameMismatchError,
    Goal,
    Limits,
    PoseStamped,
    RangeScan,
    VelocityCommand,
    normalize,
)
from .safety_gate import SafetyGate
from .scan_buffer import RangeScanBuffer

CommandSink = Callable[[VelocityCommand], None]
MarkerSink = Callable[[CarrotMarker], None]


class CarrotController:
    """Reactive goal tracker producing bounded velocity commands.

    Invocations are serialized by an internal lock, so the controller may be
    driven from several threads; the scan buffer may be updated concurrently.

    Attributes:
        limits: Immutable velocity/acceleration limits.
        tracking_frame: Frame goals must be expressed in.
        scan_buffer: Latest front-laser snapshot.
        safety_gate: Virtual-wall check on the scan buffer.
        linear_profiler: Translational velocity profiler.
        angular_profiler: Yaw-rate profiler.
        state: Last command and timestamp.
        goal: Current goal (zero goal until set_goal succeeds).
    """

    def __init__(
        self,
        limits: Optional[Limits] = None,
        tracking_frame: str = TRACKING_FRAME,
        scan_buffer: Optional[RangeScanBuffer] = None,
        command_sink: Optional[CommandSink] = None,
        marker_sink: Optional[MarkerSink] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the controller.

        Args:
            limits: Controller limits. Default: Limits() with the configured defaults.
            tracking_frame: Frame goals must be expressed in. Default: "/base_link".
            scan_buffer: Shared scan buffer. Default: a new buffer for "/front_laser".
            command_sink: Called with every command produced by move_to_goal.
            marker_sink: Called with the carrot marker on every accepted goal.
            logger: Logger for diagnostics. Default: this module's logger.
            clock: Monotonic time source used when no timestamp is passed (seconds).
        """
        self.limits = limits if limits is not None else Limits()
        self.tracking_frame = tracking_frame
        self.scan_buffer = scan_buffer if scan_buffer is not None else RangeScanBuffer()
        self.command_sink = command_sink
        self.marker_sink = marker_sink
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.clock = clock

        self.safety_gate = SafetyGate(self.scan_buffer, self.limits, logger=self.logger)
        self.linear_profiler = LinearVelocityProfiler(self.limits)
        self.angular_profiler = AngularVelocityProfiler(
            self.limits.max_vel_theta, self.limits.max_acc_theta
        )

        self.state = ControllerState()
        self.goal = Goal()
        self._lock = threading.Lock()
        self._diagnostics: Dict[str, Any] = {}

    # ------------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------------

    def update_scan(self, scan: RangeScan) -> None:
        """Feed a range snapshot to the scan buffer (wrong frames are dropped)."""
        self.scan_buffer.update(scan)

    def set_goal(self, pose: PoseStamped) -> Goal:
        """Validate and store a new goal.

        Args:
            pose: Goal pose; must be expressed in the tracking frame.

        Returns:
            The stored goal, with small headings snapped to zero.

        Raises:
            FrameMismatchError: If pose.frame_id is not the tracking frame. The
                stored goal is left unchanged.
        """
        if pose.frame_id != self.tracking_frame:
            self.logger.error(
                f"Expecting goal in frame {self.tracking_frame}, no planning possible "
                f"(got {pose.frame_id})"
            )
            raise FrameMismatchError(pose.frame_id, self.tracking_frame)

        heading = pose.yaw
        if abs(heading) < self.limits.min_angle:
            if heading != 0.0:
                self.logger.warning(
                    f"Angle {heading:.4f} < {self.limits.min_angle:.4f}: will be ignored"
                )
            heading = 0.0

        goal = Goal(position=np.array(pose.position, dtype=float), heading=heading)
        with self._lock:
            self.goal = goal
        self.logger.info(
            f"Goal set: (x,y,th) = ({goal.position[0]:.3f},{goal.position[1]:.3f},{heading:.3f})"
        )

        if self.marker_sink is not None:
            self.marker_sink(CarrotMarker.from_goal(goal, self.tracking_frame))

        return goal

    # ------------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------------

    def compute_velocity_command(
        self, goal: Optional[Goal] = None, now: Optional[float] = None
    ) -> VelocityCommand:
        """Compute the velocity command for one control-loop invocation.

        Args:
            goal: Goal to steer to. Default: the goal stored by set_goal.
            now: Current time (seconds). Default: the controller clock.

        Returns:
            Velocity command respecting the velocity and acceleration limits.
        """
        if now is None:
            now = self.clock()

        with self._lock:
            if goal is None:
                goal = self.goal
            dt = self._time_step(now)

            clear = self.safety_gate.is_forward_path_clear(goal.heading, goal.distance)
            if not clear:
                self.logger.warning("Path is not free: only consider rotation")
                goal = goal.without_translation()

            direction = normalize(goal.position)
            self.logger.debug(
                f"Goal after gate: ({goal.position[0]:.3f},{goal.position[1]:.3f},"
                f"{goal.heading:.3f}), direction ({direction[0]:.3f},{direction[1]:.3f})"
            )

            previous = self.state.last_command
            linear = self.linear_profiler.compute(goal.position, previous.linear, dt)
            angular = self.angular_profiler.determine_reference(
                goal.heading, previous.angular, dt
            )
            command = VelocityCommand(linear=linear, angular=angular)

            # A clock stepping backwards must not widen the next dt
            stamp = now if self.state.last_timestamp is None else max(now, self.state.last_timestamp)
            self.state = ControllerState(last_command=command.copy(), last_timestamp=stamp)
            self._diagnostics = {
                "timestamp": now,
                "dt": dt,
                "blocked": not clear,
                "goal_x": float(goal.position[0]),
                "goal_y": float(goal.position[1]),
                "goal_heading": goal.heading,
                "direction_x": float(direction[0]),
                "direction_y": float(direction[1]),
                "desired_x": float(self.linear_profiler.last_desired[0]),
                "desired_y": float(self.linear_profiler.last_desired[1]),
                "linear_x": float(command.linear[0]),
                "linear_y": float(command.linear[1]),
                "angular": command.angular,
                "linear_branch": self.linear_profiler.last_branch.value,
                "angular_phase": self.angular_profiler.last_phase.value,
            }

        self.logger.info(
            f"Final velocity command: (x:{command.linear[0]:.3f}, y:{command.linear[1]:.3f}, "
            f"th:{command.angular:.3f})"
        )
        return command

    def move_to_goal(self, pose: PoseStamped, now: Optional[float] = None) -> VelocityCommand:
        """Set a goal, compute the command and publish it to the command sink.

        Raises:
            FrameMismatchError: If the pose is not in the tracking frame. No
                command is computed or published in that case.
        """
        self.set_goal(pose)
        command = self.compute_velocity_command(now=now)
        if self.command_sink is not None:
            self.command_sink(command)
        return command

    def _time_step(self, now: float) -> float:
        last = self.state.last_timestamp
        if last is None or now <= last:
            return MIN_DT
        return now - last

    def get_diagnostics(self) -> Dict[str, Any]:
        """Diagnostic values of the most recent computation (empty before the first)."""
        with self._lock:
            return dict(self._diagnostics)

    def reset(self) -> None:
        """Clear the goal and the command history (the scan buffer is kept)."""
        with self._lock:
            self.state = ControllerState()
            self.goal = Goal()
            self._diagnostics = {}
