"""Virtual-wall safety gate.

Decides whether forward translation is allowed by looking for close range
readings in a window of beams in front of the robot. The window is sized so
that a disc of the robot radius placed at the virtual wall distance fits in
it:

    half_angle = atan2(radius_robot, dist_virtual_wall)
    half_width = int(half_angle / angle_increment)   (beams)

and it is centred on the beam pointing along the goal heading. Any reading r
with MIN_VALID_RANGE < r < dist_virtual_wall inside the window blocks
translation. Missing sensor data (no scan, or a scan without beams) blocks as well.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .config import MIN_VALID_RANGE
from .model import Limits, RangeScan
from .scan_buffer import RangeScanBuffer


@dataclass(frozen=True)
class Obstruction:
    """The reading that made the gate report blocked.

    Attributes:
        index: Beam index in the scan.
        angle: Beam angle in the sensor frame (rad).
        distance: Range reading (m).
        lateral_offset: Sideways offset of the reading, sin(angle) * distance (m).
    """

    index: int
    angle: float
    distance: float
    lateral_offset: float


class SafetyGate:
    """Virtual-wall check on the latest front scan.

    Attributes:
        scan_buffer: Source of range snapshots.
        limits: Controller limits (virtual wall distance and robot radius).
        last_obstruction: Reading that blocked the last check, None if it was
            clear or blocked for lack of data.
    """

    def __init__(
        self,
        scan_buffer: RangeScanBuffer,
        limits: Optional[Limits] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.scan_buffer = scan_buffer
        self.limits = limits if limits is not None else Limits()
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.last_obstruction: Optional[Obstruction] = None

    def half_width_beams(self, angle_increment: float) -> int:
        """Half width of the virtual wall window, in beams."""
        half_angle = math.atan2(self.limits.radius_robot, self.limits.dist_virtual_wall)
        return int(half_angle / angle_increment)

    def beam_window(self, scan: RangeScan, goal_heading: float) -> Tuple[int, int]:
        """Index range [start, stop) of beams to check, clamped to the scan.

        Args:
            scan: Snapshot to index into (angle_increment must be positive).
            goal_heading: Goal heading relative to straight ahead (rad).

        Returns:
            (start, stop) with 0 <= start and stop <= beam count. The window is
            empty when start >= stop.
        """
        num_readings = scan.beam_count
        center = num_readings // 2 + int(round(goal_heading / scan.angle_increment))
        half_width = self.half_width_beams(scan.angle_increment)
        start = max(center - half_width, 0)
        stop = min(center + half_width, num_readings)
        return start, stop

    def is_forward_path_clear(self, goal_heading: float, goal_distance: float) -> bool:
        """Check the virtual wall in front of the robot.

        Args:
            goal_heading: Goal heading relative to straight ahead (rad).
            goal_distance: Distance to the goal (m). Only reported in the logs.

        Returns:
            True if forward translation is allowed, False if blocked. A scan
            without beams blocks; a window that falls entirely outside the scan
            has nothing to check and is clear.
        """
        self.last_obstruction = None

        scan = self.scan_buffer.latest()
        if scan is None:
            self.logger.info("No laser data available: path considered blocked")
            return False

        if not scan.angle_increment > 0:
            self.logger.warning(
                f"Invalid angular resolution {scan.angle_increment} in scan: path considered blocked"
            )
            return False

        if scan.beam_count == 0:
            self.logger.warning("Laser scan has no beams: path considered blocked")
            return False

        start, stop = self.beam_window(scan, goal_heading)
        for index in range(start, stop):
            distance = float(scan.ranges[index])
            if MIN_VALID_RANGE < distance < self.limits.dist_virtual_wall:
                angle = scan.beam_angle(index)
                self.last_obstruction = Obstruction(
                    index=index,
                    angle=angle,
                    distance=distance,
                    lateral_offset=math.sin(angle) * distance,
                )
                self.logger.warning(
                    f"Object too close: {distance:.3f} [m] at beam {index}/{scan.beam_count} "
                    f"({math.degrees(angle):.1f} deg), goal lies {goal_distance:.3f} [m] ahead"
                )
                return False

        self.logger.debug(f"Virtual wall clear over beams [{start}, {stop})")
        return True
