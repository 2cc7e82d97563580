"""Data model for the carrot controller.

Goals, range snapshots, velocity commands and limits, together with the small
vector helpers (yaw extraction, safe normalization) the control pipeline is
built on. Vectors are 3-element numpy arrays in the tracking frame.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .config import (
    DIST_VIRTUAL_WALL,
    GAIN,
    MARKER_COLOR,
    MARKER_HEIGHT,
    MARKER_NAMESPACE,
    MARKER_WIDTH,
    MAX_ACC,
    MAX_ACC_THETA,
    MAX_VEL,
    MAX_VEL_THETA,
    MIN_ANGLE,
    RADIUS_ROBOT,
    TRACKING_FRAME,
    VECTOR_EPSILON,
)


class FrameMismatchError(ValueError):
    """Raised when a goal is not expressed in the tracking frame."""

    def __init__(self, frame_id: str, expected_frame: str) -> None:
        super().__init__(
            f"Expecting goal in frame {expected_frame}, got {frame_id}: no planning possible"
        )
        self.frame_id = frame_id
        self.expected_frame = expected_frame


# ============================================================================
# Vector Helpers
# ============================================================================


def as_vector(values: Sequence[float]) -> np.ndarray:
    """Convert a 2- or 3-element sequence to a float 3-vector (z defaults to 0)."""
    vector = np.zeros(3)
    values = np.asarray(values, dtype=float).ravel()
    if values.size not in (2, 3):
        raise ValueError(f"Expected 2 or 3 components, got {values.size}")
    vector[: values.size] = values
    return vector


def normalize(vector: np.ndarray, epsilon: float = VECTOR_EPSILON) -> np.ndarray:
    """Return the unit vector along `vector`, or a zero vector if it is degenerate.

    Args:
        vector: Vector to normalize.
        epsilon: Lengths below this are treated as zero.

    Returns:
        Unit vector, or zeros of the same shape when |vector| < epsilon.
        Never divides by zero and never produces NaN.

    Example:
        >>> normalize(np.array([3.0, 4.0, 0.0]))
        array([0.6, 0.8, 0. ])
    """
    length = float(np.linalg.norm(vector))
    if length < epsilon:
        return np.zeros_like(vector, dtype=float)
    return vector / length


def sign(value: float) -> float:
    """Sign of `value` as -1.0, 0.0 or 1.0."""
    if value > 0:
        return 1.0
    if value < 0:
        return -1.0
    return 0.0


def quaternion_to_yaw(x: float, y: float, z: float, w: float) -> float:
    """Convert a quaternion into yaw angle (rotation about z, radians)."""
    siny_cosp = 2.0 * (w * z + x * y)
    cosy_cosp = 1.0 - 2.0 * (y * y + z * z)
    return math.atan2(siny_cosp, cosy_cosp)


def yaw_to_quaternion(yaw: float) -> Tuple[float, float, float, float]:
    """Quaternion (x, y, z, w) for a pure rotation about z."""
    return 0.0, 0.0, math.sin(yaw / 2.0), math.cos(yaw / 2.0)


# ============================================================================
# Inputs
# ============================================================================


@dataclass
class PoseStamped:
    """A pose tagged with the frame it is expressed in.

    Attributes:
        frame_id: Coordinate frame identifier (e.g. "/base_link").
        position: (x, y, z) in meters.
        orientation: Quaternion (x, y, z, w).
    """

    frame_id: str
    position: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    orientation: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)

    @property
    def yaw(self) -> float:
        return quaternion_to_yaw(*self.orientation)

    @classmethod
    def from_xy_yaw(
        cls, x: float, y: float, yaw: float = 0.0, frame_id: str = TRACKING_FRAME
    ) -> "PoseStamped":
        """Build a planar pose from x, y and heading."""
        return cls(frame_id=frame_id, position=(x, y, 0.0), orientation=yaw_to_quaternion(yaw))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PoseStamped":
        """Parse a goal message: {"frame_id", "position": [...], "orientation": [...]}.

        Raises:
            KeyError: If frame_id or position is missing.
            ValueError: If position or orientation has the wrong length.
        """
        position = tuple(float(v) for v in as_vector(data["position"]))
        orientation = tuple(float(v) for v in data.get("orientation", (0.0, 0.0, 0.0, 1.0)))
        if len(orientation) != 4:
            raise ValueError(f"Orientation must be a quaternion (x, y, z, w), got {orientation}")
        return cls(frame_id=str(data["frame_id"]), position=position, orientation=orientation)


@dataclass(frozen=True)
class RangeScan:
    """A single range-sensor snapshot.

    Beam i is measured at angle_min + i * angle_increment. The ranges array is
    copied and made read-only on construction, so a stored snapshot can be
    shared between threads without further copying.

    Attributes:
        frame_id: Frame of the sensor that produced the scan.
        angle_min: Angle of beam 0 (rad).
        angle_increment: Angular resolution (rad per beam).
        ranges: Range readings (m), ordered by increasing angle.
        stamp: Optional acquisition time (seconds).
    """

    frame_id: str
    angle_min: float
    angle_increment: float
    ranges: np.ndarray
    stamp: Optional[float] = None

    def __post_init__(self) -> None:
        ranges = np.array(self.ranges, dtype=float).ravel()
        ranges.setflags(write=False)
        object.__setattr__(self, "ranges", ranges)

    @property
    def beam_count(self) -> int:
        return int(self.ranges.size)

    def beam_angle(self, index: int) -> float:
        """Angle (rad) of beam `index` in the sensor frame."""
        return self.angle_min + index * self.angle_increment

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RangeScan":
        """Parse a scan message: {"frame_id", "angle_min", "angle_increment", "ranges"}."""
        stamp = data.get("stamp")
        return cls(
            frame_id=str(data["frame_id"]),
            angle_min=float(data["angle_min"]),
            angle_increment=float(data["angle_increment"]),
            ranges=np.asarray(data["ranges"], dtype=float),
            stamp=float(stamp) if stamp is not None else None,
        )


# ============================================================================
# Controller Types
# ============================================================================


@dataclass
class Goal:
    """Goal relative to the robot, in the tracking frame.

    Attributes:
        position: (x, y, z) position error to the goal (m).
        heading: Heading error to the goal (rad).
    """

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    heading: float = 0.0

    def __post_init__(self) -> None:
        self.position = as_vector(self.position)

    @property
    def distance(self) -> float:
        return float(np.linalg.norm(self.position))

    @property
    def planar_distance(self) -> float:
        return float(math.hypot(self.position[0], self.position[1]))

    def without_translation(self) -> "Goal":
        """Copy of this goal with the position cleared and the heading kept."""
        return Goal(position=np.zeros(3), heading=self.heading)


@dataclass
class VelocityCommand:
    """Velocity command: planar translation and yaw rate.

    Attributes:
        linear: (x, y, z) translational velocity (m/s); z is always 0.
        angular: Yaw rate (rad/s). Pitch and roll rates are always 0.
    """

    linear: np.ndarray = field(default_factory=lambda: np.zeros(3))
    angular: float = 0.0

    def __post_init__(self) -> None:
        self.linear = as_vector(self.linear)
        self.linear[2] = 0.0
        self.angular = float(self.angular)

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.linear))

    def copy(self) -> "VelocityCommand":
        return VelocityCommand(linear=self.linear.copy(), angular=self.angular)

    def to_dict(self) -> Dict[str, Any]:
        """Wire format: {"message_type": "cmd_vel", "linear": [x, y, 0], "angular": [0, 0, wz]}."""
        return {
            "message_type": "cmd_vel",
            "linear": [float(self.linear[0]), float(self.linear[1]), 0.0],
            "angular": [0.0, 0.0, self.angular],
        }


@dataclass
class ControllerState:
    """State carried between control-loop invocations.

    Attributes:
        last_command: Last emitted command (zero before the first invocation).
        last_timestamp: Time of the last computation, None before the first.
    """

    last_command: VelocityCommand = field(default_factory=VelocityCommand)
    last_timestamp: Optional[float] = None


@dataclass(frozen=True)
class Limits:
    """Immutable controller limits.

    Attributes:
        max_vel: Maximum translational velocity (m/s).
        max_acc: Maximum translational acceleration (m/s²).
        max_vel_theta: Maximum yaw rate (rad/s).
        max_acc_theta: Maximum yaw acceleration (rad/s²).
        gain: Braking-law gain.
        min_angle: Heading dead band (rad).
        dist_virtual_wall: Virtual wall distance (m).
        radius_robot: Robot radius (m).
    """

    max_vel: float = MAX_VEL
    max_acc: float = MAX_ACC
    max_vel_theta: float = MAX_VEL_THETA
    max_acc_theta: float = MAX_ACC_THETA
    gain: float = GAIN
    min_angle: float = MIN_ANGLE
    dist_virtual_wall: float = DIST_VIRTUAL_WALL
    radius_robot: float = RADIUS_ROBOT

    # Node parameter names mapped to field names
    PARAM_NAMES = {
        "max_vel_translation": "max_vel",
        "max_acc_translation": "max_acc",
        "max_vel_rotation": "max_vel_theta",
        "max_acc_rotation": "max_acc_theta",
        "gain": "gain",
        "min_angle": "min_angle",
        "dist_vir_wall": "dist_virtual_wall",
        "radius_robot": "radius_robot",
    }

    def __post_init__(self) -> None:
        """Validate the limits.

        Raises:
            ValueError: If a velocity, acceleration, gain or wall distance is not
                positive, or the robot radius or dead band is negative.
        """
        for name in ("max_vel", "max_acc", "max_vel_theta", "max_acc_theta", "gain",
                     "dist_virtual_wall"):
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"Limit {name} must be positive, got {value}")
        for name in ("radius_robot", "min_angle"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"Limit {name} must not be negative, got {value}")

    @classmethod
    def from_params(cls, params: Mapping[str, float]) -> "Limits":
        """Build limits from node parameter names, falling back to defaults.

        Args:
            params: Mapping of parameter name (e.g. "max_vel_translation") to value.
                Field names (e.g. "max_vel") are accepted as well.

        Raises:
            ValueError: On an unknown parameter name or invalid value.
        """
        kwargs: Dict[str, float] = {}
        known = set(cls.PARAM_NAMES.values())
        for name, value in params.items():
            field_name = cls.PARAM_NAMES.get(name, name)
            if field_name not in known:
                raise ValueError(f"Unknown controller parameter: {name}")
            kwargs[field_name] = float(value)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, float]:
        """Convert to a {parameter name: value} dictionary for logging."""
        return {param: getattr(self, attr) for param, attr in self.PARAM_NAMES.items()}


@dataclass
class CarrotMarker:
    """Line from the robot origin to the current goal, for external display.

    Attributes:
        frame_id: Frame the points are expressed in (the tracking frame).
        points: Line strip vertices (x, y, z).
        namespace: Marker namespace.
        width: Line width (m).
        color: RGBA colour, components in [0, 1].
    """

    frame_id: str
    points: List[Tuple[float, float, float]]
    namespace: str = MARKER_NAMESPACE
    width: float = MARKER_WIDTH
    color: Tuple[float, float, float, float] = MARKER_COLOR

    @classmethod
    def from_goal(cls, goal: Goal, frame_id: str = TRACKING_FRAME) -> "CarrotMarker":
        """Line strip from (0, 0) to the goal position, both at marker height."""
        return cls(
            frame_id=frame_id,
            points=[
                (0.0, 0.0, MARKER_HEIGHT),
                (float(goal.position[0]), float(goal.position[1]), MARKER_HEIGHT),
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire format of the marker message."""
        return {
            "message_type": "marker",
            "frame_id": self.frame_id,
            "ns": self.namespace,
            "type": "line_strip",
            "width": self.width,
            "color": list(self.color),
            "points": [list(p) for p in self.points],
        }
