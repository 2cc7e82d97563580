"""Trapezoidal single-axis velocity profile.

Generates the next velocity reference for one axis so that a position error
is closed in minimum time under a velocity bound and an acceleration bound.
Each step is in one of four phases:

- STILL: at rest with the error inside the dead band eps = 0.5 * a_max * dt
- ACCELERATE: speed += a_max * dt, clamped to v_max
- CONSTANT: cruise at v_max
- DECELERATE: speed -= a_max * dt, snapped to 0 below eps

The profile decelerates as soon as the stopping distance v² / (2 a_max)
reaches the remaining error, and whenever the axis moves away from the target.
While decelerating the direction of travel is kept, so a sign change of the
error is handled by braking through zero and then accelerating the other way.
"""

from enum import Enum
from typing import Optional

from .model import sign


class ProfilePhase(Enum):
    """Phase of the trapezoidal profile."""

    STILL = "still"
    ACCELERATE = "accelerate"
    CONSTANT = "constant"
    DECELERATE = "decelerate"


def stopping_distance(speed: float, max_acc: float) -> float:
    """Distance needed to stop from `speed` at deceleration `max_acc`."""
    stop_time = abs(speed) / max_acc
    return 0.5 * max_acc * stop_time * stop_time


def select_phase(
    error: float, current_vel: float, max_vel: float, max_acc: float, dt: float
) -> ProfilePhase:
    """Decide the profile phase for the next step.

    Args:
        error: Remaining position error (signed).
        current_vel: Current velocity reference (signed).
        max_vel: Velocity bound (positive).
        max_acc: Acceleration bound (positive).
        dt: Step duration (positive).

    Returns:
        The phase the next step is taken in.
    """
    eps = 0.5 * max_acc * dt
    speed = abs(current_vel)
    distance = abs(error)

    if speed == 0.0 and distance <= eps:
        return ProfilePhase.STILL

    if stopping_distance(speed, max_acc) >= distance:
        return ProfilePhase.DECELERATE
    if sign(current_vel) * error < 0 and speed != 0.0:
        # Target lies behind the direction of travel
        return ProfilePhase.DECELERATE
    if speed >= max_vel:
        return ProfilePhase.CONSTANT
    return ProfilePhase.ACCELERATE


def determine_reference(
    error: float, current_vel: float, max_vel: float, max_acc: float, dt: float
) -> float:
    """Compute the next velocity reference.

    Args:
        error: Remaining position error (signed).
        current_vel: Current velocity reference (signed).
        max_vel: Velocity bound (positive).
        max_acc: Acceleration bound (positive).
        dt: Step duration (positive).

    Returns:
        New velocity reference, |result| <= max(max_vel, |current_vel|).

    Example:
        >>> determine_reference(2.0, 0.0, 0.3, 0.25, 0.1)
        0.025
    """
    phase = select_phase(error, current_vel, max_vel, max_acc, dt)
    return _apply_phase(phase, error, current_vel, max_vel, max_acc, dt)


def _apply_phase(
    phase: ProfilePhase,
    error: float,
    current_vel: float,
    max_vel: float,
    max_acc: float,
    dt: float,
) -> float:
    speed = abs(current_vel)

    if phase is ProfilePhase.STILL:
        return 0.0

    if phase is ProfilePhase.ACCELERATE:
        speed = min(speed + max_acc * dt, max_vel)
        direction = sign(error)
    elif phase is ProfilePhase.CONSTANT:
        direction = sign(error)
    else:
        speed = max(speed - max_acc * dt, 0.0)
        if speed < 0.5 * max_acc * dt:
            speed = 0.0
        direction = sign(current_vel)

    return direction * speed


class AngularVelocityProfiler:
    """Yaw-rate profiler bound to fixed limits.

    Attributes:
        max_vel: Maximum yaw rate (rad/s).
        max_acc: Maximum yaw acceleration (rad/s²).
        last_phase: Phase of the most recent step, None before the first.
    """

    def __init__(self, max_vel: float, max_acc: float) -> None:
        if not max_vel > 0 or not max_acc > 0:
            raise ValueError(
                f"Profile limits must be positive, got max_vel={max_vel}, max_acc={max_acc}"
            )
        self.max_vel = max_vel
        self.max_acc = max_acc
        self.last_phase: Optional[ProfilePhase] = None

    def determine_reference(self, error: float, current_vel: float, dt: float) -> float:
        """Next yaw-rate reference for heading error `error` (see module docstring)."""
        self.last_phase = select_phase(error, current_vel, self.max_vel, self.max_acc, dt)
        return _apply_phase(
            self.last_phase, error, current_vel, self.max_vel, self.max_acc, dt
        )
