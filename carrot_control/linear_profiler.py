"""Bounded-acceleration translational velocity profiler.

The desired speed follows the minimum-distance braking law

    v_desired = min(v_max, gain * sqrt(2 * d * a_max))

which is the speed from which the robot can still stop exactly at the goal
(distance d) when braking at a_max. The desired velocity points at the goal;
the step from the previous command towards it is limited to a_max * dt.
"""

import math
from enum import Enum
from typing import Optional

import numpy as np

from .config import NEAR_GOAL_DISTANCE
from .model import Limits, normalize


class LinearBranch(Enum):
    """Which rule produced the last linear command."""

    RATE_LIMITED = "rate_limited"
    NEAR_GOAL = "near_goal"
    CRUISE = "cruise"


class LinearVelocityProfiler:
    """Computes the translational command from the goal position error.

    Attributes:
        limits: Controller limits (max_vel, max_acc, gain).
        near_goal_distance: Planar distance below which the NEAR_GOAL branch applies.
        last_branch: Branch taken by the most recent call, None before the first.
        last_desired: Unconstrained desired velocity of the most recent call.
    """

    def __init__(self, limits: Limits, near_goal_distance: float = NEAR_GOAL_DISTANCE) -> None:
        self.limits = limits
        self.near_goal_distance = near_goal_distance
        self.last_branch: Optional[LinearBranch] = None
        self.last_desired: np.ndarray = np.zeros(3)

    def desired_speed(self, error_norm: float) -> float:
        """Braking-law speed for a remaining distance of `error_norm` meters."""
        if error_norm <= 0:
            return 0.0
        return min(
            self.limits.max_vel,
            self.limits.gain * math.sqrt(2.0 * error_norm * self.limits.max_acc),
        )

    def compute(self, error: np.ndarray, previous: np.ndarray, dt: float) -> np.ndarray:
        """Compute the next translational velocity.

        Args:
            error: Position error to the goal (x, y, z) in meters.
            previous: Previously commanded translational velocity (m/s).
            dt: Time since the previous command (s), must be positive.

        Returns:
            New translational velocity (x, y, 0) with |v| <= max_vel and
            |v - previous| <= max_acc * dt.
        """
        error_norm = float(np.linalg.norm(error))
        desired = normalize(error) * self.desired_speed(error_norm)
        self.last_desired = desired

        vel_diff = desired - previous
        acc_desired = float(np.linalg.norm(vel_diff)) / dt

        if acc_desired > self.limits.max_acc:
            self.last_branch = LinearBranch.RATE_LIMITED
            command = previous + normalize(vel_diff) * self.limits.max_acc * dt
        elif math.hypot(error[0], error[1]) < self.near_goal_distance:
            # Output matches CRUISE; the branch only marks the near-goal band
            self.last_branch = LinearBranch.NEAR_GOAL
            command = desired.copy()
        else:
            self.last_branch = LinearBranch.CRUISE
            command = desired.copy()

        command[2] = 0.0
        return command
