"""Configuration parameters for the carrot controller.

This module centralizes all configuration parameters including:
- Coordinate frames
- Default velocity/acceleration limits
- Safety gate and profiler thresholds
- Visualization settings
- WebSocket connection parameters

All parameters are documented with their purpose and valid ranges.
"""

import math

# ============================================================================
# Coordinate Frames
# ============================================================================

TRACKING_FRAME = "/base_link"
"""Frame in which goals must be expressed. Goals in any other frame are rejected."""

FRONT_LASER_FRAME = "/front_laser"
"""Frame id of the front range sensor. Scans from other frames are discarded."""


# ============================================================================
# Default Limits (overridable via Limits.from_params / --param)
# ============================================================================

MAX_VEL = 0.5
"""Maximum translational velocity (m/s). Parameter name: max_vel_translation."""

MAX_ACC = 0.15
"""Maximum translational acceleration (m/s²). Parameter name: max_acc_translation."""

MAX_VEL_THETA = 0.3
"""Maximum rotational velocity (rad/s). Parameter name: max_vel_rotation."""

MAX_ACC_THETA = 0.25
"""Maximum rotational acceleration (rad/s²). Parameter name: max_acc_rotation."""

GAIN = 0.9
"""Braking-law gain (range: (0, 1]).

Scales the minimum-distance speed gain * sqrt(2 * d * a_max). Values below 1
keep the robot under the speed from which it could just stop at the goal.
"""

MIN_ANGLE = math.pi / 14
"""Heading dead band (rad). Goal headings with smaller magnitude are snapped to 0."""

DIST_VIRTUAL_WALL = 0.50
"""Virtual wall distance (m). Closer readings in front forbid translation."""

RADIUS_ROBOT = 0.25
"""Robot radius (m). Sets the angular width of the virtual wall window."""


# ============================================================================
# Numerical Guards and Thresholds
# ============================================================================

MIN_DT = 1e-3
"""Substitute time step (s) for the first invocation or a non-increasing clock.

Keeps every division by dt finite. Small enough that the first command after
start-up is rate limited to (almost) zero.
"""

VECTOR_EPSILON = 1e-6
"""Vectors shorter than this (m) have no defined direction and normalize to zero."""

MIN_VALID_RANGE = 0.01
"""Range readings at or below this value (m) are treated as invalid returns."""

NEAR_GOAL_DISTANCE = 1.5
"""Planar goal distance (m) below which the linear profiler reports NEAR_GOAL."""


# ============================================================================
# Carrot Marker (visualization output)
# ============================================================================

MARKER_NAMESPACE = "carrot"
"""Namespace of the published carrot marker."""

MARKER_HEIGHT = 0.05
"""Height (m) at which the carrot line is drawn above the floor."""

MARKER_WIDTH = 0.05
"""Line width (m) of the carrot marker."""

MARKER_COLOR = (1.0, 0.5, 0.0, 1.0)
"""RGBA colour of the carrot marker (orange, opaque)."""


# ============================================================================
# Visualization Colors
# ============================================================================

CARROT_ORANGE = "#f78a23"
"""Primary colour - commands, carrot line, measured data."""

LIMIT_BLUE = "#2374f7"
"""Secondary colour - limits, references, virtual wall window."""

PAPER_CREAM = "#fffdee"
"""Light colour for text on dark backgrounds."""

GUIDE_TAUPE = "#686a5f"
"""Neutral colour for guides, grids, and secondary elements."""

BLOCKED_RED = "#d62828"
"""Accent colour for blocked intervals and obstructing beams."""

# Terminal color codes (ANSI escape sequences)
TERM_ORANGE = "\033[38;2;247;138;35m"
"""Terminal color code for carrot orange (RGB: 247, 138, 35)."""

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for limit blue (RGB: 35, 116, 247)."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""


# ============================================================================
# WebSocket Configuration
# ============================================================================

WS_URI = "ws://localhost:8765"
"""WebSocket server URI delivering goals and scans."""

WS_RETRY_DELAY_SECONDS = 1
"""Initial retry delay for failed WebSocket connections (seconds)."""

WS_MAX_RETRY_DELAY_SECONDS = 60
"""Maximum retry delay with exponential backoff (seconds)."""

WS_TIMEOUT_SECONDS = 5.0
"""Timeout for WebSocket message reception (seconds)."""
