"""
Visualization utilities for carrot controller runs.

This module provides functions to plot the command history of a run
(translational speed and yaw rate against their limits, with blocked
intervals shaded) and a single range scan with the virtual wall window and
carrot line drawn on top.
"""

import math
from pathlib import Path
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure

from .config import MIN_VALID_RANGE
from .model import Goal, Limits, RangeScan
from .plot_styles import (
    BLOCKED_RED,
    CARROT_ORANGE,
    GUIDE_TAUPE,
    LIMIT_BLUE,
    PAPER_CREAM,
    add_legend,
    load_csv_to_dict,
    style_axis,
)
from .safety_gate import SafetyGate
from .scan_buffer import RangeScanBuffer


def parse_command_data(filepath: Path) -> Dict[str, np.ndarray]:
    """Parse commands.csv into numpy arrays.

    Args:
        filepath: Path to the commands CSV file.

    Returns:
        Dictionary of column arrays plus 'time' (seconds since the first
        command) and 'speed' (translational speed).

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        ValueError: If required columns are missing.
    """
    data = load_csv_to_dict(filepath)

    required = ["timestamp", "linear_x", "linear_y", "angular", "blocked"]
    missing = [column for column in required if column not in data]
    if missing:
        raise ValueError(f"Missing columns in {filepath.name}: {missing}")

    timestamps = data["timestamp"]
    data["time"] = timestamps - timestamps[0] if timestamps.size else timestamps
    data["speed"] = np.hypot(data["linear_x"], data["linear_y"])
    return data


def plot_command_history(
    command_data: Dict[str, np.ndarray],
    limits: Optional[Limits] = None,
    title: str = "Velocity Commands",
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot translational speed and yaw rate over time.

    Args:
        command_data: Output of parse_command_data().
        limits: Limits drawn as reference lines. Default: Limits().
        title: Figure title.
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    limits = limits if limits is not None else Limits()
    time_s = command_data["time"]
    blocked = command_data["blocked"] > 0

    fig, (ax_lin, ax_ang) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)
    fig.patch.set_facecolor(PAPER_CREAM)
    fig.suptitle(title, fontsize=14, fontweight="bold")

    ax_lin.plot(time_s, command_data["speed"], color=CARROT_ORANGE, label="|v|")
    ax_lin.axhline(limits.max_vel, color=LIMIT_BLUE, linestyle="--", label="max_vel")
    style_axis(ax_lin, title="Translation", ylabel="Speed (m/s)")

    ax_ang.plot(time_s, command_data["angular"], color=CARROT_ORANGE, label="yaw rate")
    ax_ang.axhline(limits.max_vel_theta, color=LIMIT_BLUE, linestyle="--", label="±max_vel_theta")
    ax_ang.axhline(-limits.max_vel_theta, color=LIMIT_BLUE, linestyle="--")
    style_axis(ax_ang, title="Rotation", xlabel="Time (s)", ylabel="Yaw rate (rad/s)")

    # Shade intervals where the virtual wall blocked translation
    for ax in (ax_lin, ax_ang):
        if blocked.any():
            ax.fill_between(
                time_s,
                0,
                1,
                where=blocked,
                transform=ax.get_xaxis_transform(),
                color=BLOCKED_RED,
                alpha=0.15,
                label="blocked",
            )
        add_legend(ax, loc="upper right")

    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")

    return fig


def plot_scan_window(
    scan: RangeScan,
    goal: Optional[Goal] = None,
    limits: Optional[Limits] = None,
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot a range scan in the sensor frame with the virtual wall window.

    Beams inside the window are highlighted and readings that would block
    translation are drawn in red. The carrot line is drawn when a goal is given.

    Args:
        scan: Range snapshot to draw.
        goal: Optional goal (its heading selects the window, its position the carrot).
        limits: Controller limits. Default: Limits().
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    limits = limits if limits is not None else Limits()
    heading = goal.heading if goal is not None else 0.0

    buffer = RangeScanBuffer(front_frame=scan.frame_id)
    buffer.update(scan)
    gate = SafetyGate(buffer, limits)

    indices = np.arange(scan.beam_count)
    angles = scan.angle_min + indices * scan.angle_increment
    ranges = np.where(np.isfinite(scan.ranges), scan.ranges, np.nan)
    xs = ranges * np.cos(angles)
    ys = ranges * np.sin(angles)

    fig, ax = plt.subplots(figsize=(8, 8))
    fig.patch.set_facecolor(PAPER_CREAM)
    ax.scatter(xs, ys, s=4, color=GUIDE_TAUPE, label="scan")

    if scan.angle_increment > 0:
        start, stop = gate.beam_window(scan, heading)
        window = (indices >= start) & (indices < stop)
        close = window & (ranges > MIN_VALID_RANGE) & (ranges < limits.dist_virtual_wall)
        ax.scatter(xs[window], ys[window], s=8, color=LIMIT_BLUE, label="virtual wall window")
        if close.any():
            ax.scatter(xs[close], ys[close], s=16, color=BLOCKED_RED, label="blocking")

    wall = plt.Circle(
        (0.0, 0.0), limits.dist_virtual_wall, fill=False, linestyle="--", color=LIMIT_BLUE
    )
    ax.add_patch(wall)
    robot = plt.Circle((0.0, 0.0), limits.radius_robot, fill=False, color=GUIDE_TAUPE)
    ax.add_patch(robot)

    if goal is not None:
        ax.plot(
            [0.0, goal.position[0]],
            [0.0, goal.position[1]],
            "-",
            color=CARROT_ORANGE,
            linewidth=2.0,
            label="carrot",
        )

    style_axis(
        ax,
        title=f"Scan {scan.frame_id} ({scan.beam_count} beams, "
        f"{math.degrees(scan.angle_increment):.2f} deg)",
        xlabel="X (m)",
        ylabel="Y (m)",
    )
    ax.set_aspect("equal")
    add_legend(ax, loc="upper right")
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")

    return fig


def plot_run_summary(
    run_dir: Path, limits: Optional[Limits] = None, save_plots: bool = False, show_plots: bool = True
) -> Figure:
    """Generate summary plots for a complete run.

    Args:
        run_dir: Directory containing commands.csv.
        limits: Limits drawn as reference lines. Default: Limits().
        save_plots: If True, save plots to run directory.
        show_plots: If True, display plots interactively.

    Returns:
        The command history figure.

    Raises:
        FileNotFoundError: If commands.csv is not found.
    """
    command_data = parse_command_data(run_dir / "commands.csv")

    save_path = run_dir / "commands.png" if save_plots else None
    fig = plot_command_history(
        command_data, limits=limits, title=f"Velocity Commands - {run_dir.name}", save_path=save_path
    )

    if show_plots:
        plt.show()

    return fig
