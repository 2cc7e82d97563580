"""Data collection and CSV logging for carrot controller runs.

This module provides CSV data logging for:
- Goals (as received and as stored after the heading dead band)
- Velocity commands with controller diagnostics (gate decision, profiler branches)
- Accepted range scans (beam count and closest valid reading)
"""

import csv
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

import numpy as np

from .config import MIN_VALID_RANGE, TERM_BLUE, TERM_RESET
from .model import Goal, PoseStamped, RangeScan

GOAL_COLUMNS = ["timestamp", "frame_id", "x", "y", "z", "yaw", "heading"]
COMMAND_COLUMNS = [
    "timestamp",
    "dt",
    "blocked",
    "goal_x",
    "goal_y",
    "goal_heading",
    "desired_x",
    "desired_y",
    "linear_x",
    "linear_y",
    "angular",
    "linear_branch",
    "angular_phase",
]
SCAN_COLUMNS = ["timestamp", "beam_count", "angle_min", "angle_increment", "min_range"]


class DataCollector:
    """Manages CSV file creation and logging for controller data.

    Attributes:
        run_dir: Directory path for this run's output files.
        goals_output_path: Path of the goals CSV.
        commands_output_path: Path of the commands CSV.
        scans_output_path: Path of the scans CSV.
    """

    def __init__(self, output_dir: str = ".", run_dir: Optional[str] = None) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates timestamped
                directory. Can also be set via RUN_DIR environment variable.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self.goals_csv_file: Optional[TextIO] = None
        self.goals_csv_writer: Any = None
        self.commands_csv_file: Optional[TextIO] = None
        self.commands_csv_writer: Any = None
        self.scans_csv_file: Optional[TextIO] = None
        self.scans_csv_writer: Any = None

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / "results" / f"run_{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.goals_output_path: Path = self.run_dir / "goals.csv"
        self.commands_output_path: Path = self.run_dir / "commands.csv"
        self.scans_output_path: Path = self.run_dir / "scans.csv"

    def setup(self) -> None:
        """Create the CSV files and write their headers.

        Must be called before writing data.
        """
        self.goals_csv_file = open(self.goals_output_path, "w", newline="")
        self.goals_csv_writer = csv.writer(self.goals_csv_file)
        self.goals_csv_writer.writerow(GOAL_COLUMNS)
        self.goals_csv_file.flush()

        self.commands_csv_file = open(self.commands_output_path, "w", newline="")
        self.commands_csv_writer = csv.writer(self.commands_csv_file)
        self.commands_csv_writer.writerow(COMMAND_COLUMNS)
        self.commands_csv_file.flush()

        self.scans_csv_file = open(self.scans_output_path, "w", newline="")
        self.scans_csv_writer = csv.writer(self.scans_csv_file)
        self.scans_csv_writer.writerow(SCAN_COLUMNS)
        self.scans_csv_file.flush()

        logging.info(
            f"{TERM_BLUE}✓ Initialized data collection to results/{self.run_dir.name}/{TERM_RESET}"
        )

    def log_goal(self, timestamp: float, pose: PoseStamped, goal: Goal) -> None:
        """Log a received goal and the heading actually stored for it.

        Args:
            timestamp: Time the goal was processed (seconds).
            pose: Goal pose as received.
            goal: Stored goal (heading after the dead band).
        """
        x, y, z = pose.position
        self.goals_csv_writer.writerow([timestamp, pose.frame_id, x, y, z, pose.yaw, goal.heading])
        if self.goals_csv_file:
            self.goals_csv_file.flush()

    def log_command(self, diagnostics: Dict[str, Any]) -> None:
        """Log a velocity command with its controller diagnostics.

        Args:
            diagnostics: Dictionary from CarrotController.get_diagnostics().
        """
        row = [diagnostics[column] for column in COMMAND_COLUMNS]
        row[COMMAND_COLUMNS.index("blocked")] = int(diagnostics["blocked"])
        self.commands_csv_writer.writerow(row)
        if self.commands_csv_file:
            self.commands_csv_file.flush()

    def log_scan(self, timestamp: float, scan: RangeScan) -> None:
        """Log a summary of an accepted range scan.

        Args:
            timestamp: Scan time (seconds).
            scan: The accepted snapshot.
        """
        valid = scan.ranges[np.isfinite(scan.ranges) & (scan.ranges > MIN_VALID_RANGE)]
        min_range = float(valid.min()) if valid.size else ""
        self.scans_csv_writer.writerow(
            [timestamp, scan.beam_count, scan.angle_min, scan.angle_increment, min_range]
        )
        if self.scans_csv_file:
            self.scans_csv_file.flush()

    def cleanup(self) -> None:
        """Close all CSV files and log final output location."""
        if self.goals_csv_file:
            self.goals_csv_file.close()
        if self.commands_csv_file:
            self.commands_csv_file.close()
        if self.scans_csv_file:
            self.scans_csv_file.close()

        logging.info(f"{TERM_BLUE}✓ Saved run data to results/{self.run_dir.name}/{TERM_RESET}")

    def __enter__(self) -> "DataCollector":
        """Context manager entry point.

        Returns:
            Self reference for use in with statement.
        """
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit point - ensures cleanup is called."""
        self.cleanup()
