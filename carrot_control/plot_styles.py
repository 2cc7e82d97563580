"""Shared plotting utilities and styles for carrot controller visualizations.

This module provides:
- Color scheme
- CSV data loading
- Common plot styling functions

All visualization modules should import from this module to ensure consistency.
"""

import csv
from pathlib import Path
from typing import Dict, List

import numpy as np
from matplotlib.axes import Axes

from .config import (
    BLOCKED_RED,
    CARROT_ORANGE,
    GUIDE_TAUPE,
    LIMIT_BLUE,
    PAPER_CREAM,
)

__all__ = [
    "CARROT_ORANGE",
    "LIMIT_BLUE",
    "PAPER_CREAM",
    "GUIDE_TAUPE",
    "BLOCKED_RED",
    "load_csv_to_dict",
    "style_axis",
    "add_legend",
]


# ============================================================================
# CSV Data Loading
# ============================================================================


def load_csv_to_dict(csv_path: Path) -> Dict[str, np.ndarray]:
    """Load CSV file into dictionary of numpy arrays.

    Numeric values become floats. Columns that contain no numeric value at all
    (e.g. profiler branch names) are kept as string arrays; other non-numeric
    or empty values become NaN.

    Args:
        csv_path: Path to CSV file.

    Returns:
        Dictionary mapping column names to numpy arrays.

    Raises:
        FileNotFoundError: If the CSV file does not exist.

    Example:
        >>> data = load_csv_to_dict(Path("commands.csv"))
        >>> data["linear_x"].shape
        (500,)
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        raw: Dict[str, List[str]] = {name: [] for name in reader.fieldnames or []}
        for row in reader:
            for key, value in row.items():
                raw[key].append(value)

    data: Dict[str, np.ndarray] = {}
    for key, values in raw.items():
        numbers: List[float] = []
        numeric_found = False
        for value in values:
            try:
                numbers.append(float(value))
                numeric_found = True
            except (ValueError, TypeError):
                numbers.append(np.nan)
        data[key] = np.array(numbers) if numeric_found or not values else np.array(values)
    return data


# ============================================================================
# Plot Styling Functions
# ============================================================================


def style_axis(ax: Axes, title: str = "", xlabel: str = "", ylabel: str = "", grid: bool = True) -> None:
    """Apply consistent styling to a matplotlib axis.

    Args:
        ax: Matplotlib axis to style.
        title: Plot title (optional).
        xlabel: X-axis label (optional).
        ylabel: Y-axis label (optional).
        grid: Whether to show grid lines (default: True).
    """
    if title:
        ax.set_title(title, fontweight="bold")
    if xlabel:
        ax.set_xlabel(xlabel)
    if ylabel:
        ax.set_ylabel(ylabel)
    if grid:
        ax.grid(True, alpha=0.3, linestyle="--", linewidth=0.5)


def add_legend(ax: Axes, loc: str = "best", **kwargs) -> None:
    """Add a legend with the shared styling.

    Args:
        ax: Matplotlib axis to add legend to.
        loc: Legend location (default: "best").
        **kwargs: Additional keyword arguments passed to ax.legend().
    """
    legend_kwargs = {
        "loc": loc,
        "framealpha": 0.9,
        "edgecolor": GUIDE_TAUPE,
    }
    legend_kwargs.update(kwargs)
    ax.legend(**legend_kwargs)
