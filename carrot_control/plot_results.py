#!/usr/bin/env python3
"""
Plot the velocity commands of a recorded carrot controller run.

Picks the named run (or the newest `run_*` directory) under the results
directory and draws its commands.csv with visualization.plot_run_summary.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import TERM_BLUE, TERM_RESET
from .visualization import plot_run_summary


def find_latest_run(results_dir: Path) -> Path:
    """Newest run directory under results_dir.

    Raises:
        FileNotFoundError: If results_dir is missing or holds no run directories.
    """
    if not results_dir.is_dir():
        raise FileNotFoundError(f"Results directory not found: {results_dir}")

    run_dirs = sorted(d for d in results_dir.iterdir() if d.is_dir() and d.name.startswith("run_"))
    if not run_dirs:
        raise FileNotFoundError(f"No run directories found in {results_dir}")
    return run_dirs[-1]


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point. Returns the process exit status."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(description="Plot velocity commands of a carrot controller run")
    parser.add_argument("--run", default=None, help="Run directory name (default: most recent run)")
    parser.add_argument("--results-dir", default="results", help="Results directory (default: results)")
    parser.add_argument("--save", action="store_true", help="Save commands.png in the run directory")
    parser.add_argument("--no-show", action="store_true", help="Do not open a plot window")
    args = parser.parse_args(argv)

    results_dir = Path(args.results_dir)
    try:
        run_dir = results_dir / args.run if args.run else find_latest_run(results_dir)
        plot_run_summary(run_dir=run_dir, save_plots=args.save, show_plots=not args.no_show)
    except (FileNotFoundError, ValueError) as e:
        logging.error(f"Error: {e}")
        return 1

    if args.save:
        logging.info(f"{TERM_BLUE}✓ Saved plots to {run_dir / 'commands.png'}{TERM_RESET}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
