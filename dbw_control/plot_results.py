#!/usr/bin/env python3
"""
Plot recorded control runs.

    python -m dbw_control.plot_results --latest --save --no-show
    python -m dbw_control.plot_results --run-dir results/run_20250101_120000
    python -m dbw_control.plot_results --list
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import TERM_BLUE, TERM_RESET
from .visualization import plot_run_summary


def available_runs(results_dir: Path) -> List[Path]:
    """Return run directories in chronological order.

    Raises:
        FileNotFoundError: If the results directory does not exist.
    """
    if not results_dir.is_dir():
        raise FileNotFoundError(f"Results directory not found: {results_dir}")
    return sorted(d for d in results_dir.iterdir() if d.is_dir() and d.name.startswith("run_"))


def find_latest_run(results_dir: Path) -> Path:
    """Return the most recent run directory.

    Raises:
        FileNotFoundError: If there is no results directory or no run in it.
    """
    runs = available_runs(results_dir)
    if not runs:
        raise FileNotFoundError(f"No run directories found in {results_dir}")
    return runs[-1]


def resolve_run_dir(args: argparse.Namespace) -> Path:
    """Pick the run to plot from the command-line arguments."""
    if args.run_dir and not args.latest:
        run_dir = Path(args.run_dir)
        if not run_dir.is_dir():
            raise FileNotFoundError(f"Run directory not found: {run_dir}")
        return run_dir
    run_dir = find_latest_run(Path(args.results_dir))
    logging.info(f"{TERM_BLUE}Plotting most recent run: {run_dir}{TERM_RESET}")
    return run_dir


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(description="Plot recorded drive-by-wire control runs")
    parser.add_argument("--run-dir", help="Run directory to plot")
    parser.add_argument("--latest", action="store_true", help="Plot the most recent run (default)")
    parser.add_argument("--results-dir", default="results", help="Directory holding run_* folders")
    parser.add_argument("--save", action="store_true", help="Save PNG files into the run directory")
    parser.add_argument("--no-show", action="store_true", help="Do not open plot windows")
    parser.add_argument("--list", action="store_true", help="List available runs and exit")
    args = parser.parse_args(argv)

    try:
        if args.list:
            for i, run_dir in enumerate(available_runs(Path(args.results_dir)), 1):
                logging.info(f"  {i}. {run_dir.name}")
            return

        run_dir = resolve_run_dir(args)
        plot_run_summary(run_dir=run_dir, save_plots=args.save, show_plots=not args.no_show)
    except (FileNotFoundError, ValueError) as e:
        logging.error(f"Error: {e}")
        sys.exit(1)

    if args.save:
        logging.info(f"{TERM_BLUE}✓ Saved plots to {run_dir}/{TERM_RESET}")


if __name__ == "__main__":
    main()
