"""
Visualization utilities for recorded control runs.

This module loads the ``ticks.csv`` / ``skips.csv`` files written by
``DataCollector`` and draws tracking-error and command plots.
"""

import csv
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes
from matplotlib.figure import Figure

from .config import PLOT_BLUE, PLOT_ORANGE, PLOT_TAUPE

TEXT_COLUMNS = {"command", "reason"}
"""Columns kept as strings when loading run CSVs."""


def load_csv_to_dict(csv_path: Path) -> Dict[str, np.ndarray]:
    """Load a run CSV into a dictionary of numpy arrays.

    Numeric columns become float arrays (empty or invalid cells become NaN);
    columns in ``TEXT_COLUMNS`` stay as string arrays.

    Args:
        csv_path: Path to CSV file.

    Returns:
        Dictionary mapping column names to numpy arrays.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        columns: Dict[str, list] = {name: [] for name in reader.fieldnames or []}
        for row in reader:
            for key, value in row.items():
                if key in TEXT_COLUMNS:
                    columns[key].append(value or "")
                    continue
                try:
                    columns[key].append(float(value))
                except (ValueError, TypeError):
                    columns[key].append(np.nan)

    return {
        key: np.array(values, dtype=str if key in TEXT_COLUMNS else float)
        for key, values in columns.items()
    }


def load_tick_data(run_dir: Path) -> Dict[str, np.ndarray]:
    """Load ``ticks.csv`` from a run directory.

    Raises:
        FileNotFoundError: If the run has no ticks.csv.
        ValueError: If required columns are missing.
    """
    data = load_csv_to_dict(run_dir / "ticks.csv")
    required = {"timestamp", "cte", "epsi", "v", "steering", "actuation", "command"}
    missing = sorted(required - set(data))
    if missing:
        raise ValueError(f"ticks.csv is missing columns: {', '.join(missing)}")
    return data


def load_skip_data(run_dir: Path) -> Optional[Dict[str, np.ndarray]]:
    """Load ``skips.csv`` if the run has one."""
    path = run_dir / "skips.csv"
    if not path.exists():
        return None
    return load_csv_to_dict(path)


def style_axis(ax: Axes, title: str = "", xlabel: str = "", ylabel: str = "") -> None:
    if title:
        ax.set_title(title, fontweight="bold")
    if xlabel:
        ax.set_xlabel(xlabel)
    if ylabel:
        ax.set_ylabel(ylabel)
    ax.grid(True, alpha=0.3, linestyle="--", linewidth=0.5)


def relative_time(timestamps: np.ndarray, origin: Optional[float] = None) -> np.ndarray:
    """Shift timestamps so the run starts at zero."""
    if len(timestamps) == 0:
        return timestamps
    start = timestamps[0] if origin is None else origin
    return timestamps - start


def plot_tracking_errors(
    ticks: Dict[str, np.ndarray], title: str = "Tracking Errors", save_path: Optional[Path] = None
) -> Figure:
    """Plot latency-compensated cross-track and heading errors over time.

    Args:
        ticks: Data returned by ``load_tick_data``.
        title: Figure title.
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    t = relative_time(ticks["timestamp"])

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)
    fig.suptitle(title, fontsize=14, fontweight="bold")

    ax1.plot(t, ticks["cte"], color=PLOT_ORANGE, linewidth=1.5)
    ax1.axhline(0.0, color=PLOT_TAUPE, linewidth=0.8)
    style_axis(ax1, title="Cross-track error", ylabel="CTE (m)")

    ax2.plot(t, np.degrees(ticks["epsi"]), color=PLOT_BLUE, linewidth=1.5)
    ax2.axhline(0.0, color=PLOT_TAUPE, linewidth=0.8)
    style_axis(ax2, title="Heading error", xlabel="Time (s)", ylabel="EPSI (deg)")

    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
    return fig


def plot_commands(
    ticks: Dict[str, np.ndarray],
    skips: Optional[Dict[str, np.ndarray]] = None,
    title: str = "Commands",
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot steering and actuation, colouring actuation by throttle or brake.

    Skipped ticks are marked as vertical lines on both axes.

    Args:
        ticks: Data returned by ``load_tick_data``.
        skips: Optional data returned by ``load_skip_data``.
        title: Figure title.
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    origin = ticks["timestamp"][0] if len(ticks["timestamp"]) else None
    t = relative_time(ticks["timestamp"], origin)
    throttle = ticks["command"] == "throttle"

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)
    fig.suptitle(title, fontsize=14, fontweight="bold")

    ax1.plot(t, np.degrees(ticks["steering"]), color=PLOT_BLUE, linewidth=1.5)
    style_axis(ax1, title="Steering", ylabel="Angle (deg)")

    ax2.plot(t, ticks["actuation"], color=PLOT_TAUPE, linewidth=0.8, alpha=0.6)
    ax2.scatter(t[throttle], ticks["actuation"][throttle], s=8, color=PLOT_BLUE, label="Throttle")
    ax2.scatter(t[~throttle], ticks["actuation"][~throttle], s=8, color=PLOT_ORANGE, label="Brake")
    ax2.axhline(0.0, color=PLOT_TAUPE, linewidth=0.8)
    style_axis(ax2, title="Actuation", xlabel="Time (s)", ylabel="Signed actuation")
    ax2.legend(loc="best", framealpha=0.9, edgecolor=PLOT_TAUPE)

    if skips is not None and origin is not None:
        for skip_t in relative_time(skips["timestamp"], origin):
            for ax in (ax1, ax2):
                ax.axvline(skip_t, color=PLOT_ORANGE, alpha=0.3, linewidth=0.8)

    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
    return fig


def plot_run_summary(run_dir: Path, save_plots: bool = False, show_plots: bool = True) -> List[Figure]:
    """Generate summary plots for a complete run.

    Args:
        run_dir: Directory containing ticks.csv (and optionally skips.csv).
        save_plots: If True, save plots to run directory.
        show_plots: If True, display plots interactively.

    Returns:
        The generated figures.

    Raises:
        FileNotFoundError: If ticks.csv is not found.
    """
    ticks = load_tick_data(run_dir)
    skips = load_skip_data(run_dir)
    run_name = run_dir.name

    figures = [
        plot_tracking_errors(
            ticks,
            title=f"{run_name} - Tracking Errors",
            save_path=run_dir / "tracking_errors.png" if save_plots else None,
        ),
        plot_commands(
            ticks,
            skips,
            title=f"{run_name} - Commands",
            save_path=run_dir / "commands.png" if save_plots else None,
        ),
    ]

    if show_plots:
        plt.show()
    else:
        for fig in figures:
            plt.close(fig)

    return figures
