"""Data collection and CSV logging for control loop runs.

This module provides CSV data logging for:
- Control ticks (projected state, fitted coefficients, dispatched command)
- Skipped ticks (reason the pipeline produced no command)
"""

import csv
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence, TextIO

from .config import POLY_DEGREE, TERM_BLUE, TERM_RESET
from .messages import ControlCommand
from .model import VehicleState


class DataCollector:
    """Manages CSV file creation and logging for control loop data.

    This class handles all data logging responsibilities:
    - Creates timestamped output directories
    - Initializes CSV files with headers
    - Buffers one row per dispatched or skipped tick without touching the files
    - Writes buffered rows on demand (``write_pending``), off the control tick
    - Ensures proper cleanup on shutdown

    Attributes:
        run_dir: Directory path for this run's output files.
        ticks_output_path: Path of the dispatched-tick CSV.
        skips_output_path: Path of the skipped-tick CSV.
    """

    def __init__(
        self, output_dir: str = ".", run_dir: Optional[str] = None, degree: int = POLY_DEGREE
    ) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates timestamped
                directory. Can also be set via RUN_DIR environment variable.
            degree: Polynomial degree, sets the number of coefficient columns.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self.degree = degree
        self.ticks_csv_file: Optional[TextIO] = None
        self.ticks_csv_writer: Any = None
        self.skips_csv_file: Optional[TextIO] = None
        self.skips_csv_writer: Any = None
        self._lock = threading.Lock()
        self._pending_ticks: List[List[Any]] = []
        self._pending_skips: List[List[Any]] = []

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / "results" / f"run_{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.ticks_output_path: Path = self.run_dir / "ticks.csv"
        self.skips_output_path: Path = self.run_dir / "skips.csv"

    def setup(self) -> None:
        """Initialize CSV files with headers.

        Must be called before writing data.
        """
        coeff_columns = [f"c{i}" for i in range(self.degree + 1)]

        self.ticks_csv_file = open(self.ticks_output_path, "w", newline="")
        self.ticks_csv_writer = csv.writer(self.ticks_csv_file)
        self.ticks_csv_writer.writerow(
            ["timestamp", "x", "y", "psi", "v", "cte", "epsi"]
            + coeff_columns
            + ["steering", "actuation", "command"]
        )
        self.ticks_csv_file.flush()

        self.skips_csv_file = open(self.skips_output_path, "w", newline="")
        self.skips_csv_writer = csv.writer(self.skips_csv_file)
        self.skips_csv_writer.writerow(["timestamp", "reason"])
        self.skips_csv_file.flush()

        logging.info(
            f"{TERM_BLUE}✓ Initialized data collection to results/{self.run_dir.name}/{TERM_RESET}"
        )

    def log_tick(
        self,
        timestamp: float,
        state: VehicleState,
        coeffs: Sequence[float],
        command: ControlCommand,
    ) -> None:
        """Buffer a dispatched tick; no file I/O happens here.

        Args:
            timestamp: Tick time (seconds).
            state: Latency-compensated state passed to the optimizer.
            coeffs: Reference polynomial coefficients.
            command: Dispatched control command.
        """
        kind = "throttle" if command.is_throttle else "brake"
        row = (
            [timestamp, state.x, state.y, state.psi, state.v, state.cte, state.epsi]
            + [float(c) for c in coeffs]
            + [command.steering, command.actuation, kind]
        )
        with self._lock:
            self._pending_ticks.append(row)

    def log_skip(self, timestamp: float, reason: str) -> None:
        """Buffer a tick that produced no command.

        Args:
            timestamp: Tick time (seconds).
            reason: Short description of the failure.
        """
        with self._lock:
            self._pending_skips.append([timestamp, reason])

    @property
    def pending_rows(self) -> int:
        """Number of buffered rows not yet written."""
        with self._lock:
            return len(self._pending_ticks) + len(self._pending_skips)

    def write_pending(self) -> None:
        """Write and flush all buffered rows.

        Blocking; called from a worker thread while the loop runs and from
        ``cleanup`` at shutdown.
        """
        with self._lock:
            ticks, self._pending_ticks = self._pending_ticks, []
            skips, self._pending_skips = self._pending_skips, []

        if ticks and self.ticks_csv_file:
            self.ticks_csv_writer.writerows(ticks)
            self.ticks_csv_file.flush()
        if skips and self.skips_csv_file:
            self.skips_csv_writer.writerows(skips)
            self.skips_csv_file.flush()

    def cleanup(self) -> None:
        """Write remaining rows, close all CSV files and log final output location."""
        self.write_pending()
        if self.ticks_csv_file:
            self.ticks_csv_file.close()
        if self.skips_csv_file:
            self.skips_csv_file.close()

        logging.info(f"{TERM_BLUE}✓ Saved run data to results/{self.run_dir.name}/{TERM_RESET}")

    def __enter__(self) -> "DataCollector":
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.cleanup()
