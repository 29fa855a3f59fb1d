"""
Wearable Simulator - Trace Exporter
Writes the processed-point trace and readout history to CSV.

Output directory structure:
    exports/
    └── sim_<emitter>_<algorithm>_<timestamp>/
        ├── processed_points.csv
        └── readouts.csv
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Union

logger = logging.getLogger(__name__)


def _write_csv(filepath: Path, rows: List[dict]) -> int:
    """Write a list of dicts to a CSV file. Returns row count written."""
    if not rows:
        filepath.write_text("# no data\n")
        return 0
    with open(filepath, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=rows[0].keys())
        writer.writeheader()
        writer.writerows(rows)
    return len(rows)


def export_points(path: Union[str, Path], points: Iterable) -> int:
    """
    Export processed points (raw channels, filtered, DC, AC) to CSV.

    Returns:
        Number of rows written
    """
    path = Path(path)
    count = _write_csv(path, [p.as_dict() for p in points])
    logger.info(f"  {path.name:<24} {count:>6} rows")
    return count


def export_readouts(path: Union[str, Path], readouts: Iterable) -> int:
    """
    Export algorithm readouts (status, HR, SpO2, SNR) to CSV.

    Returns:
        Number of rows written
    """
    path = Path(path)
    count = _write_csv(path, [r.as_dict() for r in readouts])
    logger.info(f"  {path.name:<24} {count:>6} rows")
    return count


def export_run(out_dir: Union[str, Path], scheduler) -> Path:
    """
    Export everything a scheduler currently holds into a fresh subdirectory.

    Args:
        out_dir: Parent directory for exports
        scheduler: SimulationScheduler to read from

    Returns:
        Path of the directory written
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(out_dir) / f"sim_{scheduler.emitter.value}_{scheduler.algorithm.value}_{timestamp}"
    run_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Exporting simulation trace to {run_dir}")
    export_points(run_dir / "processed_points.csv", scheduler.processed_points())
    export_readouts(run_dir / "readouts.csv", scheduler.readouts())
    return run_dir
