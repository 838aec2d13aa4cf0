"""Reductions of the toolkit's text outputs into summary scalars.

Every reader tolerates a missing file and substitutes the documented default
instead of failing the run.
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
import structlog

from boldqc.models import FdSummary, QCInputs, QCSummary

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Series readers
# ---------------------------------------------------------------------------
def read_series(path: Path) -> Optional[np.ndarray]:
    """Return the first column of a whitespace-delimited series.

    Returns ``None`` when *path* is missing or unreadable and an empty array
    for an empty file.
    """
    if not path.is_file():
        return None
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)  # "loadtxt: input contained no data"
            data = np.loadtxt(path, ndmin=2)
    except (OSError, ValueError):
        log.warning("Could not read series", path=str(path))
        return None
    if data.size == 0:
        return np.empty(0, dtype="float64")
    return data[:, 0].astype("float64")


def summarize_fd(path: Path, threshold: float = 0.5) -> FdSummary:
    """Return mean, max and outlier count of an FD series.

    Outliers are values strictly greater than *threshold* (mm). A missing or
    empty series yields ``mean``/``max`` of ``None`` and zero outliers.
    """
    fd = read_series(path)
    if fd is None or fd.size == 0:
        return FdSummary(threshold=threshold)
    return FdSummary(
        mean=float(fd.mean()),
        max=float(fd.max()),
        n_outliers=int((fd > threshold).sum()),
        threshold=threshold,
    )


def count_lines(path: Path) -> int:
    """Return the newline count of *path* (``wc -l``), or 0 if unreadable."""
    try:
        return path.read_bytes().count(b"\n")
    except OSError:
        return 0


def read_rms_mean(path: Path) -> Optional[float]:
    """Return the mean of an ``*_mean.rms`` file or ``None``."""
    series = read_series(path)
    if series is None or series.size == 0:
        return None
    return float(series.mean())


def format_value(value: float | int | None) -> str:
    """Render *value* the way ``awk`` prints numbers; ``None`` becomes ``"NA"``."""
    if value is None:
        return "NA"
    if isinstance(value, (bool, int, np.integer)):
        return str(int(value))
    return f"{float(value):.6g}"


# ---------------------------------------------------------------------------
# Machine-readable summary
# ---------------------------------------------------------------------------
def summary_row(summary: QCSummary, inputs: QCInputs) -> dict[str, object]:
    """Flatten *summary* into one CSV row."""
    info = summary.info
    return {
        "subject": inputs.subject,
        "input_file": str(inputs.scan),
        "n_vols": info.n_volumes,
        "dim_x": info.dims[0] if info.dims else None,
        "dim_y": info.dims[1] if info.dims else None,
        "dim_z": info.dims[2] if info.dims else None,
        "tr_s": info.tr,
        "mean_intensity": summary.mean_intensity,
        "tSNR_mean": summary.tsnr.mean if summary.tsnr else None,
        "tSNR_std": summary.tsnr.std if summary.tsnr else None,
        "tSNR_min": summary.tsnr.min if summary.tsnr else None,
        "tSNR_max": summary.tsnr.max if summary.tsnr else None,
        "mean_FD_mm": summary.fd.mean,
        "max_FD_mm": summary.fd.max,
        "n_FD_gt_thresh": summary.fd.n_outliers,
        "FD_thresh_mm": summary.fd.threshold,
        "n_DVARS_outliers": summary.dvars_outliers,
        "mean_abs_rms_mm": summary.motion.abs_mean,
        "mean_rel_rms_mm": summary.motion.rel_mean,
    }


def write_summary_csv(summary: QCSummary, inputs: QCInputs, csv_path: Path) -> None:
    """Write a one-row CSV of every summary scalar to *csv_path*."""
    df = pd.DataFrame([summary_row(summary, inputs)])
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(csv_path, index=False)
    log.info("saved_summary_csv", path=str(csv_path))


__all__ = [
    "read_series",
    "summarize_fd",
    "count_lines",
    "read_rms_mean",
    "format_value",
    "summary_row",
    "write_summary_csv",
]
