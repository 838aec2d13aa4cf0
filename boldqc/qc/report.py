"""HTML rendering of the QC summary."""

from __future__ import annotations

from datetime import datetime
from importlib.resources import files
from pathlib import Path
from typing import Collection, Iterable, Optional

import jinja2
import structlog

from boldqc.config.schema import QCConfig
from boldqc.models import QCInputs, QCPaths, QCSummary, StageResult, StageStatus
from boldqc.qc.classify import (
    classify_max_fd,
    classify_mean_fd,
    classify_tsnr,
    overall_quality,
)
from boldqc.qc.metrics import format_value
from boldqc.utils.proclog import CHECK, CROSS

log = structlog.get_logger()

_TEMPLATE_SRC: str = files("boldqc.templates").joinpath("qc_report.html.j2").read_text(encoding="utf-8")
_ENV = jinja2.Environment(autoescape=True, keep_trailing_newline=True)

_STAGE_MARKS = {
    StageStatus.OK: (CHECK, "good"),
    StageStatus.FAILED: (CROSS, "bad"),
    StageStatus.SKIPPED: ("–", "warning"),
}


def _plots(paths: QCPaths, produced: Optional[Collection[Path]] = None) -> list[dict[str, str]]:
    """Return the diagnostic plots to link, relative to the report.

    With *produced* given, only plots written by this run are linked; a PNG
    left on disk by an earlier run is ignored.
    """
    candidates = [
        ("Estimated rotations", paths.rot_png),
        ("Estimated translations", paths.trans_png),
        ("Mean displacement", paths.disp_png),
        ("Framewise displacement", paths.fd_plot),
        ("DVARS", paths.dvars_plot),
    ]
    return [
        {"title": t, "src": p.name}
        for t, p in candidates
        if p.is_file() and (produced is None or p in produced)
    ]


def render_report(
    summary: QCSummary,
    inputs: QCInputs,
    *,
    cfg: QCConfig | None = None,
    stages: Iterable[StageResult] = (),
    paths: Optional[QCPaths] = None,
    produced: Optional[Collection[Path]] = None,
    generated_at: Optional[datetime] = None,
) -> str:
    """Return the HTML report for one subject.

    Args:
        summary: Every scalar produced by the pipeline.
        inputs: Run configuration (subject and input path are shown verbatim,
            HTML-escaped).
        cfg: Thresholds and report options; defaults when omitted.
        stages: Stage outcomes listed in the processing-status table.
        paths: Artifact locations used to link diagnostic plots.
        produced: Plot files written by the current run. ``None`` links every
            plot found under *paths*.
        generated_at: Timestamp printed as analysis/processing date.
    """
    cfg = cfg or QCConfig()
    when = generated_at or datetime.now()
    thr = cfg.thresholds

    tsnr_class = classify_tsnr(summary.mean_tsnr, thr)
    mean_fd_class = classify_mean_fd(summary.fd.mean, thr)
    max_fd_class = classify_max_fd(summary.fd.max, thr)
    overall = overall_quality(
        tsnr_class,
        mean_fd_class,
        max_fd_class,
        computed=cfg.report.computed_overall,
    )

    stage_rows = []
    for s in stages:
        mark, css = _STAGE_MARKS[s.status]
        stage_rows.append(
            {"name": s.name, "status": s.status.value, "mark": mark, "css": css, "detail": s.detail or ""}
        )

    tsnr = summary.tsnr
    info = summary.info
    context = {
        "title": cfg.report.title,
        "footer": cfg.report.footer,
        "subject": inputs.subject,
        "input_file": str(inputs.scan),
        "date": when.strftime("%a %b %d %H:%M:%S %Y"),
        "n_volumes": format_value(info.n_volumes),
        "dimensions": info.dimensions_text,
        "voxel_size": info.voxel_size_text,
        "tr": format_value(info.tr),
        "mean_tsnr": format_value(summary.mean_tsnr),
        "tsnr_std": format_value(tsnr.std if tsnr else None),
        "tsnr_min": format_value(tsnr.min if tsnr else None),
        "tsnr_max": format_value(tsnr.max if tsnr else None),
        "tsnr_class": tsnr_class,
        "mean_fd": format_value(summary.fd.mean),
        "max_fd": format_value(summary.fd.max),
        "mean_fd_class": mean_fd_class,
        "max_fd_class": max_fd_class,
        "fd_threshold": format_value(summary.fd.threshold),
        "fd_outliers": summary.fd.n_outliers,
        "abs_rms": format_value(summary.motion.abs_mean),
        "rel_rms": format_value(summary.motion.rel_mean),
        "mean_intensity": format_value(summary.mean_intensity),
        "dvars_outliers": summary.dvars_outliers,
        "plots": _plots(paths, produced) if paths is not None and cfg.report.embed_plots else [],
        "stages": stage_rows,
        "overall": overall,
    }
    return _ENV.from_string(_TEMPLATE_SRC).render(**context)


def write_report(html: str, out_file: Path) -> Path:
    """Write *html* to *out_file*, replacing any previous report."""
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(html, encoding="utf-8")
    log.info("saved_report", path=str(out_file))
    return out_file


__all__ = ["render_report", "write_report"]
