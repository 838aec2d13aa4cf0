"""Single-subject fMRI QC pipeline.

The pipeline is a fixed, strictly sequential list of stages::

    Staging → File info extraction → Motion correction → Mean/Std images →
    tSNR calculation → Mask application → tSNR statistics → Mean intensity →
    Framewise Displacement → DVARS → Quality metrics → Report generation

Every stage declares the stages whose outputs it consumes. When one of them
did not succeed the stage is skipped and its values are reported as
unavailable, so files left over from a previous run are never picked up.
Failures never abort the run: the report is always written and the caller
receives a :class:`~boldqc.models.QCRun` with one result per stage.
"""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence

import click
import structlog

from boldqc.config.schema import QCConfig
from boldqc.models import (
    FdSummary,
    ImageInfo,
    MotionSummary,
    QCInputs,
    QCPaths,
    QCRun,
    QCSummary,
    StageResult,
    StageStatus,
    TsnrStats,
)
from boldqc.pipelines.staging import stage_scan
from boldqc.qc.metrics import (
    count_lines,
    format_value,
    read_rms_mean,
    summarize_fd,
    write_summary_csv,
)
from boldqc.qc.report import render_report, write_report
from boldqc.toolkit import FslToolkit, Toolkit, parse_fslinfo
from boldqc.utils.errors import ToolkitError
from boldqc.utils.proclog import ProcessingLog

log = structlog.get_logger()

STAGING = "Staging"
FILE_INFO = "File info extraction"
MOTION = "Motion correction"
MEAN = "Mean image creation"
STD = "Std image creation"
TSNR = "tSNR calculation"
MASK = "Mask application"
TSNR_STATS = "tSNR statistics"
MEAN_INTENSITY = "Mean intensity"
FD = "Framewise Displacement calculation"
DVARS = "DVARS calculation"
METRICS = "Quality metrics"
REPORT = "Report generation"

# Exceptions a stage may raise without aborting the run.
STAGE_ERRORS = (ToolkitError, OSError, ValueError)


class _StageRunner:
    """Execute stages in order, recording one :class:`StageResult` each."""

    def __init__(self, plog: ProcessingLog) -> None:
        self.plog = plog
        self.results: dict[str, StageResult] = {}

    def ok(self, name: str) -> bool:
        res = self.results.get(name)
        return res is not None and res.ok

    def __call__(
        self,
        name: str,
        fn: Callable[[], Optional[str]],
        *,
        requires: Sequence[str] = (),
    ) -> bool:
        missing = [r for r in requires if not self.ok(r)]
        if missing:
            self.results[name] = StageResult(
                name=name, status=StageStatus.SKIPPED, detail=f"requires {', '.join(missing)}"
            )
            log.warning("stage.skipped", stage=name, missing=missing)
            self.plog.skipped(name, missing)
            return False
        try:
            detail = fn()
        except STAGE_ERRORS as exc:
            self.results[name] = StageResult(name=name, status=StageStatus.FAILED, detail=str(exc))
            log.error("stage.failed", stage=name, error=str(exc))
            self.plog.status(name, False, str(exc))
            return False
        self.results[name] = StageResult(name=name, status=StageStatus.OK, detail=detail)
        log.info("stage.ok", stage=name)
        self.plog.status(name, True)
        return True


def _resolve_motion_params(toolkit: Toolkit, paths: QCPaths, plog: ProcessingLog):
    """Return the standardised motion-parameter file or ``None``.

    The ``.par`` written by the realignment wins; otherwise the transform
    matrices are decomposed. Neither being available, or a failed copy or
    decomposition, is logged and is not an error.
    """
    if paths.mc_par.is_file():
        try:
            shutil.copyfile(paths.mc_par, paths.motion_par)
        except OSError as exc:
            log.warning("motion_params.copy_failed", error=str(exc))
            return None
        plog.line(f"Found motion parameters: {paths.mc_par.name}")
        return paths.motion_par
    if paths.mc_mat.exists():
        plog.note("Found .mat file, converting to parameters...")
        try:
            toolkit.decompose_transform(paths.mc_mat, paths.motion_txt)
        except ToolkitError as exc:
            log.warning("motion_params.decompose_failed", error=str(exc))
            return None
        return paths.motion_txt
    log.warning("motion_params.unavailable", out_dir=str(paths.out_dir))
    return None


def run(
    inputs: QCInputs,
    *,
    cfg: QCConfig | None = None,
    toolkit: Toolkit | None = None,
    now: Callable[[], datetime] | None = None,
    echo: bool = True,
) -> QCRun:
    """Run the whole QC pipeline for one subject.

    Args:
        inputs: Scan, mask, subject identifier and output root.
        cfg: Validated configuration; packaged defaults when omitted.
        toolkit: Capability adapter; :class:`FslToolkit` when omitted.
        now: Clock used for log timestamps and the report date.
        echo: Print progress to the terminal.

    Returns:
        :class:`QCRun` with the stage outcomes and every summary scalar.

    Raises:
        InputValidationError: If the scan or mask is not an existing file.
            Nothing is written in that case.
    """
    inputs.validate_paths()

    cfg = cfg or QCConfig()
    toolkit = toolkit or FslToolkit(cfg.fsl)
    clock = now or datetime.now
    paths = QCPaths.for_inputs(inputs)

    paths.out_dir.mkdir(parents=True, exist_ok=True)
    plog = ProcessingLog(paths.log, clock=clock, echo=echo)
    stage = _StageRunner(plog)

    if echo:
        click.echo("============================================")
        click.echo("Starting fMRI Quality Control")
        click.echo(f"Input: {inputs.scan}")
        click.echo(f"Mask:  {inputs.mask}")
        click.echo(f"Subject: {inputs.subject}")
        click.echo("============================================")
    plog.start(inputs.scan, inputs.mask)
    log.info("qc.start", subject=inputs.subject, out_dir=str(paths.out_dir))

    info = ImageInfo()
    tsnr: TsnrStats | None = None
    mean_intensity: float | None = None
    motion = MotionSummary()
    plots: set[Path] = set()

    # ------------------------------------------------------------------ #
    # STEP 1: staging and basic info
    # ------------------------------------------------------------------ #
    plog.section("STEP 1: Checking files and basic info")

    def _stage() -> None:
        plog.note("Creating compressed version for FSL...")
        stage_scan(inputs.scan, paths.staged)

    stage(STAGING, _stage)

    def _info() -> None:
        nonlocal info
        plog.note("Getting file information...")
        text = toolkit.image_info(paths.staged, paths.file_info)
        info = parse_fslinfo(text).model_copy(
            update={"n_volumes": toolkit.volume_count(paths.staged)}
        )
        plog.line(f"Number of volumes: {info.n_volumes}")
        plog.line(f"Dimensions: {info.dimensions_text}")

    stage(FILE_INFO, _info, requires=[STAGING])

    # ------------------------------------------------------------------ #
    # STEP 2: motion correction
    # ------------------------------------------------------------------ #
    plog.section("STEP 2: Motion correction")

    def _motion() -> None:
        plog.note("Running mcflirt (this may take a while)...")
        opts = cfg.mcflirt
        toolkit.realign(
            paths.staged,
            paths.mc_base,
            dof=opts.dof,
            spline_final=opts.spline_final,
            reference=opts.reference,
        )

    if stage(MOTION, _motion, requires=[STAGING]):
        params = _resolve_motion_params(toolkit, paths, plog)
        motion = MotionSummary(
            abs_mean=read_rms_mean(paths.mc_abs_mean),
            rel_mean=read_rms_mean(paths.mc_rel_mean),
            params_file=params,
        )
        if paths.mc_par.is_file() and paths.mc_abs_rms.is_file() and paths.mc_rel_rms.is_file():
            try:
                toolkit.plot_motion(
                    paths.mc_par,
                    paths.mc_abs_rms,
                    paths.mc_rel_rms,
                    rot_png=paths.rot_png,
                    trans_png=paths.trans_png,
                    disp_png=paths.disp_png,
                )
            except ToolkitError as exc:
                log.warning("motion_plots.failed", error=str(exc))
            else:
                plots.update((paths.rot_png, paths.trans_png, paths.disp_png))

    # ------------------------------------------------------------------ #
    # STEP 3: temporal statistics and tSNR
    # ------------------------------------------------------------------ #
    plog.section("STEP 3: Calculating basic statistics and tSNR")

    stage(MEAN, lambda: toolkit.temporal_reduce(paths.mc_image, "mean", paths.mean_func), requires=[MOTION])
    stage(STD, lambda: toolkit.temporal_reduce(paths.mc_image, "std", paths.std_func), requires=[MOTION])
    stage(TSNR, lambda: toolkit.combine(paths.mean_func, "div", paths.std_func, paths.tsnr), requires=[MEAN, STD])
    stage(MASK, lambda: toolkit.combine(paths.tsnr, "mas", inputs.mask, paths.tsnr_masked), requires=[TSNR])

    def _tsnr_stats() -> None:
        nonlocal tsnr
        values = toolkit.region_stats(paths.tsnr_masked, ["-M", "-S", "-R"], out_file=paths.tsnr_stats)
        if len(values) < 4:
            raise ValueError(f"expected mean, std, min and max; got {values}")
        tsnr = TsnrStats(mean=values[0], std=values[1], min=values[2], max=values[3])
        plog.line("tSNR statistics:")
        plog.line(" ".join(format_value(v) for v in values))

    stage(TSNR_STATS, _tsnr_stats, requires=[MASK])

    def _mean_intensity() -> None:
        nonlocal mean_intensity
        mean_intensity = toolkit.region_stats(paths.mean_func, ["-M"])[0]

    stage(MEAN_INTENSITY, _mean_intensity, requires=[MEAN])

    # ------------------------------------------------------------------ #
    # STEP 4: motion metrics (FD on the raw series, DVARS on the corrected one)
    # ------------------------------------------------------------------ #
    plog.section("STEP 4: Motion analysis")
    dummy = cfg.motion_outliers.dummy_scans

    stage(
        FD,
        lambda: toolkit.motion_outliers(
            paths.staged,
            "fd",
            outliers=paths.fd_outliers,
            values=paths.fd_values,
            plot=paths.fd_plot,
            dummy_scans=dummy,
        ),
        requires=[STAGING],
    )
    stage(
        DVARS,
        lambda: toolkit.motion_outliers(
            paths.mc_image,
            "dvars",
            outliers=paths.dvars_outliers,
            values=paths.dvars_values,
            plot=paths.dvars_plot,
            dummy_scans=dummy,
        ),
        requires=[MOTION],
    )

    # ------------------------------------------------------------------ #
    # STEP 5: aggregation
    # ------------------------------------------------------------------ #
    plog.section("STEP 5: Calculating quality metrics")
    summary = QCSummary(info=info, tsnr=tsnr, mean_intensity=mean_intensity, motion=motion)

    def _metrics() -> None:
        nonlocal summary
        threshold = cfg.thresholds.fd_outlier_mm
        fd = summarize_fd(paths.fd_values, threshold) if stage.ok(FD) else FdSummary(threshold=threshold)
        dvars_n = (
            count_lines(paths.dvars_outliers)
            if stage.ok(DVARS) and paths.dvars_values.is_file()
            else 0
        )
        summary = summary.model_copy(update={"fd": fd, "dvars_outliers": dvars_n})

        plog.line(f"Mean intensity: {format_value(summary.mean_intensity)}")
        plog.line(f"Mean tSNR: {format_value(summary.mean_tsnr)}")
        if fd.mean is not None:
            plog.line(f"Mean FD: {format_value(fd.mean)} mm")
            plog.line(f"Max FD: {format_value(fd.max)} mm")
            plog.line(f"FD outliers (>{format_value(threshold)}mm): {fd.n_outliers}")
        if stage.ok(DVARS):
            plog.line(f"DVARS outliers: {dvars_n}")
        write_summary_csv(summary, inputs, paths.metrics_csv)

    stage(METRICS, _metrics)
    if stage.ok(FD):
        plots.add(paths.fd_plot)
    if stage.ok(DVARS):
        plots.add(paths.dvars_plot)

    # ------------------------------------------------------------------ #
    # STEP 6: HTML report
    # ------------------------------------------------------------------ #
    plog.section("STEP 6: Generating styled HTML report")

    def _report() -> None:
        html = render_report(
            summary,
            inputs,
            cfg=cfg,
            stages=list(stage.results.values()),
            paths=paths,
            produced=plots,
            generated_at=clock(),
        )
        write_report(html, paths.report)

    stage(REPORT, _report)

    qc_run = QCRun(inputs=inputs, paths=paths, stages=list(stage.results.values()), summary=summary)
    n_ok = qc_run.count(StageStatus.OK)
    n_failed = qc_run.count(StageStatus.FAILED)
    n_skipped = qc_run.count(StageStatus.SKIPPED)
    plog.line(f"Stages: {n_ok} ok, {n_failed} failed, {n_skipped} skipped")
    log.info("qc.done", subject=inputs.subject, ok=n_ok, failed=n_failed, skipped=n_skipped)

    if echo:
        click.echo()
        click.echo("============================================")
        click.echo("QC PROCESSING COMPLETE!" if qc_run.ok else "QC PROCESSING FINISHED WITH ERRORS")
        click.echo("============================================")
        click.echo(f"Output directory: {paths.out_dir}/")
        click.echo(f"HTML report: {paths.report}")
        click.echo(f"Processing log: {paths.log}")
        click.echo("============================================")
    return qc_run


__all__ = ["run", "STAGE_ERRORS"]
