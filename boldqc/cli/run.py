"""Run the QC pipeline for one functional scan."""

from __future__ import annotations

from pathlib import Path

import click
import structlog

from boldqc.models import QCInputs, StageStatus
from boldqc.pipelines import qc as qc_pipeline
from boldqc.toolkit import FslToolkit
from boldqc.utils.errors import InputValidationError

log = structlog.get_logger()


@click.command(name="run", context_settings=dict(help_option_names=["-h", "--help"], show_default=True))
@click.option(
    "-i",
    "--func",
    "func",
    type=click.Path(dir_okay=False, path_type=Path),
    prompt="Enter fMRI NIfTI file (e.g., sub-01_task-rest.nii or .nii.gz)",
    help="4D functional image.",
)
@click.option(
    "-m",
    "--mask",
    type=click.Path(dir_okay=False, path_type=Path),
    prompt="Enter brain mask file (e.g., brainmask.nii.gz)",
    help="Binary brain mask in the functional space.",
)
@click.option(
    "-s",
    "--subject",
    prompt="Enter Subject ID (for report)",
    help="Subject identifier used in output names.",
)
@click.option(
    "-o",
    "--output-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    help="Directory receiving <SUBJECT>_QC_Results.",
)
@click.option("--strict", is_flag=True, help="Exit with status 1 when any stage failed or was skipped.")
@click.pass_obj
def cli(
    ctx_obj,
    func: Path,
    mask: Path,
    subject: str,
    output_root: Path,
    strict: bool,
) -> None:
    """Compute QC metrics for one BOLD run and write an HTML report.

    Missing inputs abort before anything is written. Later stage failures
    are recorded in the processing log and the report; they only change the
    exit status with ``--strict``.
    """
    inputs = QCInputs(scan=func, mask=mask, subject=subject, output_root=output_root)
    cfg = ctx_obj["cfg"]
    try:
        result = qc_pipeline.run(inputs, cfg=cfg, toolkit=FslToolkit(cfg.fsl))
    except InputValidationError as exc:
        log.error("input.missing", kind=exc.kind, path=str(exc.path))
        raise click.ClickException(str(exc)) from exc

    if strict and not result.ok:
        bad = [s for s in result.stages if s.status is not StageStatus.OK]
        for s in bad:
            click.secho(f"{s.status.value}: {s.name}", fg="red", err=True)
        raise click.ClickException(f"{len(bad)} stage(s) did not complete")


__all__ = ["cli"]
