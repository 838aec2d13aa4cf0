"""
Typed value objects that circulate between pipeline stages.

Every class inherits from :class:`pydantic.BaseModel`; the write-once
records use ``frozen=True`` to prevent accidental mutation once created.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from boldqc.utils.errors import InputValidationError


class QCInputs(BaseModel, frozen=True):
    """Immutable run configuration built once from the CLI prompts.

    Attributes
    ----------
    scan
        4D functional image supplied by the user.
    mask
        3D brain mask used to restrict the tSNR statistics.
    subject
        Free-text subject identifier. It is used verbatim in file and
        directory names; no sanitisation is applied.
    output_root
        Directory under which ``<subject>_QC_Results`` is created.
    """

    scan: Path
    mask: Path
    subject: str
    output_root: Path = Path(".")

    @property
    def output_dir(self) -> Path:
        return self.output_root / f"{self.subject}_QC_Results"

    def validate_paths(self) -> None:
        """Raise :class:`InputValidationError` unless both inputs are regular files."""
        if not self.scan.is_file():
            raise InputValidationError("Input", self.scan)
        if not self.mask.is_file():
            raise InputValidationError("Mask", self.mask)


class QCPaths(BaseModel, frozen=True):
    """Every artifact produced for one subject, named deterministically."""

    out_dir: Path
    subject: str

    def _p(self, name: str) -> Path:
        return self.out_dir / name

    @property
    def staged(self) -> Path:
        return self._p("original_fmri.nii.gz")

    @property
    def file_info(self) -> Path:
        return self._p("file_info.txt")

    @property
    def mc_base(self) -> Path:
        return self._p("mc_fmri")

    @property
    def mc_image(self) -> Path:
        return self._p("mc_fmri.nii.gz")

    @property
    def mc_par(self) -> Path:
        return self._p("mc_fmri.par")

    @property
    def mc_mat(self) -> Path:
        return self._p("mc_fmri.mat")

    @property
    def mc_abs_rms(self) -> Path:
        return self._p("mc_fmri_abs.rms")

    @property
    def mc_rel_rms(self) -> Path:
        return self._p("mc_fmri_rel.rms")

    @property
    def mc_abs_mean(self) -> Path:
        return self._p("mc_fmri_abs_mean.rms")

    @property
    def mc_rel_mean(self) -> Path:
        return self._p("mc_fmri_rel_mean.rms")

    @property
    def motion_par(self) -> Path:
        return self._p("motion_params.par")

    @property
    def motion_txt(self) -> Path:
        return self._p("motion_params.txt")

    @property
    def mean_func(self) -> Path:
        return self._p("mean_func.nii.gz")

    @property
    def std_func(self) -> Path:
        return self._p("std_func.nii.gz")

    @property
    def tsnr(self) -> Path:
        return self._p("tsnr.nii.gz")

    @property
    def tsnr_masked(self) -> Path:
        return self._p("tsnr_masked.nii.gz")

    @property
    def tsnr_stats(self) -> Path:
        return self._p("tsnr_stats.txt")

    @property
    def fd_outliers(self) -> Path:
        return self._p("fd_outliers.txt")

    @property
    def fd_values(self) -> Path:
        return self._p("fd_values.txt")

    @property
    def fd_plot(self) -> Path:
        return self._p("fd_plot.png")

    @property
    def dvars_outliers(self) -> Path:
        return self._p("dvars_outliers.txt")

    @property
    def dvars_values(self) -> Path:
        return self._p("dvars_values.txt")

    @property
    def dvars_plot(self) -> Path:
        return self._p("dvars_plot.png")

    @property
    def rot_png(self) -> Path:
        return self._p("motion_rot.png")

    @property
    def trans_png(self) -> Path:
        return self._p("motion_trans.png")

    @property
    def disp_png(self) -> Path:
        return self._p("motion_disp.png")

    @property
    def log(self) -> Path:
        return self._p("processing_log.txt")

    @property
    def metrics_csv(self) -> Path:
        return self._p("qc_metrics.csv")

    @property
    def report(self) -> Path:
        return self._p(f"QC_Report_{self.subject}.html")

    @classmethod
    def for_inputs(cls, inputs: QCInputs) -> "QCPaths":
        return cls(out_dir=inputs.output_dir, subject=inputs.subject)


class ImageInfo(BaseModel, frozen=True):
    """Header facts reported by the image metadata dump."""

    n_volumes: Optional[int] = None
    dims: Optional[tuple[int, int, int]] = None
    pixdims: Optional[tuple[float, float, float]] = None
    tr: Optional[float] = None

    @property
    def dimensions_text(self) -> str:
        """Return ``"dim1 64 dim2 64 dim3 32"`` or ``"NA"``."""
        if self.dims is None:
            return "NA"
        return " ".join(f"dim{i} {v}" for i, v in enumerate(self.dims, start=1))

    @property
    def voxel_size_text(self) -> str:
        if self.pixdims is None:
            return "NA"
        return " x ".join(f"{v:g}" for v in self.pixdims) + " mm"


class TsnrStats(BaseModel, frozen=True):
    """Masked tSNR reduced to mean, standard deviation and range."""

    mean: float
    std: float
    min: float
    max: float


class FdSummary(BaseModel, frozen=True):
    """Framewise displacement reduced to scalars.

    ``mean``/``max`` are ``None`` when the FD series is missing or empty.
    """

    mean: Optional[float] = None
    max: Optional[float] = None
    n_outliers: int = 0
    threshold: float = 0.5


class MotionSummary(BaseModel, frozen=True):
    """Mean RMS displacement reported by the realignment tool."""

    abs_mean: Optional[float] = None
    rel_mean: Optional[float] = None
    params_file: Optional[Path] = None


class StageStatus(str, Enum):
    """Outcome of a single pipeline stage."""

    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


class StageResult(BaseModel, frozen=True):
    """Outcome plus a short diagnostic for one stage."""

    name: str
    status: StageStatus
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is StageStatus.OK


class QCSummary(BaseModel, frozen=True):
    """Every scalar substituted into the HTML report."""

    info: ImageInfo = ImageInfo()
    tsnr: Optional[TsnrStats] = None
    mean_intensity: Optional[float] = None
    fd: FdSummary = FdSummary()
    dvars_outliers: int = 0
    motion: MotionSummary = MotionSummary()

    @property
    def mean_tsnr(self) -> Optional[float]:
        return self.tsnr.mean if self.tsnr is not None else None


class QCRun(BaseModel):
    """Result of one pipeline invocation."""

    inputs: QCInputs
    paths: QCPaths
    stages: list[StageResult] = []
    summary: QCSummary = QCSummary()

    @property
    def ok(self) -> bool:
        return all(s.ok for s in self.stages)

    def count(self, status: StageStatus) -> int:
        return sum(1 for s in self.stages if s.status is status)


__all__ = [
    "QCInputs",
    "QCPaths",
    "ImageInfo",
    "TsnrStats",
    "FdSummary",
    "MotionSummary",
    "StageStatus",
    "StageResult",
    "QCSummary",
    "QCRun",
]
