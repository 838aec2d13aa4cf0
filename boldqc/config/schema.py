"""
Pydantic models that mirror the YAML configuration consumed by *boldqc*.

Defaults are the standard QC thresholds, so an empty YAML document yields
the canonical behaviour.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


class Thresholds(BaseModel):
    """Classification bands and the FD outlier cut-off.

    Attributes:
        fd_outlier_mm: FD values strictly above this count as outliers.
        tsnr_excellent: Mean tSNR strictly above this is "Excellent".
        tsnr_good: Mean tSNR strictly above this is "Good".
        tsnr_acceptable: Mean tSNR strictly above this is "Acceptable".
        mean_fd_good_mm: Mean FD strictly below this is good.
        max_fd_good_mm: Max FD strictly below this is good.
    """

    fd_outlier_mm: float = 0.5
    tsnr_excellent: float = 30.0
    tsnr_good: float = 20.0
    tsnr_acceptable: float = 10.0
    mean_fd_good_mm: float = 0.2
    max_fd_good_mm: float = 0.5

    @model_validator(mode="after")
    def _tsnr_bands_ordered(self):
        """Reject tSNR bands that would overlap."""
        if not self.tsnr_acceptable <= self.tsnr_good <= self.tsnr_excellent:
            raise ValueError("tSNR thresholds must satisfy acceptable <= good <= excellent")
        return self


class McflirtOptions(BaseModel):
    """Options forwarded to ``mcflirt``.

    ``reference`` is ``None`` for the tool default (middle volume), ``"mean"``
    for ``-meanvol`` or an integer volume index for ``-refvol``.
    """

    dof: int = 6
    spline_final: bool = True
    reference: Optional[int | Literal["mean"]] = None


class MotionOutlierOptions(BaseModel):
    """Options forwarded to ``fsl_motion_outliers``."""

    dummy_scans: int = Field(0, ge=0)


class ReportOptions(BaseModel):
    """HTML report settings.

    ``computed_overall`` replaces the static "GOOD" summary with the worst
    of the tSNR / mean FD / max FD tiers.
    """

    computed_overall: bool = False
    title: str = "fMRI Quality Control Report"
    footer: str = "Report generated by the boldqc fMRI QC pipeline"
    embed_plots: bool = True


class FslOptions(BaseModel):
    """Where to find FSL and which image format it should write."""

    fsldir: Optional[Path] = None
    output_type: str = "NIFTI_GZ"


class QCConfig(BaseModel):
    """Root configuration object consumed by the rest of *boldqc*."""

    thresholds: Thresholds = Field(default_factory=Thresholds)
    mcflirt: McflirtOptions = Field(default_factory=McflirtOptions)
    motion_outliers: MotionOutlierOptions = Field(default_factory=MotionOutlierOptions)
    report: ReportOptions = Field(default_factory=ReportOptions)
    fsl: FslOptions = Field(default_factory=FslOptions)
