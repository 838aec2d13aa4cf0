"""Capability interface for the external neuroimaging toolkit."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Literal, Optional, Sequence

TemporalOp = Literal["mean", "std"]
CombineOp = Literal["div", "mas"]
OutlierMetric = Literal["fd", "dvars"]


class Toolkit(ABC):
    """Abstract toolkit.

    One method per capability the QC pipeline consumes. Concrete
    implementations shell out to a real toolkit (see
    :class:`boldqc.toolkit.fsl.FslToolkit`); tests substitute fakes that
    write canned outputs. Every method blocks until the work is done and
    raises :class:`boldqc.utils.errors.ToolkitError` on failure.
    """

    @abstractmethod
    def image_info(self, image: Path, out_file: Path) -> str:
        """Dump header information for *image* into *out_file* and return it."""

    @abstractmethod
    def volume_count(self, image: Path) -> int:
        """Return the number of time points in *image*."""

    @abstractmethod
    def realign(
        self,
        image: Path,
        out_base: Path,
        *,
        dof: int = 6,
        spline_final: bool = True,
        reference: Optional[int | str] = None,
    ) -> None:
        """Rigid-body realign *image*; outputs share the *out_base* prefix."""

    @abstractmethod
    def decompose_transform(self, matrix: Path, out_file: Path) -> None:
        """Write translation/rotation parameters decomposed from *matrix*."""

    @abstractmethod
    def temporal_reduce(self, image: Path, op: TemporalOp, out_file: Path) -> None:
        """Reduce a 4D *image* over time with *op* into a 3D image."""

    @abstractmethod
    def combine(self, image: Path, op: CombineOp, other: Path, out_file: Path) -> None:
        """Combine two images voxelwise (divide or mask)."""

    @abstractmethod
    def region_stats(
        self,
        image: Path,
        flags: Sequence[str],
        *,
        mask: Optional[Path] = None,
        out_file: Optional[Path] = None,
    ) -> list[float]:
        """Return the scalars requested by *flags* (e.g. ``["-M", "-S", "-R"]``)."""

    @abstractmethod
    def motion_outliers(
        self,
        image: Path,
        metric: OutlierMetric,
        *,
        outliers: Path,
        values: Path,
        plot: Path,
        dummy_scans: int = 0,
    ) -> None:
        """Write a per-volume *metric* series, outlier flags and a plot."""

    @abstractmethod
    def plot_motion(
        self,
        par: Path,
        abs_rms: Path,
        rel_rms: Path,
        *,
        rot_png: Path,
        trans_png: Path,
        disp_png: Path,
    ) -> None:
        """Render rotation, translation and displacement plots."""

    def missing_tools(self) -> list[str]:
        """Return required executables that cannot be found (none by default)."""
        return []
