"""Test helpers for boldqc modules."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import nibabel as nib
import numpy as np

from boldqc.models import QCInputs
from boldqc.toolkit.base import Toolkit
from boldqc.utils.errors import ToolkitError

FSLINFO_TEXT = (
    "data_type      FLOAT32\n"
    "dim1           64\n"
    "dim2           64\n"
    "dim3           32\n"
    "dim4           5\n"
    "datatype       16\n"
    "pixdim1        3.000000\n"
    "pixdim2        3.000000\n"
    "pixdim3        3.500000\n"
    "pixdim4        2.000000\n"
    "cal_max        0.0000\n"
    "cal_min        0.0000\n"
    "file_type      NIFTI-1+\n"
)


def make_inputs(
    tmp_path: Path,
    *,
    subject: str = "sub-01",
    shape: tuple[int, int, int, int] = (4, 4, 3, 5),
    scan_name: str = "sub-01_task-rest_bold.nii.gz",
) -> QCInputs:
    """Write a random 4D scan plus an all-ones mask and return the run inputs."""
    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    scan = data_dir / scan_name
    nib.save(nib.Nifti1Image(np.random.rand(*shape).astype("float32"), np.eye(4)), str(scan))
    mask = data_dir / "brainmask.nii.gz"
    nib.save(nib.Nifti1Image(np.ones(shape[:3], dtype="uint8"), np.eye(4)), str(mask))
    return QCInputs(scan=scan, mask=mask, subject=subject, output_root=tmp_path / "out")


class FakeToolkit(Toolkit):
    """Toolkit double that records calls and writes FSL-like canned outputs.

    Args:
        fail: Capability names that raise :class:`ToolkitError`.
        fd_values: Content of the FD series file.
        dvars_outliers: Content of the DVARS outlier-flag file.
        tsnr_stats: ``fslstats -M -S -R`` output for the masked tSNR map.
        mean_intensity: ``fslstats -M`` output for the mean image.
        write_par: Whether realignment leaves a ``.par`` file.
        write_mat: Whether realignment leaves a ``.mat`` directory.
    """

    def __init__(
        self,
        *,
        fail: Sequence[str] = (),
        fd_values: str = "0.1\n0.3\n0.6\n",
        dvars_outliers: str = "0 0\n1 0\n0 1\n0 0\n0 0\n",
        tsnr_stats: str = "25.500000 4.250000 1.000000 61.000000 \n",
        mean_intensity: str = "812.500000 \n",
        write_par: bool = True,
        write_mat: bool = False,
    ) -> None:
        self.fail = set(fail)
        self.fd_values = fd_values
        self.dvars_outliers = dvars_outliers
        self.tsnr_stats = tsnr_stats
        self.mean_intensity = mean_intensity
        self.write_par = write_par
        self.write_mat = write_mat
        self.calls: list[tuple[str, tuple]] = []

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if name in self.fail:
            raise ToolkitError(f"{name} failed", returncode=1)

    def called(self, name: str) -> list[tuple]:
        return [args for n, args in self.calls if n == name]

    def image_info(self, image: Path, out_file: Path) -> str:
        self._record("image_info", image, out_file)
        out_file.write_text(FSLINFO_TEXT)
        return FSLINFO_TEXT

    def volume_count(self, image: Path) -> int:
        self._record("volume_count", image)
        return 5

    def realign(self, image, out_base, *, dof=6, spline_final=True, reference=None) -> None:
        self._record("realign", image, out_base, dof, spline_final, reference)
        base = str(out_base)
        Path(base + ".nii.gz").touch()
        Path(base + "_abs.rms").write_text("0.1\n0.2\n0.1\n0.3\n0.2\n")
        Path(base + "_rel.rms").write_text("0.05\n0.1\n0.05\n0.1\n")
        Path(base + "_abs_mean.rms").write_text("0.18\n")
        Path(base + "_rel_mean.rms").write_text("0.075\n")
        if self.write_par:
            Path(base + ".par").write_text("0 0 0 0 0 0\n" * 5)
        if self.write_mat:
            mat_dir = Path(base + ".mat")
            mat_dir.mkdir(exist_ok=True)
            for i in range(2):
                (mat_dir / f"MAT_{i:04d}").write_text("1 0 0 0\n0 1 0 0\n0 0 1 0\n0 0 0 1\n")

    def decompose_transform(self, matrix: Path, out_file: Path) -> None:
        self._record("decompose_transform", matrix, out_file)
        out_file.write_text("Rotation Angles (x,y,z) [rads] = 0 0 0\n")

    def temporal_reduce(self, image: Path, op: str, out_file: Path) -> None:
        self._record("temporal_reduce", image, op, out_file)
        out_file.touch()

    def combine(self, image: Path, op: str, other: Path, out_file: Path) -> None:
        self._record("combine", image, op, other, out_file)
        out_file.touch()

    def region_stats(
        self,
        image: Path,
        flags: Sequence[str],
        *,
        mask: Optional[Path] = None,
        out_file: Optional[Path] = None,
    ) -> list[float]:
        self._record("region_stats", image, tuple(flags), mask, out_file)
        text = self.tsnr_stats if "tsnr" in image.name else self.mean_intensity
        if out_file is not None:
            out_file.write_text(text)
        return [float(v) for v in text.split()]

    def motion_outliers(self, image, metric, *, outliers, values, plot, dummy_scans=0) -> None:
        self._record(f"motion_outliers_{metric}", image, outliers, values, plot, dummy_scans)
        if metric == "fd":
            values.write_text(self.fd_values)
            outliers.write_text("0\n0\n1\n0\n0\n")
        else:
            values.write_text("10.0\n12.0\n31.0\n9.0\n")
            outliers.write_text(self.dvars_outliers)
        plot.touch()

    def plot_motion(self, par, abs_rms, rel_rms, *, rot_png, trans_png, disp_png) -> None:
        self._record("plot_motion", par, abs_rms, rel_rms)
        for p in (rot_png, trans_png, disp_png):
            p.touch()
