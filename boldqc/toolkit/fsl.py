"""FSL implementation of :class:`boldqc.toolkit.base.Toolkit`."""

from __future__ import annotations

import re
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Sequence

import structlog

from boldqc.config.schema import FslOptions
from boldqc.models import ImageInfo
from boldqc.utils import fsl
from boldqc.utils.errors import ToolkitError

from .base import CombineOp, OutlierMetric, TemporalOp, Toolkit

log = structlog.get_logger()

REQUIRED_TOOLS = (
    "fslinfo",
    "fslnvols",
    "mcflirt",
    "avscale",
    "fslmaths",
    "fslstats",
    "fsl_motion_outliers",
    "fsl_tsplot",
)

_TEMPORAL_FLAGS = {"mean": "-Tmean", "std": "-Tstd"}
_COMBINE_FLAGS = {"div": "-div", "mas": "-mas"}
_PLOT_SIZE = (747, 167)


# ---------------------------------------------------------------------------
# Output parsers
# ---------------------------------------------------------------------------
def parse_fslinfo(text: str) -> ImageInfo:
    """Parse an ``fslinfo`` dump into :class:`ImageInfo`.

    Missing keys leave the corresponding fields ``None``; values are taken
    verbatim without sanity checks.
    """
    fields: dict[str, str] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) >= 2:
            fields[parts[0]] = parts[1]

    def _ints(keys: Sequence[str]) -> Optional[tuple[int, ...]]:
        try:
            return tuple(int(float(fields[k])) for k in keys)
        except (KeyError, ValueError):
            return None

    def _floats(keys: Sequence[str]) -> Optional[tuple[float, ...]]:
        try:
            return tuple(float(fields[k]) for k in keys)
        except (KeyError, ValueError):
            return None

    dims = _ints(("dim1", "dim2", "dim3"))
    nvols = _ints(("dim4",))
    pixdims = _floats(("pixdim1", "pixdim2", "pixdim3"))
    tr = _floats(("pixdim4",))
    return ImageInfo(
        n_volumes=nvols[0] if nvols else None,
        dims=dims,
        pixdims=pixdims,
        tr=tr[0] if tr else None,
    )


def parse_stats(text: str) -> list[float]:
    """Return every number printed by ``fslstats``.

    Raises:
        ToolkitError: If the output contains a token that is not a number.
    """
    values: list[float] = []
    for token in text.split():
        try:
            values.append(float(token))
        except ValueError as exc:
            raise ToolkitError(f"Unexpected fslstats output: {text.strip()!r}") from exc
    return values


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------
class FslToolkit(Toolkit):
    """Run the FSL command-line tools through :func:`boldqc.utils.fsl.run_cmd`."""

    def __init__(self, cfg: FslOptions | None = None, *, stream: bool = True) -> None:
        """Store FSL options.

        Args:
            cfg: Binary location and output type.
            stream: Stream the live output of long-running tools to the terminal.
        """
        self.cfg = cfg or FslOptions()
        self.stream = stream

    # -- helpers ------------------------------------------------------------
    def exe(self, name: str) -> str:
        """Return the command used to launch FSL tool *name*."""
        if self.cfg.fsldir is not None:
            return str(Path(self.cfg.fsldir) / "bin" / name)
        return name

    @property
    def env(self) -> dict[str, str]:
        env = {"FSLOUTPUTTYPE": self.cfg.output_type}
        if self.cfg.fsldir is not None:
            env["FSLDIR"] = str(self.cfg.fsldir)
        return env

    def _run(self, cmd: list[str | Path], *, capture: bool = False) -> subprocess.CompletedProcess:
        """Run *cmd*, translating process failures into :class:`ToolkitError`."""
        argv = [str(c) for c in cmd]
        try:
            if capture or not self.stream:
                return fsl.run_cmd(argv, capture=True, env=self.env)
            return fsl.run_cmd(argv, env=self.env)
        except subprocess.CalledProcessError as exc:
            log.error("fsl.failed", cmd=argv[0], returncode=exc.returncode)
            raise ToolkitError(
                f"{Path(argv[0]).name} exited with status {exc.returncode}",
                cmd=argv,
                returncode=exc.returncode,
            ) from exc
        except FileNotFoundError as exc:
            log.error("fsl.missing", cmd=argv[0])
            raise ToolkitError(f"{argv[0]} not found – is FSL installed?", cmd=argv) from exc

    def missing_tools(self) -> list[str]:
        return [name for name in REQUIRED_TOOLS if shutil.which(self.exe(name)) is None]

    # -- capabilities -------------------------------------------------------
    def image_info(self, image: Path, out_file: Path) -> str:
        text = self._run([self.exe("fslinfo"), image], capture=True).stdout or ""
        out_file.write_text(text)
        return text

    def volume_count(self, image: Path) -> int:
        out = (self._run([self.exe("fslnvols"), image], capture=True).stdout or "").strip()
        try:
            return int(out.split()[0])
        except (IndexError, ValueError) as exc:
            raise ToolkitError(f"Unexpected fslnvols output: {out!r}") from exc

    def realign(
        self,
        image: Path,
        out_base: Path,
        *,
        dof: int = 6,
        spline_final: bool = True,
        reference: Optional[int | str] = None,
    ) -> None:
        cmd: list[str | Path] = [
            self.exe("mcflirt"),
            "-in",
            image,
            "-out",
            out_base,
            "-plots",
            "-rmsrel",
            "-rmsabs",
            "-report",
            "-stats",
        ]
        if spline_final:
            cmd.append("-spline_final")
        cmd += ["-dof", str(dof)]
        if reference == "mean":
            cmd.append("-meanvol")
        elif reference is not None:
            cmd += ["-refvol", str(reference)]
        self._run(cmd)

    def decompose_transform(self, matrix: Path, out_file: Path) -> None:
        # ``mcflirt -mats`` writes a directory of MAT_NNNN files; decompose each.
        if matrix.is_dir():
            mats = sorted(matrix.glob("MAT_*"))
            if not mats:
                raise ToolkitError(f"No MAT_* files inside {matrix}")
            chunks = []
            for mat in mats:
                out = self._run([self.exe("avscale"), "--allparams", mat], capture=True).stdout or ""
                chunks.append(f"# {mat.name}\n{out}")
            out_file.write_text("".join(chunks))
            return
        out = self._run([self.exe("avscale"), "--allparams", matrix], capture=True).stdout or ""
        out_file.write_text(out)

    def temporal_reduce(self, image: Path, op: TemporalOp, out_file: Path) -> None:
        self._run([self.exe("fslmaths"), image, _TEMPORAL_FLAGS[op], out_file])

    def combine(self, image: Path, op: CombineOp, other: Path, out_file: Path) -> None:
        self._run([self.exe("fslmaths"), image, _COMBINE_FLAGS[op], other, out_file])

    def region_stats(
        self,
        image: Path,
        flags: Sequence[str],
        *,
        mask: Optional[Path] = None,
        out_file: Optional[Path] = None,
    ) -> list[float]:
        cmd: list[str | Path] = [self.exe("fslstats"), image]
        if mask is not None:
            cmd += ["-k", mask]
        cmd += list(flags)
        text = self._run(cmd, capture=True).stdout or ""
        if out_file is not None:
            out_file.write_text(text)
        return parse_stats(text)

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
        cmd: list[str | Path] = [
            self.exe("fsl_motion_outliers"),
            "-i",
            image,
            "-o",
            outliers,
            "-s",
            values,
            "-p",
            plot,
            f"--{metric}",
            "-v",
        ]
        if dummy_scans:
            cmd.append(f"--dummy={dummy_scans}")
        self._run(cmd)

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
        w, h = (str(v) for v in _PLOT_SIZE)
        tsplot = self.exe("fsl_tsplot")
        self._run(
            [tsplot, "-i", par, "-u", "1", "--start=1", "--finish=3", "-a", "x,y,z",
             "-t", "MCFLIRT estimated rotations (radians)", "-w", w, "-h", h, "-o", rot_png],
            capture=True,
        )
        self._run(
            [tsplot, "-i", par, "-u", "1", "--start=4", "--finish=6", "-a", "x,y,z",
             "-t", "MCFLIRT estimated translations (mm)", "-w", w, "-h", h, "-o", trans_png],
            capture=True,
        )
        self._run(
            [tsplot, "-i", f"{abs_rms},{rel_rms}", "-a", "absolute,relative",
             "-t", "MCFLIRT estimated mean displacement (mm)", "-w", w, "-h", h, "-o", disp_png],
            capture=True,
        )


__all__ = ["FslToolkit", "REQUIRED_TOOLS", "parse_fslinfo", "parse_stats"]
