"""Copy the input scan into the output directory as compressed NIfTI."""

from __future__ import annotations

import gzip
import shutil
from pathlib import Path

import nibabel as nib
import structlog
from nibabel.filebasedimages import ImageFileError
from nibabel.spatialimages import HeaderDataError

log = structlog.get_logger()


def stage_scan(scan: Path, dest: Path) -> Path:
    """Write *scan* to *dest* (``*.nii.gz``), overwriting any previous copy.

    ``.nii.gz`` inputs are copied byte for byte, ``.nii`` inputs are gzipped,
    anything else nibabel can read (e.g. Analyze ``.hdr``/``.img``) is
    converted.

    Args:
        scan: Caller-supplied functional image.
        dest: Canonical staged path inside the output directory.

    Returns:
        *dest*.

    Raises:
        ValueError: If nibabel cannot read a non-NIfTI *scan*. Any staged
            copy left by a previous run is removed first.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    name = scan.name.lower()
    if name.endswith(".nii.gz"):
        shutil.copyfile(scan, dest)
        how = "copy"
    elif name.endswith(".nii"):
        with scan.open("rb") as src, gzip.open(dest, "wb") as dst:
            shutil.copyfileobj(src, dst)
        how = "gzip"
    else:
        try:
            img = nib.load(str(scan))
        except (ImageFileError, HeaderDataError) as exc:
            dest.unlink(missing_ok=True)
            log.error("stage.unreadable", src=str(scan), error=str(exc))
            raise ValueError(f"Cannot read image {scan}: {exc}") from exc
        out = nib.Nifti1Image(img.get_fdata(dtype="float32"), img.affine)
        out.header.set_zooms(img.header.get_zooms())
        nib.save(out, str(dest))
        how = "convert"
    log.info("staged", src=str(scan), dest=str(dest), how=how)
    return dest


__all__ = ["stage_scan"]
