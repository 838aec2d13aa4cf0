import gzip
from pathlib import Path

import nibabel as nib
import numpy as np
import pytest

from boldqc.pipelines.staging import stage_scan


def _data() -> np.ndarray:
    return np.arange(3 * 3 * 2 * 4, dtype="float32").reshape(3, 3, 2, 4)


def test_stage_compressed_is_copied(tmp_path: Path):
    """Verify STAGE SCAN copy behavior."""
    src = tmp_path / "bold.nii.gz"
    nib.save(nib.Nifti1Image(_data(), np.eye(4)), str(src))
    dest = tmp_path / "out" / "original_fmri.nii.gz"
    assert stage_scan(src, dest) == dest
    assert dest.read_bytes() == src.read_bytes()


def test_stage_uncompressed_is_gzipped(tmp_path: Path):
    """Verify STAGE SCAN gzip behavior."""
    src = tmp_path / "bold.nii"
    nib.save(nib.Nifti1Image(_data(), np.eye(4)), str(src))
    dest = tmp_path / "original_fmri.nii.gz"
    stage_scan(src, dest)
    assert gzip.decompress(dest.read_bytes()) == src.read_bytes()


def test_stage_other_format_is_converted(tmp_path: Path):
    src = tmp_path / "bold.img"
    img = nib.Nifti1Pair(_data(), np.diag([2.0, 2.0, 3.0, 1.0]))
    img.header.set_zooms((2.0, 2.0, 3.0, 1.5))
    nib.save(img, str(src))
    dest = tmp_path / "original_fmri.nii.gz"
    stage_scan(tmp_path / "bold.hdr", dest)
    out = nib.load(str(dest))
    assert out.shape == (3, 3, 2, 4)
    assert np.allclose(out.get_fdata(), _data())
    assert out.header.get_zooms() == (2.0, 2.0, 3.0, 1.5)


def test_stage_overwrites_previous_copy(tmp_path: Path):
    src = tmp_path / "bold.nii.gz"
    nib.save(nib.Nifti1Image(_data(), np.eye(4)), str(src))
    dest = tmp_path / "original_fmri.nii.gz"
    dest.write_bytes(b"stale")
    stage_scan(src, dest)
    assert dest.read_bytes() == src.read_bytes()


def test_stage_unreadable_input(tmp_path: Path):
    """Verify STAGE SCAN unreadable behavior."""
    src = tmp_path / "bold.dat"
    src.write_bytes(b"not an image")
    dest = tmp_path / "original_fmri.nii.gz"
    dest.write_bytes(b"previous run")
    with pytest.raises(ValueError, match="Cannot read image"):
        stage_scan(src, dest)
    assert not dest.exists()
