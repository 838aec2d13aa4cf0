from pathlib import Path

import pytest

from boldqc.config import QCConfig, load_config


def _write_project_cfg(root: Path, text: str) -> Path:
    cfg_dir = root / "code" / "config"
    cfg_dir.mkdir(parents=True)
    path = cfg_dir / "qc.yaml"
    path.write_text(text)
    return path


def test_packaged_default(tmp_path: Path):
    """Verify LOAD CONFIG default behavior."""
    cfg = load_config(project_root=tmp_path)
    assert isinstance(cfg, QCConfig)
    assert cfg.thresholds.fd_outlier_mm == 0.5
    assert cfg.thresholds.tsnr_good == 20
    assert cfg.mcflirt.dof == 6
    assert cfg.mcflirt.reference is None
    assert cfg.report.computed_overall is False
    assert cfg.fsl.fsldir is None


def test_project_local_override(tmp_path: Path):
    """Verify LOAD CONFIG project behavior."""
    _write_project_cfg(tmp_path, "thresholds:\n  fd_outlier_mm: 0.3\n")
    cfg = load_config(project_root=tmp_path)
    assert cfg.thresholds.fd_outlier_mm == 0.3
    assert cfg.thresholds.tsnr_good == 20


def test_explicit_path_wins(tmp_path: Path):
    _write_project_cfg(tmp_path, "thresholds:\n  fd_outlier_mm: 0.3\n")
    explicit = tmp_path / "custom.yaml"
    explicit.write_text("thresholds:\n  fd_outlier_mm: 0.9\nmcflirt:\n  reference: mean\n")
    cfg = load_config(explicit, project_root=tmp_path)
    assert cfg.thresholds.fd_outlier_mm == 0.9
    assert cfg.mcflirt.reference == "mean"


def test_empty_yaml_yields_defaults(tmp_path: Path):
    explicit = tmp_path / "empty.yaml"
    explicit.write_text("")
    assert load_config(explicit) == QCConfig()


def test_missing_explicit_path(tmp_path: Path):
    """Verify LOAD CONFIG missing behavior."""
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "thresholds:\n  tsnr_good: 50\n",
        "motion_outliers:\n  dummy_scans: -1\n",
    ],
)
def test_invalid_config(tmp_path: Path, text: str):
    """Verify LOAD CONFIG invalid behavior."""
    explicit = tmp_path / "bad.yaml"
    explicit.write_text(text)
    with pytest.raises(RuntimeError, match="Invalid configuration"):
        load_config(explicit)
