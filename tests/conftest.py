"""Pytest configuration for boldqc tests."""

import pytest

# Skip the entire suite when optional heavy dependencies are unavailable.
pytest.importorskip("pandas")
pytest.importorskip("nibabel")


@pytest.fixture(autouse=True)
def _isolated_log_dir(tmp_path, monkeypatch):
    """Keep the rotating JSON log out of the package directory."""
    monkeypatch.setenv("BOLDQC_LOG_DIR", str(tmp_path / "_logs"))
