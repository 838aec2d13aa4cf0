"""
YAML configuration loader.

Search precedence (first match wins)
1. An explicit path argument (``--config`` on the CLI).
2. ``<project>/code/config/qc.yaml`` – project-local override.
3. The packaged default shipped inside the wheel.

All resolution logic is concentrated here so the rest of *boldqc* treats
configuration as an already-validated object.
"""

from __future__ import annotations

from importlib.resources import as_file, files
from pathlib import Path
from typing import Optional

import structlog
import yaml

from .schema import QCConfig

log = structlog.get_logger()

_DEFAULT_QC = files("boldqc.resources") / "default_qc.yaml"


def _project_local(root: Optional[str | Path], name: str) -> Optional[Path]:
    """Return ``<root>/code/config/<name>`` or *None* if *root* is ``None``."""
    if root is None:
        return None
    return Path(root).expanduser().resolve() / "code" / "config" / name


def _first_existing(*candidates: Optional[Path]) -> Optional[Path]:
    """Return the first path in *candidates* that exists on disk."""
    for p in candidates:
        if p is not None and p.exists():
            return p
    return None


def _load_yaml(path: Path) -> dict:
    """Read a YAML mapping; an empty document yields ``{}``."""
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise RuntimeError(f"Invalid configuration – {path} must contain a mapping")
    return data


def load_config(
    path: Optional[str | Path] = None,
    *,
    project_root: Optional[str | Path] = None,
) -> QCConfig:
    """Return a fully validated :class:`QCConfig`.

    Args:
        path: Explicit YAML path. ``None`` triggers the search sequence
            described in the module doc-string.
        project_root: Directory searched for ``code/config/qc.yaml``.

    Returns:
        A :class:`QCConfig` object ready for downstream use.

    Raises:
        FileNotFoundError: When *path* is given but does not exist.
        RuntimeError: When the YAML fails Pydantic validation.
    """
    explicit = Path(path).expanduser().resolve() if path else None
    if explicit is not None and not explicit.exists():
        raise FileNotFoundError(f"Configuration file not found: {explicit}")

    resolved = _first_existing(explicit, _project_local(project_root, "qc.yaml"))
    if resolved is None:
        with as_file(_DEFAULT_QC) as p:
            data = _load_yaml(p)
        source = "<packaged default>"
    else:
        data = _load_yaml(resolved)
        source = str(resolved)

    log.debug("config.loaded", source=source)
    try:
        return QCConfig(**data)
    except Exception as exc:  # pydantic.ValidationError or type errors
        raise RuntimeError(f"Invalid configuration – {exc}") from exc
