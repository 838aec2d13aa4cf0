"""
Configuration package façade.

* :func:`load_config` – locate, read and validate the QC YAML.
* :class:`QCConfig` – Pydantic model representing the validated configuration.
"""

from .loader import load_config  # noqa: F401
from .schema import QCConfig  # noqa: F401

__all__: list[str] = ["load_config", "QCConfig"]
