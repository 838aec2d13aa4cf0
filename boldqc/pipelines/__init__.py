"""QC pipeline stages and orchestration."""

from .qc import run
from .staging import stage_scan

__all__ = ["run", "stage_scan"]
