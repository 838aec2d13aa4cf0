"""Wrappers for the external neuroimaging toolkit."""

from .base import Toolkit
from .fsl import FslToolkit, REQUIRED_TOOLS, parse_fslinfo, parse_stats

__all__ = ["Toolkit", "FslToolkit", "REQUIRED_TOOLS", "parse_fslinfo", "parse_stats"]
