"""Three-tier classification of QC metrics, independent of HTML rendering."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from boldqc.config.schema import Thresholds


class Tier(str, Enum):
    """CSS class used for a metric in the report."""

    GOOD = "good"
    WARNING = "warning"
    BAD = "bad"


_RANK = {Tier.GOOD: 0, Tier.WARNING: 1, Tier.BAD: 2}

STATIC_OVERALL = "GOOD - Data appears to be of high quality."
OVERALL_LABELS = {
    Tier.GOOD: STATIC_OVERALL,
    Tier.WARNING: "WARNING - Review motion and tSNR metrics.",
    Tier.BAD: "POOR - Data quality is questionable.",
}


@dataclass(frozen=True)
class Classification:
    """Tier plus the human-readable interpretation."""

    tier: Tier
    label: str

    @property
    def css(self) -> str:
        return self.tier.value


def classify_tsnr(value: Optional[float], thresholds: Thresholds | None = None) -> Classification:
    """Classify mean tSNR; every band boundary is exclusive (``> 20`` is good)."""
    t = thresholds or Thresholds()
    if value is None:
        return Classification(Tier.BAD, "Unavailable")
    if value > t.tsnr_excellent:
        return Classification(Tier.GOOD, "Excellent")
    if value > t.tsnr_good:
        return Classification(Tier.GOOD, "Good")
    if value > t.tsnr_acceptable:
        return Classification(Tier.WARNING, "Acceptable")
    return Classification(Tier.BAD, "Poor")


def classify_mean_fd(value: Optional[float], thresholds: Thresholds | None = None) -> Classification:
    """Mean FD below the cut-off is good; anything else, including NA, is a warning."""
    t = thresholds or Thresholds()
    if value is not None and value < t.mean_fd_good_mm:
        return Classification(Tier.GOOD, "Low motion")
    return Classification(Tier.WARNING, "Elevated motion" if value is not None else "Unavailable")


def classify_max_fd(value: Optional[float], thresholds: Thresholds | None = None) -> Classification:
    """Max FD strictly below the cut-off is good; equality falls to warning."""
    t = thresholds or Thresholds()
    if value is not None and value < t.max_fd_good_mm:
        return Classification(Tier.GOOD, "No large displacement")
    return Classification(Tier.WARNING, "Large displacement" if value is not None else "Unavailable")


def overall_quality(
    tsnr: Classification,
    mean_fd: Classification,
    max_fd: Classification,
    *,
    computed: bool = False,
) -> Classification:
    """Return the summary label shown at the bottom of the report.

    Unless *computed* is set the label is the fixed positive string, whatever the
    metrics say.
    """
    if not computed:
        return Classification(Tier.GOOD, STATIC_OVERALL)
    worst = max((tsnr.tier, mean_fd.tier, max_fd.tier), key=_RANK.__getitem__)
    return Classification(worst, OVERALL_LABELS[worst])


__all__ = [
    "Tier",
    "Classification",
    "STATIC_OVERALL",
    "classify_tsnr",
    "classify_mean_fd",
    "classify_max_fd",
    "overall_quality",
]
