"""Aggregation, classification and HTML rendering of QC metrics."""

from .classify import (
    Classification,
    Tier,
    classify_max_fd,
    classify_mean_fd,
    classify_tsnr,
    overall_quality,
)
from .metrics import (
    count_lines,
    format_value,
    read_rms_mean,
    read_series,
    summarize_fd,
    write_summary_csv,
)
from .report import render_report, write_report

__all__ = [
    'Classification', 'Tier', 'classify_max_fd', 'classify_mean_fd', 'classify_tsnr',
    'overall_quality', 'count_lines', 'format_value', 'read_rms_mean', 'read_series',
    'summarize_fd', 'write_summary_csv', 'render_report', 'write_report',
]
