from datetime import datetime
from pathlib import Path

from boldqc.config.schema import QCConfig, ReportOptions
from boldqc.models import (
    FdSummary,
    ImageInfo,
    QCInputs,
    QCPaths,
    QCSummary,
    StageResult,
    StageStatus,
    TsnrStats,
)
from boldqc.qc.classify import STATIC_OVERALL
from boldqc.qc.report import render_report, write_report


def _inputs(tmp_path: Path, subject: str = "sub-01") -> QCInputs:
    return QCInputs(
        scan=tmp_path / "sub-01_task-rest_bold.nii.gz",
        mask=tmp_path / "brainmask.nii.gz",
        subject=subject,
        output_root=tmp_path,
    )


def _summary(tsnr_mean: float | None = 25.0, fd_max: float | None = 0.4) -> QCSummary:
    return QCSummary(
        info=ImageInfo(n_volumes=200, dims=(64, 64, 32), pixdims=(3.0, 3.0, 3.5), tr=2.0),
        tsnr=TsnrStats(mean=tsnr_mean, std=5.0, min=1.0, max=60.0) if tsnr_mean is not None else None,
        mean_intensity=812.5,
        fd=FdSummary(
            mean=0.1 if fd_max is not None else None,
            max=fd_max,
            n_outliers=0,
        ),
        dvars_outliers=3,
    )


def test_render_report_values_and_classes(tmp_path: Path):
    """Verify RENDER REPORT behavior."""
    html = render_report(
        _summary(),
        _inputs(tmp_path),
        generated_at=datetime(2024, 1, 2, 3, 4, 5),
    )
    assert "<title>fMRI QC Report - sub-01</title>" in html
    assert "Tue Jan 02 03:04:05 2024" in html
    assert "<td>200</td>" in html
    assert "dim1 64 dim2 64 dim3 32" in html
    assert "3 x 3 x 3.5 mm" in html
    assert '<span class="good">25</span>' in html
    assert "Interpretation: Good" in html
    assert '<span class="good">0.1 mm</span>' in html
    assert '<span class="good">0.4 mm</span>' in html
    assert "Volumes with FD &gt; 0.5mm: 0" in html
    assert "Mean Intensity: 812.5" in html
    assert "DVARS Outliers: 3" in html
    assert STATIC_OVERALL in html


def test_render_report_poor_metrics_keep_static_summary(tmp_path: Path):
    """The closing label stays positive unless computed mode is enabled."""
    html = render_report(_summary(tsnr_mean=5.0, fd_max=0.9), _inputs(tmp_path))
    assert '<span class="bad">5</span>' in html
    assert "Interpretation: Poor" in html
    assert '<span class="warning">0.9 mm</span>' in html
    assert STATIC_OVERALL in html


def test_render_report_computed_overall(tmp_path: Path):
    cfg = QCConfig(report=ReportOptions(computed_overall=True))
    html = render_report(_summary(tsnr_mean=5.0), _inputs(tmp_path), cfg=cfg)
    assert STATIC_OVERALL not in html
    assert "POOR - Data quality is questionable." in html


def test_render_report_unavailable_metrics(tmp_path: Path):
    """Verify RENDER REPORT NA behavior."""
    html = render_report(QCSummary(), _inputs(tmp_path))
    assert '<span class="bad">NA</span>' in html
    assert "Interpretation: Unavailable" in html
    assert '<span class="warning">NA mm</span>' in html
    assert "Dimensions</td><td>NA</td>" in html


def test_render_report_escapes_subject(tmp_path: Path):
    html = render_report(_summary(), _inputs(tmp_path, subject="<b>x</b>"))
    assert "<b>x</b>" not in html
    assert "&lt;b&gt;x&lt;/b&gt;" in html


def test_render_report_stage_table_and_plots(tmp_path: Path):
    """Verify RENDER REPORT stages behavior."""
    paths = QCPaths(out_dir=tmp_path, subject="sub-01")
    paths.fd_plot.touch()
    stages = [
        StageResult(name="Motion correction", status=StageStatus.FAILED, detail="mcflirt exited with status 1"),
        StageResult(name="tSNR calculation", status=StageStatus.SKIPPED, detail="requires Motion correction"),
    ]
    html = render_report(_summary(), _inputs(tmp_path), stages=stages, paths=paths)
    assert "4. Processing Status" in html
    assert "mcflirt exited with status 1" in html
    assert '<td class="bad">✗ failed</td>' in html
    assert '<img src="fd_plot.png"' in html
    assert "dvars_plot.png" not in html


def test_render_report_without_stages_or_plots(tmp_path: Path):
    html = render_report(_summary(), _inputs(tmp_path))
    assert "Processing Status" not in html
    assert "Motion Plots" not in html


def test_write_report_overwrites(tmp_path: Path):
    out = tmp_path / "QC_Report_sub-01.html"
    out.write_text("old")
    write_report("<html></html>", out)
    assert out.read_text() == "<html></html>"


def test_render_report_links_only_produced_plots(tmp_path: Path):
    """Verify RENDER REPORT produced plots behavior."""
    paths = QCPaths(out_dir=tmp_path, subject="sub-01")
    for p in (paths.fd_plot, paths.dvars_plot, paths.rot_png):
        p.touch()
    html = render_report(_summary(), _inputs(tmp_path), paths=paths, produced={paths.dvars_plot})
    assert '<img src="dvars_plot.png"' in html
    assert "fd_plot.png" not in html
    assert "motion_rot.png" not in html

    html = render_report(_summary(), _inputs(tmp_path), paths=paths, produced=set())
    assert "Motion Plots" not in html
