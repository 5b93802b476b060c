import io
from pathlib import Path
from rich.console import Console
from vfit.config.models import GeneralConfig
from vfit.domain.events import FilePlanned, FileSkipped, FileStarted, EncodeAttemptFailed
from vfit.domain.models import (
    BitratePlan, FailureReason, FileOutcome, OutcomeKind, RunReport, VideoFile, WarningKind
)
from vfit.infrastructure.event_bus import EventBus
from vfit.infrastructure.ffmpeg import make_backends
from vfit.ui.reporter import ConsoleReporter, format_mb


def _reporter():
    buffer = io.StringIO()
    bus = EventBus()
    reporter = ConsoleReporter(bus, Console(file=buffer, width=120))
    return bus, reporter, buffer


def _video(name, size=89_464_422):
    return VideoFile(path=Path("/videos") / name, size_bytes=size, relative_path=Path(name))


def test_format_mb():
    assert format_mb(89_464_422) == "85.32 MB"
    assert format_mb(0) == "0.00 MB"


def test_per_file_lines():
    bus, _, buffer = _reporter()
    plan = BitratePlan(video_bitrate_bps=200_000, audio_bitrate_bps=128_000, buffer_size_bps=400_000, floor_limited=True)

    bus.publish(FileStarted(video_file=_video("a.mp4"), index=1, total=3))
    bus.publish(FilePlanned(video_file=_video("a.mp4"), duration_seconds=3600, plan=plan))
    bus.publish(EncodeAttemptFailed(input_path=Path("/videos/a.mp4"), backend="nvenc", error_message="ffmpeg exited with code 1", next_backend="cpu"))

    out = buffer.getvalue()
    assert "[1/3] Processing: a.mp4" in out
    assert "Original size: 85.32 MB" in out
    assert "Using minimum video bitrate" in out
    assert "Target video bitrate: 200 kbps" in out
    assert "Falling back to cpu" in out


def test_summary_lists_failures_and_oversized():
    _, reporter, buffer = _reporter()
    report = RunReport(source_root=Path("/videos"), backup_root=Path("/backup"), outcomes=[
        FileOutcome(video_file=_video("ok.mp4"), kind=OutcomeKind.COMPRESSED, saved_bytes=2 * 1024 * 1024,
                    warnings=[WarningKind.SIZE_EXCEEDED]),
        FileOutcome(video_file=_video("bad.mp4"), kind=OutcomeKind.FAILED, reason=FailureReason.ENCODE_ERROR,
                    error_message="All encoder backends failed for bad.mp4"),
    ])

    reporter.print_summary(report)

    out = buffer.getvalue()
    assert "Compressed: 1" in out
    assert "Failed: 1" in out
    assert "Total saved: ~2.00 MB" in out
    assert "Still over budget (1)" in out
    assert "/videos/bad.mp4" in out
    assert "encode-error" in out


def test_print_configuration():
    _, reporter, buffer = _reporter()
    reporter.print_configuration(GeneralConfig(), Path("/videos"), Path("/backup"), make_backends(["nvenc"]))

    out = buffer.getvalue()
    assert "10.00 MB (target 9.50 MB)" in out
    assert "nvenc (hevc_nvenc) → cpu (libx265)" in out


def test_skipped_with_existing_backup_kept():
    bus, _, buffer = _reporter()

    bus.publish(FileSkipped(video_file=_video("a.mp4"), backup_path=Path("/backup/a.mp4"), existing_backup_kept=True))
    bus.publish(FileSkipped(video_file=_video("b.mp4"), backup_path=Path("/backup/b.mp4")))

    out = buffer.getvalue()
    assert "A different backup already exists, kept: /backup/a.mp4" in out
    assert "Backup created at: /backup/b.mp4" in out
