import filecmp
import logging
import shutil
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
from vfit.config.models import AppConfig
from vfit.domain.errors import EncodeError, InvalidDirectoryError, ProbeError
from vfit.domain.events import (
    DiscoveryStarted, DiscoveryFinished, FileStarted, FileSkipped, FilePlanned,
    FileCompressed, FileFailed, SizeBudgetExceeded, RunFinished
)
from vfit.domain.models import (
    FailureReason, FileOutcome, OutcomeKind, RunReport, SizeBudget, VideoFile, WarningKind
)
from vfit.infrastructure.event_bus import EventBus
from vfit.infrastructure.ffmpeg import EncoderBackend, FFmpegAdapter
from vfit.infrastructure.ffprobe import FFprobeAdapter
from vfit.infrastructure.file_scanner import FileScanner, TEMP_SUFFIX
from vfit.pipeline.planner import plan_bitrates


def validate_directories(source_root: Path, backup_root: Path) -> Tuple[Path, Path]:
    """Resolves both roots; rejects a missing source or overlapping roots."""
    source = Path(source_root).expanduser().resolve()
    backup = Path(backup_root).expanduser().resolve()

    if not source.is_dir():
        raise InvalidDirectoryError(f"Source directory does not exist: {source}")
    if source == backup:
        raise InvalidDirectoryError("Source and backup directories cannot be the same.")
    if backup.is_relative_to(source):
        raise InvalidDirectoryError("Backup directory cannot be a subfolder of the source directory.")
    if backup.exists() and not backup.is_dir():
        raise InvalidDirectoryError(f"Backup path is not a directory: {backup}")
    return source, backup


class Orchestrator:
    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        file_scanner: FileScanner,
        ffprobe_adapter: FFprobeAdapter,
        ffmpeg_adapter: FFmpegAdapter,
        backends: Sequence[EncoderBackend]
    ):
        self.config = config
        self.event_bus = event_bus
        self.file_scanner = file_scanner
        self.ffprobe_adapter = ffprobe_adapter
        self.ffmpeg_adapter = ffmpeg_adapter
        self.backends = list(backends)
        self.logger = logging.getLogger(__name__)

    def run(self, source_root: Path, backup_root: Path, size_budget: Optional[SizeBudget] = None) -> RunReport:
        """Processes every video under `source_root` in scan order."""
        source, backup = validate_directories(source_root, backup_root)
        budget = size_budget or self.config.general.size_budget
        backup.mkdir(parents=True, exist_ok=True)

        self.event_bus.publish(DiscoveryStarted(directory=source))
        files = self.file_scanner.scan(source)
        self.event_bus.publish(DiscoveryFinished(files_found=len(files)))
        self.logger.info(
            f"Run started: source={source}, backup={backup}, files={len(files)}, "
            f"max_bytes={budget.max_bytes}, target_bytes={budget.target_bytes}"
        )

        report = RunReport(source_root=source, backup_root=backup)
        for idx, video_file in enumerate(files, start=1):
            self.event_bus.publish(FileStarted(video_file=video_file, index=idx, total=len(files)))
            try:
                outcome = self._process_file(video_file, backup, budget)
            except Exception as e:
                # A single file must never abort the batch
                self.logger.exception(f"Exception processing {video_file.path}")
                outcome = self._fail(video_file, FailureReason.UNEXPECTED_ERROR, f"Exception: {e}")
            report.outcomes.append(outcome)

        self.logger.info(
            f"Run finished: compressed={len(report.compressed)}, skipped={len(report.skipped)}, "
            f"failed={len(report.failures)}, saved_bytes={report.saved_bytes}"
        )
        self.event_bus.publish(RunFinished(report=report))
        return report

    def _process_file(self, video_file: VideoFile, backup_root: Path, budget: SizeBudget) -> FileOutcome:
        backup_path = backup_root / video_file.relative_path

        if video_file.size_bytes <= budget.max_bytes:
            return self._backup_unchanged(video_file, backup_path)

        try:
            duration = self.ffprobe_adapter.get_duration(video_file.path)
        except ProbeError as e:
            return self._fail(video_file, FailureReason.PROBE_ERROR, str(e))

        general = self.config.general
        plan = plan_bitrates(duration, budget.target_bytes, general.audio_bitrate_bps, general.min_video_bitrate_bps)
        self.event_bus.publish(FilePlanned(video_file=video_file, duration_seconds=duration, plan=plan))
        self.logger.info(
            f"PLAN: {video_file.path} duration={duration:.2f}s video={plan.video_kbps}k "
            f"audio={plan.audio_kbps}k bufsize={plan.buffer_kbps}k"
        )

        warnings: List[WarningKind] = []
        if plan.floor_limited:
            if general.strict:
                return self._fail(
                    video_file, FailureReason.BUDGET_UNREACHABLE,
                    f"{duration:.2f}s does not fit in {budget.target_bytes} bytes at the minimum video bitrate"
                )
            warnings.append(WarningKind.BITRATE_FLOOR)
            self.logger.warning(f"Video is long relative to target size, using minimum video bitrate: {video_file.path}")

        temp_path = video_file.path.with_name(video_file.path.name + TEMP_SUFFIX)
        try:
            try:
                result = self.ffmpeg_adapter.encode(video_file.path, temp_path, plan, self.backends)
            except EncodeError as e:
                detail = "; ".join(e.attempts)
                return self._fail(video_file, FailureReason.ENCODE_ERROR, f"{e} ({detail})" if detail else str(e))

            if result.fallback_used:
                warnings.append(WarningKind.BACKEND_FALLBACK)
            if result.size_bytes > budget.max_bytes:
                # Single pass: keep the oversized output
                warnings.append(WarningKind.SIZE_EXCEEDED)
                self.logger.warning(f"Compressed file is still over budget ({result.size_bytes} bytes): {video_file.path}")
                self.event_bus.publish(SizeBudgetExceeded(
                    video_file=video_file,
                    output_size_bytes=result.size_bytes,
                    max_bytes=budget.max_bytes,
                ))

            try:
                self._replace_with_encoded(video_file.path, temp_path, backup_path)
            except OSError as e:
                return self._fail(video_file, FailureReason.IO_ERROR, f"Could not relocate files: {e}")
        finally:
            # Covers encode failures and interrupts alike
            if temp_path.exists():
                temp_path.unlink()

        outcome = FileOutcome(
            video_file=video_file,
            kind=OutcomeKind.COMPRESSED,
            backup_path=backup_path,
            output_size_bytes=result.size_bytes,
            saved_bytes=video_file.size_bytes - result.size_bytes,
            backend=result.backend,
            warnings=warnings,
        )
        self.logger.info(
            f"COMPRESSED: {video_file.path} {video_file.size_bytes} -> {result.size_bytes} bytes "
            f"backend={result.backend}, original moved to {backup_path}"
        )
        self.event_bus.publish(FileCompressed(video_file=video_file, outcome=outcome))
        return outcome

    def _backup_unchanged(self, video_file: VideoFile, backup_path: Path) -> FileOutcome:
        """Copies a file already within budget into the backup tree, never overwriting a different backup."""
        warnings: List[WarningKind] = []
        try:
            if backup_path.exists() and not filecmp.cmp(video_file.path, backup_path, shallow=False):
                # Most likely the original of a file compressed by an earlier run
                warnings.append(WarningKind.BACKUP_KEPT)
                self.logger.warning(f"Backup {backup_path} differs from {video_file.path}, keeping existing backup")
            else:
                backup_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(video_file.path, backup_path)
        except OSError as e:
            return self._fail(video_file, FailureReason.IO_ERROR, f"Could not back up file: {e}")

        self.logger.info(f"SKIPPED: {video_file.path} already within budget, backup at {backup_path}")
        self.event_bus.publish(FileSkipped(
            video_file=video_file,
            backup_path=backup_path,
            existing_backup_kept=bool(warnings),
        ))
        return FileOutcome(video_file=video_file, kind=OutcomeKind.SKIPPED, backup_path=backup_path, warnings=warnings)

    def _replace_with_encoded(self, original: Path, encoded: Path, backup_path: Path):
        """Moves `original` into the backup tree and `encoded` into its place."""
        backup_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(original), str(backup_path))
        try:
            encoded.replace(original)
        except BaseException:
            # Relocation is all-or-nothing, interrupts included
            shutil.move(str(backup_path), str(original))
            raise

    def _fail(self, video_file: VideoFile, reason: FailureReason, message: str) -> FileOutcome:
        self.logger.error(f"FAILED ({reason.value}): {video_file.path}: {message}")
        self.event_bus.publish(FileFailed(video_file=video_file, reason=reason, error_message=message))
        return FileOutcome(
            video_file=video_file,
            kind=OutcomeKind.FAILED,
            reason=reason,
            error_message=message,
        )
