from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

MEGABYTE = 1024 * 1024


class OutcomeKind(str, Enum):
    SKIPPED = "SKIPPED"
    COMPRESSED = "COMPRESSED"
    FAILED = "FAILED"


class FailureReason(str, Enum):
    PROBE_ERROR = "probe-error"
    ENCODE_ERROR = "encode-error"
    BUDGET_UNREACHABLE = "budget-unreachable"
    IO_ERROR = "io-error"
    UNEXPECTED_ERROR = "unexpected-error"


class WarningKind(str, Enum):
    BITRATE_FLOOR = "bitrate-floor"
    SIZE_EXCEEDED = "size-exceeded"
    BACKEND_FALLBACK = "backend-fallback"
    BACKUP_KEPT = "backup-kept"


class VideoFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path
    size_bytes: int
    relative_path: Path


class SizeBudget(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_bytes: int = Field(gt=0)
    target_bytes: int = Field(gt=0)

    @classmethod
    def from_megabytes(cls, max_size_mb: float, safety_factor: float) -> "SizeBudget":
        """Budget of `max_size_mb` MiB, aiming at `safety_factor` of it."""
        max_bytes = int(max_size_mb * MEGABYTE)
        return cls(max_bytes=max_bytes, target_bytes=round(max_bytes * safety_factor))


class BitratePlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    video_bitrate_bps: float
    audio_bitrate_bps: int
    buffer_size_bps: float
    # True when the budget could not cover audio plus the minimum video rate
    floor_limited: bool = False

    @property
    def video_kbps(self) -> int:
        return int(self.video_bitrate_bps // 1000)

    @property
    def audio_kbps(self) -> int:
        return self.audio_bitrate_bps // 1000

    @property
    def buffer_kbps(self) -> int:
        return 2 * self.video_kbps


class EncodeResult(BaseModel):
    output_path: Path
    size_bytes: int
    backend: str
    fallback_used: bool = False


class FileOutcome(BaseModel):
    video_file: VideoFile
    kind: OutcomeKind
    backup_path: Optional[Path] = None
    output_size_bytes: Optional[int] = None
    saved_bytes: Optional[int] = None
    backend: Optional[str] = None
    reason: Optional[FailureReason] = None
    error_message: Optional[str] = None
    warnings: List[WarningKind] = Field(default_factory=list)


class RunReport(BaseModel):
    source_root: Path
    backup_root: Path
    outcomes: List[FileOutcome] = Field(default_factory=list)

    def _of(self, kind: OutcomeKind) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.kind == kind]

    @property
    def skipped(self) -> List[FileOutcome]:
        return self._of(OutcomeKind.SKIPPED)

    @property
    def compressed(self) -> List[FileOutcome]:
        return self._of(OutcomeKind.COMPRESSED)

    @property
    def failures(self) -> List[FileOutcome]:
        return self._of(OutcomeKind.FAILED)

    @property
    def warned(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.warnings]

    @property
    def saved_bytes(self) -> int:
        return sum(o.saved_bytes or 0 for o in self.compressed)

    @property
    def succeeded(self) -> bool:
        return not self.failures
