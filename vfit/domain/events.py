from pathlib import Path
from typing import Optional
from pydantic import BaseModel
from .models import BitratePlan, FailureReason, FileOutcome, RunReport, VideoFile

class Event(BaseModel):
    """Base class for all domain events."""
    pass

class DiscoveryStarted(Event):
    directory: Path

class DiscoveryFinished(Event):
    files_found: int

class FileEvent(Event):
    video_file: VideoFile

class FileStarted(FileEvent):
    index: int
    total: int

class FileSkipped(FileEvent):
    backup_path: Path
    existing_backup_kept: bool = False

class FilePlanned(FileEvent):
    duration_seconds: float
    plan: BitratePlan

class FileCompressed(FileEvent):
    outcome: FileOutcome

class FileFailed(FileEvent):
    reason: FailureReason
    error_message: str

class SizeBudgetExceeded(FileEvent):
    output_size_bytes: int
    max_bytes: int

class EncodeAttemptStarted(Event):
    input_path: Path
    backend: str

class EncodeAttemptFailed(Event):
    input_path: Path
    backend: str
    error_message: str
    next_backend: Optional[str] = None

class RunFinished(Event):
    report: RunReport
