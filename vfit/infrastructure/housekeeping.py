import logging
from pathlib import Path
from vfit.infrastructure.file_scanner import TEMP_SUFFIX

class HousekeepingService:
    """Removes leftovers of interrupted runs."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def cleanup_temp_files(self, directory: Path) -> int:
        """Deletes stale *.tmp_compressed.mp4 encoder outputs under `directory`."""
        removed = 0
        for tmp_file in directory.rglob(f"*{TEMP_SUFFIX}"):
            if tmp_file.is_file():
                tmp_file.unlink()
                removed += 1
        if removed:
            self.logger.info(f"Cleaned up {removed} stale {TEMP_SUFFIX} file(s) in {directory}")
        return removed
