import logging
from pathlib import Path
from typing import Iterable, List
from vfit.domain.models import VideoFile

TEMP_SUFFIX = ".tmp_compressed.mp4"


def is_temp_artifact(path: Path) -> bool:
    return path.name.endswith(TEMP_SUFFIX)


class FileScanner:
    """Finds video files under a root, in sorted (stable) order."""

    def __init__(self, extensions: Iterable[str]):
        self.extensions = {ext.lstrip(".").lower() for ext in extensions}
        self.logger = logging.getLogger(__name__)

    def is_video(self, path: Path) -> bool:
        return path.suffix.lstrip(".").lower() in self.extensions and not is_temp_artifact(path)

    def scan(self, root: Path) -> List[VideoFile]:
        files = []
        for path in sorted(root.rglob("*")):
            if not path.is_file() or not self.is_video(path):
                continue
            try:
                size = path.stat().st_size
            except OSError as e:
                # File vanished between listing and stat
                self.logger.warning(f"Cannot stat {path}: {e}")
                continue
            files.append(VideoFile(path=path, size_bytes=size, relative_path=path.relative_to(root)))
        self.logger.info(f"Scan of {root}: {len(files)} video file(s)")
        return files
