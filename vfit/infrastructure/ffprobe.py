import subprocess
import json
import math
from pathlib import Path
from vfit.domain.errors import ProbeError

class FFprobeAdapter:
    """Wrapper around ffprobe to read container duration."""

    def get_duration(self, file_path: Path) -> float:
        """Executes ffprobe and returns format.duration in seconds."""
        cmd = [
            "ffprobe",
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            str(file_path)
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, encoding="utf-8", errors="replace")
        except OSError as e:
            raise ProbeError(f"Could not run ffprobe for {file_path}: {e}") from e
        if result.returncode != 0:
            raise ProbeError(f"ffprobe failed for {file_path}: {result.stderr.strip()}")

        try:
            data = json.loads(result.stdout)
            duration = float(data["format"]["duration"])
        except (ValueError, KeyError, TypeError) as e:
            raise ProbeError(f"Could not get duration for {file_path}") from e

        if not math.isfinite(duration) or duration <= 0:
            raise ProbeError(f"Invalid duration {duration} for {file_path}")
        return duration
