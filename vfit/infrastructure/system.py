import shutil
import subprocess
from typing import Iterable
from vfit.domain.errors import MissingDependencyError

REQUIRED_TOOLS = ("ffmpeg", "ffprobe")


def check_dependencies(tools: Iterable[str] = REQUIRED_TOOLS):
    """Raises MissingDependencyError for the first tool not found in PATH."""
    for tool in tools:
        if shutil.which(tool) is None:
            raise MissingDependencyError(f"'{tool}' is not available in PATH. Please install it and try again.")


def list_ffmpeg_encoders() -> str:
    """Returns the raw `ffmpeg -encoders` listing, or "" if ffmpeg cannot list them."""
    try:
        result = subprocess.run(
            ["ffmpeg", "-hide_banner", "-encoders"],
            capture_output=True, text=True, encoding="utf-8", errors="replace"
        )
    except OSError:
        return ""
    return result.stdout if result.returncode == 0 else ""
