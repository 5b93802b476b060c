class VfitError(Exception):
    """Base class for all vfit errors."""


class MissingDependencyError(VfitError):
    """A required external tool is not available in PATH."""


class InvalidDirectoryError(VfitError):
    """Source/backup directories are missing or overlap."""


class InvalidInputError(VfitError, ValueError):
    """Bad argument to the bitrate planner, e.g. a non-positive duration."""


class ProbeError(VfitError):
    """Duration could not be read from a media file."""


class EncodeError(VfitError):
    """Every configured encoder backend failed for a file."""

    def __init__(self, message: str, attempts=None):
        super().__init__(message)
        self.attempts = list(attempts or [])
