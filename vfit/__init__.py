"""vfit - squeeze video files under a size budget, keeping originals in a backup tree."""

__version__ = "0.1.0"
