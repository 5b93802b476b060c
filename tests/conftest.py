import pytest
from pathlib import Path
from unittest.mock import MagicMock
from vfit.config.models import AppConfig, GeneralConfig
from vfit.domain.errors import EncodeError, ProbeError
from vfit.domain.models import EncodeResult
from vfit.infrastructure.event_bus import EventBus
from vfit.infrastructure.ffmpeg import make_backends
from vfit.infrastructure.file_scanner import FileScanner
from vfit.pipeline.orchestrator import Orchestrator

# 0.001 MB -> max_bytes=1048, target_bytes=996
TINY_BUDGET_MB = 0.001
SMALL_BYTES = 500
BIG_BYTES = 5000


class FakeProber:
    """Stands in for ffprobe: fixed duration, or ProbeError for listed file names."""

    def __init__(self, duration: float = 20.0, failing=()):
        self.duration = duration
        self.failing = set(failing)
        self.calls = []

    def get_duration(self, path: Path) -> float:
        self.calls.append(path)
        if path.name in self.failing:
            raise ProbeError(f"Could not get duration for {path}")
        return self.duration


class FakeEncoder:
    """Stands in for ffmpeg: writes `output_size` bytes, or fails for listed file names."""

    def __init__(self, output_size: int = 300, failing=(), fallback_used: bool = False, interrupt: bool = False):
        self.output_size = output_size
        self.failing = set(failing)
        self.fallback_used = fallback_used
        self.interrupt = interrupt
        self.calls = []

    def encode(self, input_path, output_path, plan, backends):
        self.calls.append((input_path, output_path, plan, list(backends)))
        output_path.write_bytes(b"e" * self.output_size)
        if self.interrupt:
            raise KeyboardInterrupt
        if input_path.name in self.failing:
            raise EncodeError(f"All encoder backends failed for {input_path.name}", ["cpu: ffmpeg exited with code 1"])
        return EncodeResult(
            output_path=output_path,
            size_bytes=self.output_size,
            backend="cpu",
            fallback_used=self.fallback_used,
        )


@pytest.fixture
def source_dir(tmp_path):
    d = tmp_path / "source"
    d.mkdir()
    return d


@pytest.fixture
def backup_dir(tmp_path):
    return tmp_path / "backup"


@pytest.fixture
def write_video():
    def _write(path: Path, size: int, fill: bytes = b"o") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(fill * size)
        return path
    return _write


@pytest.fixture
def tiny_config():
    return AppConfig(general=GeneralConfig(max_size_mb=TINY_BUDGET_MB))


@pytest.fixture
def make_orchestrator(tiny_config):
    def _make(prober=None, encoder=None, config=None, bus=None, scanner=None):
        config = config or tiny_config
        return Orchestrator(
            config=config,
            event_bus=bus or EventBus(),
            file_scanner=scanner or FileScanner(extensions=config.general.extensions),
            ffprobe_adapter=prober or FakeProber(),
            ffmpeg_adapter=encoder or FakeEncoder(),
            backends=make_backends(["cpu"])
        )
    return _make
