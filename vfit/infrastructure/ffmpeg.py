import subprocess
import logging
from collections import deque
from pathlib import Path
from typing import Iterable, List, Optional, Sequence
from vfit.domain.errors import EncodeError
from vfit.domain.events import EncodeAttemptFailed, EncodeAttemptStarted
from vfit.domain.models import BitratePlan, EncodeResult
from vfit.infrastructure.event_bus import EventBus

TAIL_LINES = 20


class EncoderBackend:
    """An ffmpeg video encoder; subclasses pick the codec and its options."""

    name = ""
    codec = ""
    hardware = False

    def input_args(self) -> List[str]:
        return []

    def video_args(self) -> List[str]:
        return ["-c:v", self.codec, "-preset", "medium"]

    def build_command(self, input_path: Path, output_path: Path, plan: BitratePlan) -> List[str]:
        """Constructs the ffmpeg command line arguments."""
        cmd = ["ffmpeg", "-y", *self.input_args(), "-i", str(input_path)]
        cmd.extend(self.video_args())

        # Rate control: cap at target bitrate over a two-second buffer
        video_rate = f"{plan.video_kbps}k"
        cmd.extend([
            "-b:v", video_rate,
            "-maxrate:v", video_rate,
            "-bufsize:v", f"{plan.buffer_kbps}k",
        ])

        cmd.extend([
            "-c:a", "aac",
            "-b:a", f"{plan.audio_kbps}k",
            "-movflags", "+faststart",
        ])
        cmd.append(str(output_path))
        return cmd

    def __repr__(self):
        return f"{type(self).__name__}({self.codec})"


class SoftwareBackend(EncoderBackend):
    name = "cpu"
    codec = "libx265"


class NvencBackend(EncoderBackend):
    name = "nvenc"
    codec = "hevc_nvenc"
    hardware = True

    def video_args(self) -> List[str]:
        return ["-c:v", self.codec, "-preset", "fast", "-rc:v", "vbr_hq"]


class VaapiBackend(EncoderBackend):
    name = "vaapi"
    codec = "hevc_vaapi"
    hardware = True

    def __init__(self, device: str = "/dev/dri/renderD128"):
        self.device = device

    def input_args(self) -> List[str]:
        return ["-init_hw_device", f"vaapi=va:{self.device}", "-filter_hw_device", "va"]

    def video_args(self) -> List[str]:
        return ["-vf", "format=nv12,hwupload", "-c:v", self.codec]


def make_backends(names: Iterable[str], vaapi_device: str = "/dev/dri/renderD128") -> List[EncoderBackend]:
    """Builds backends in the given order; the software backend is always tried last."""
    factories = {
        "nvenc": NvencBackend,
        "vaapi": lambda: VaapiBackend(vaapi_device),
        "cpu": SoftwareBackend,
    }
    backends: List[EncoderBackend] = []
    for name in names:
        if name not in factories:
            raise ValueError(f"Unknown encoder backend: {name}")
        if any(b.name == name for b in backends):
            continue
        backends.append(factories[name]())
    if not any(b.name == "cpu" for b in backends):
        backends.append(SoftwareBackend())
    return backends


def detect_backends(encoders_listing: str, vaapi_device: str = "/dev/dri/renderD128") -> List[EncoderBackend]:
    """Hardware backends found in `ffmpeg -encoders` output first, software last."""
    names = [b.name for b in (NvencBackend, VaapiBackend) if b.codec in encoders_listing]
    return make_backends(names, vaapi_device)


class FFmpegAdapter:
    """Wrapper around ffmpeg that encodes to a bitrate plan with backend fallback."""

    def __init__(self, event_bus: EventBus):
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)

    def encode(self, input_path: Path, output_path: Path, plan: BitratePlan,
               backends: Sequence[EncoderBackend]) -> EncodeResult:
        """Tries each backend in order until one produces a non-empty output file."""
        if not backends:
            raise ValueError("At least one encoder backend is required")

        attempts = []
        for idx, backend in enumerate(backends):
            self.event_bus.publish(EncodeAttemptStarted(input_path=input_path, backend=backend.name))
            self.logger.info(
                f"FFMPEG_START: {input_path.name} backend={backend.name} "
                f"video={plan.video_kbps}k audio={plan.audio_kbps}k bufsize={plan.buffer_kbps}k"
            )

            error = self._run(backend.build_command(input_path, output_path, plan), output_path)
            if error is None:
                size = output_path.stat().st_size
                self.logger.info(f"FFMPEG_END: {input_path.name} backend={backend.name} size={size}")
                return EncodeResult(
                    output_path=output_path,
                    size_bytes=size,
                    backend=backend.name,
                    fallback_used=idx > 0,
                )

            attempts.append(f"{backend.name}: {error}")
            next_backend = backends[idx + 1].name if idx + 1 < len(backends) else None
            self.logger.warning(f"FFMPEG_FAIL: {input_path.name} backend={backend.name}: {error}")
            self.event_bus.publish(EncodeAttemptFailed(
                input_path=input_path,
                backend=backend.name,
                error_message=error,
                next_backend=next_backend,
            ))

        raise EncodeError(f"All encoder backends failed for {input_path.name}", attempts)

    def _run(self, cmd: List[str], output_path: Path) -> Optional[str]:
        """Runs one ffmpeg attempt. Returns None on success, an error message otherwise."""
        self._remove(output_path)
        self.logger.debug(f"FFMPEG_CMD: {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1
            )
        except OSError as e:
            return f"could not start ffmpeg: {e}"

        tail = deque(maxlen=TAIL_LINES)
        try:
            for line in process.stdout:
                tail.append(line.rstrip())
            process.wait()
        except BaseException:
            # Interrupted mid-encode: never leave a partial output behind
            process.kill()
            process.wait()
            self._remove(output_path)
            raise

        if process.returncode != 0:
            self._remove(output_path)
            for line in tail:
                self.logger.debug(f"FFMPEG_OUT: {line}")
            last = next((line for line in reversed(tail) if line.strip()), "")
            message = f"ffmpeg exited with code {process.returncode}"
            return f"{message}: {last}" if last else message

        if not output_path.exists() or output_path.stat().st_size == 0:
            self._remove(output_path)
            return "ffmpeg produced no output"
        return None

    @staticmethod
    def _remove(path: Path):
        if path.exists():
            path.unlink()
