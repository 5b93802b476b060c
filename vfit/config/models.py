from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from vfit.domain.models import SizeBudget

BACKEND_NAMES = ("nvenc", "vaapi", "cpu")

class GeneralConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_size_mb: float = Field(default=10, gt=0)
    safety_factor: float = Field(default=0.95, gt=0.0, le=1.0)
    min_video_bitrate_bps: int = Field(default=200_000, gt=0)
    audio_bitrate_bps: int = Field(default=128_000, gt=0)
    extensions: List[str] = Field(default_factory=lambda: ["mp4", "mkv", "mov", "avi", "webm", "m4v"])
    encoders: Optional[List[str]] = Field(default=None)
    vaapi_device: str = "/dev/dri/renderD128"
    strict: bool = False
    debug: bool = False

    @field_validator('extensions')
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        normalized = [ext.strip().lstrip(".").lower() for ext in v]
        if not all(normalized):
            raise ValueError("Extensions must not be empty.")
        return normalized

    @field_validator('encoders')
    @classmethod
    def validate_encoders(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        names = [name.strip().lower() for name in v]
        for name in names:
            if name not in BACKEND_NAMES:
                raise ValueError(f"Unknown encoder backend '{name}'. Must be one of: {', '.join(BACKEND_NAMES)}.")
        return names or None

    @property
    def size_budget(self) -> SizeBudget:
        return SizeBudget.from_megabytes(self.max_size_mb, self.safety_factor)

class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
