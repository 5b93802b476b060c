import logging
from pathlib import Path
from typing import Any, Dict, Optional
import yaml
from vfit.config.models import AppConfig, GeneralConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("conf/vfit.yaml")


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from a YAML file.
    Returns defaults if the file doesn't exist; raises pydantic's
    ValidationError if it contains invalid values.
    """
    config_file = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not config_file.exists():
        if config_path:
            logger.warning(f"Config file not found at {config_file}, using defaults")
        return AppConfig()

    with open(config_file, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_file} must contain a mapping")
    return AppConfig(**data)


def apply_overrides(config: AppConfig, overrides: Dict[str, Any]) -> AppConfig:
    """Returns a new config with non-None overrides applied to `general`, re-validated."""
    merged = config.general.model_dump()
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return AppConfig(general=GeneralConfig(**merged))
