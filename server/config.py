"""Server configuration loaded from environment variables.

All settings use MITT_ prefix. Example: MITT_PRESET=strict
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

from src.trainer.config import DEFAULT_CONFIG_PATH


class Settings(BaseSettings):
    config_path: Path = DEFAULT_CONFIG_PATH
    preset: Optional[str] = None  # None = classifier.default_preset from YAML

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    # Sessions
    seed: Optional[int] = None  # fixed RNG seed for reproducible drills
    max_sessions: int = 32

    model_config = {"env_prefix": "MITT_"}


settings = Settings()
