"""Configuration loader — reads config.yaml, validates with Pydantic.

Holds the model settings, the library -> system prompt file mapping and
the web layer options (CORS, API key gate, database, static files).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"
CONFIG_ENV_VAR = "GAMESRANDOM_CONFIG"


class AppConfig(BaseModel):
    """Top-level service configuration."""

    # Model
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 7000

    # Generation
    min_description_length: int = 5
    default_library: str = "p5js"
    libraries: dict[str, str]   # library key -> system prompt file
    assistant_prompt: str       # assistant template file

    # Web layer
    api_key: str | None = None
    allowed_origins: list[str] = ["*"]
    database_path: str = "games.db"
    static_dir: str | None = None

    # Directory relative paths are resolved against (set by load_config)
    base_dir: str = "."

    @field_validator("libraries")
    @classmethod
    def must_have_libraries(cls, v: dict[str, str]) -> dict[str, str]:
        if not v:
            raise ValueError("At least one library prompt must be configured")
        return {key.lower(): path for key, path in v.items()}

    @field_validator("max_tokens", "min_description_length")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @model_validator(mode="after")
    def validate_default_library(self) -> AppConfig:
        self.default_library = self.default_library.lower()
        if self.default_library not in self.libraries:
            raise ValueError(
                f"default_library '{self.default_library}' is not configured. "
                f"Available: {sorted(self.libraries)}"
            )
        return self

    def resolve_path(self, path: str) -> Path:
        """Resolve a configured path against the config file's directory."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return Path(self.base_dir) / candidate

    def supported_libraries(self) -> list[str]:
        return sorted(self.libraries)


# ---------------------------------------------------------------------------
# Module-level config cache
# ---------------------------------------------------------------------------

_config: AppConfig | None = None


def load_config(path: str | None = None) -> AppConfig:
    """Read config.yaml from disk, validate, and cache."""
    global _config
    path = path or os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)

    config_file = Path(path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")

    raw = yaml.safe_load(config_file.read_text()) or {}
    raw.setdefault("base_dir", str(config_file.resolve().parent))
    _config = AppConfig(**raw)

    logger.info(
        f"Loaded config: model={_config.model}, "
        f"libraries={_config.supported_libraries()}"
    )
    return _config


def get_config() -> AppConfig:
    """Return cached config. Raises if not yet loaded."""
    if _config is None:
        raise RuntimeError("Config not loaded, call load_config() first")
    return _config
