"""Centralised configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pagemarks.anchoring.marker_constants import (
    DEFAULT_BACKGROUND,
    DEFAULT_HOVER_BACKGROUND,
    render_stylesheet,
)

logger = logging.getLogger(__name__)

# src/pagemarks/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class AnchorConfig(BaseModel):
    """How anchors are captured and re-resolved."""

    context_chars: int = 30
    partial_context_chars: int = 20
    context_strategy: Literal["selection", "first_occurrence"] = "selection"

    @model_validator(mode="after")
    def partial_not_wider_than_full(self) -> AnchorConfig:
        if self.context_chars < 0 or self.partial_context_chars < 0:
            msg = "ANCHOR__CONTEXT_CHARS and ANCHOR__PARTIAL_CONTEXT_CHARS must be >= 0"
            raise ValueError(msg)
        if self.partial_context_chars > self.context_chars:
            msg = "ANCHOR__PARTIAL_CONTEXT_CHARS cannot exceed ANCHOR__CONTEXT_CHARS"
            raise ValueError(msg)
        return self


class MarkerConfig(BaseModel):
    """Presentation of the highlight marker."""

    background: str = DEFAULT_BACKGROUND
    hover_background: str = DEFAULT_HOVER_BACKGROUND

    def stylesheet(self) -> str:
        """Render the CSS rules injected once per document."""
        return render_stylesheet(self.background, self.hover_background)


class StorageConfig(BaseModel):
    """Anchor store backend selection."""

    backend: Literal["json", "memory"] = "json"
    path: Path = Path("data/highlights.json")
    key_prefix: str = "highlights_"


class AppConfig(BaseModel):
    """Runtime configuration for the command-line tool."""

    log_dir: Path = Path("logs")
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``ANCHOR__CONTEXT_CHARS``, ``STORAGE__BACKEND``, ``STORAGE__PATH``, etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    anchor: AnchorConfig = AnchorConfig()
    marker: MarkerConfig = MarkerConfig()
    storage: StorageConfig = StorageConfig()
    app: AppConfig = AppConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.info("Settings: no .env file found, using env vars and defaults")

    return settings
