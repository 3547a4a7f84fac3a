"""Centralised configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# src/mdattrs/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

_LOG_LEVELS = frozenset(("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"))


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class TreeConfig(BaseModel):
    """Static element-tree annotation settings."""

    # Value written for presence attributes such as ``{checked}``.
    flag_value: str = ""
    # Class that marks a callout container (block annotations retarget to
    # the callout's parent).
    callout_class: str = "callout"
    collapse_indicator_class: str = "collapse-indicator"


class LiveConfig(BaseModel):
    """Live editor decoration settings."""

    # Token classification that marks text inside a fenced code block.
    code_block_marker: str = "hmd-codeblock"
    # Decoration cache bound; 0 disables eviction.
    cache_max_entries: int = 1024
    clear_cache_on_rebuild: bool = False
    # Run rebuilds on the next event-loop turn instead of inline.
    defer_rebuilds: bool = False

    @field_validator("cache_max_entries")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            msg = "LIVE__CACHE_MAX_ENTRIES must be >= 0"
            raise ValueError(msg)
        return value


class LoggingConfig(BaseModel):
    """Log output configuration."""

    level: str = "INFO"
    log_dir: Path | None = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    @model_validator(mode="after")
    def _normalise_level(self) -> LoggingConfig:
        level = self.level.upper()
        if level not in _LOG_LEVELS:
            msg = (
                f"LOGGING__LEVEL must be one of {sorted(_LOG_LEVELS)}, "
                f"got {self.level!r}"
            )
            raise ValueError(msg)
        self.level = level
        return self


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``TREE__FLAG_VALUE``, ``LIVE__CACHE_MAX_ENTRIES``, ``LOGGING__LEVEL``.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    tree: TreeConfig = TreeConfig()
    live: LiveConfig = LiveConfig()
    logging: LoggingConfig = LoggingConfig()


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
        logger.debug("Settings: no .env file found, using env vars and defaults")

    return settings
