"""
Configuration management for travel-planner.

This module provides centralized configuration for the skill,
supporting environment variables, .env files, and programmatic configuration.

Usage:
    >>> from travel_planner.config import get_config, configure
    >>>
    >>> # Get current config
    >>> config = get_config()
    >>> print(config.history_dir)

    >>> # Update config programmatically
    >>> configure(storage_backend="sqlite", retention_days=60)
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import (
    DEFAULT_CURRENCY,
    DEFAULT_PRICE_DROP_THRESHOLD,
    DEFAULT_SCHEDULE,
    DEFAULT_TIMEZONE,
    LONG_WINDOW_DAYS,
    MAX_RANKED_WEEKS,
    RETENTION_DAYS,
    SKILL_NAME,
    StorageBackendName,
)


def _default_openclaw_home() -> Path:
    return Path.home() / ".openclaw"


class SkillConfig(BaseSettings):
    """
    Configuration for the travel-planner skill.

    Settings can be provided via:
    1. Environment variables (prefixed with TRAVEL_PLANNER_)
    2. .env file
    3. Direct instantiation

    The OpenClaw home directory is also read from the host's own
    OPENCLAW_HOME variable.

    Example:
        Set via environment:
        $ export OPENCLAW_HOME=/srv/openclaw
        $ export TRAVEL_PLANNER_STORAGE_BACKEND=sqlite

        Or in code:
        >>> from travel_planner.config import configure
        >>> configure(retention_days=60)
    """

    # Locations
    openclaw_home: Path = Field(
        default_factory=_default_openclaw_home,
        # Matches OPENCLAW_HOME too, env names are case-insensitive
        validation_alias=AliasChoices("openclaw_home", "travel_planner_openclaw_home"),
        description="OpenClaw home directory (holds openclaw.json and skills/)"
    )
    storage_dir: Optional[Path] = Field(
        default=None,
        description="Directory for price history files (default: <openclaw_home>/skills/travel-planner/storage)"
    )

    # Storage
    storage_backend: StorageBackendName = Field(
        default="file",
        description="Storage backend for route price histories"
    )
    sqlite_path: Optional[Path] = Field(
        default=None,
        description="SQLite database path (default: <storage_dir>/price-history.db)"
    )

    # History and analysis
    retention_days: int = Field(
        default=RETENTION_DAYS,
        ge=1,
        le=3650,
        description="Days of samples kept per route"
    )
    default_window_days: int = Field(
        default=LONG_WINDOW_DAYS,
        ge=1,
        le=3650,
        description="Default trailing window for history queries"
    )
    max_ranked_weeks: int = Field(
        default=MAX_RANKED_WEEKS,
        ge=1,
        le=52,
        description="Maximum number of weeks returned by the best-time analysis"
    )
    default_currency: str = Field(
        default=DEFAULT_CURRENCY,
        min_length=1,
        description="Currency used when a sample does not carry one"
    )

    # Monitoring defaults
    price_drop_threshold: float = Field(
        default=DEFAULT_PRICE_DROP_THRESHOLD,
        ge=0,
        le=100,
        description="Percentage drop from the 7-day average that triggers an alert"
    )
    default_schedule: str = Field(
        default=DEFAULT_SCHEDULE,
        description="Cron schedule for daily checks"
    )
    default_timezone: str = Field(
        default=DEFAULT_TIMEZONE,
        description="IANA timezone for daily checks"
    )

    # Flight search
    price_source: Optional[str] = Field(
        default=None,
        description="Import path ('package.module:function') of the flight search callable"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    model_config = SettingsConfigDict(
        env_prefix="TRAVEL_PLANNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def skill_dir(self) -> Path:
        """Directory of this skill inside the OpenClaw home."""
        return self.openclaw_home / "skills" / SKILL_NAME

    @property
    def history_dir(self) -> Path:
        """Directory holding one price history file per route."""
        return self.storage_dir or self.skill_dir / "storage"

    @property
    def openclaw_config_path(self) -> Path:
        """Path of the shared OpenClaw configuration file."""
        return self.openclaw_home / "openclaw.json"

    @property
    def database_path(self) -> Path:
        return self.sqlite_path or self.history_dir / "price-history.db"


# Global configuration instance
_config: Optional[SkillConfig] = None


def get_config() -> SkillConfig:
    """
    Get the global configuration instance.

    Creates a new instance from environment variables on first call,
    then returns the cached instance.

    Returns:
        SkillConfig instance

    Example:
        >>> config = get_config()
        >>> print(config.retention_days)
        90
    """
    global _config
    if _config is None:
        _config = SkillConfig()
    return _config


def configure(**kwargs) -> SkillConfig:
    """
    Update global configuration with new values.

    Creates a new configuration instance with the provided values,
    falling back to current values for unspecified options.

    Args:
        **kwargs: Configuration values to set

    Returns:
        Updated SkillConfig instance

    Example:
        >>> configure(storage_backend="memory")
        >>> config = get_config()
        >>> print(config.storage_backend)
        memory
    """
    global _config

    current_dict = get_config().model_dump()
    current_dict.update(kwargs)
    _config = SkillConfig(**current_dict)

    return _config


def reset_config() -> None:
    """
    Reset configuration to defaults.

    Clears the cached config so the next get_config() call
    will reload from environment variables.
    """
    global _config
    _config = None


__all__ = [
    "SkillConfig",
    "get_config",
    "configure",
    "reset_config",
]
