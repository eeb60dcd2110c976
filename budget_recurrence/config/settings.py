"""Settings management using Pydantic for type validation and configuration."""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ENV_PREFIX = "BUDGET_RECURRENCE_"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class RecurrenceSettings(BaseSettings):
    """Engine settings with environment variable support."""

    # Due-date calculation
    default_time_zone: Optional[str] = Field(
        default=None,
        description="IANA zone used when a call does not pass one (None: host local zone)",
    )
    grace_window_minutes: int = Field(
        default=0, ge=0, description="Default grace window for monthly reminders, in minutes"
    )

    # Reminder schedule / notifications
    notification_horizon_days: int = Field(
        default=7, ge=0, description="Only plan notifications for reminders due within N days"
    )
    schedule_max_iterations: int = Field(
        default=366, ge=1, description="Upper bound on due dates generated per reminder and view"
    )

    # Recurrence expansion
    expansion_lookback_months: int = Field(
        default=1, ge=0, description="Months before now kept when expanding unbounded rules"
    )
    expansion_lookahead_months: int = Field(
        default=6, ge=1, description="Months after now expanded for unbounded rules"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level: DEBUG, INFO, WARNING, ERROR")

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        level = str(value).upper()
        if level not in VALID_LOG_LEVELS:
            logger.warning("Unknown log_level %r; using INFO", value)
            return "INFO"
        return level


def _env_vars_set() -> set[str]:
    """Field names that are overridden by an environment variable."""
    return {
        key[len(ENV_PREFIX) :].lower()
        for key in os.environ
        if key.upper().startswith(ENV_PREFIX)
    }


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; an empty file is an empty mapping."""
    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", path, loaded)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
    return loaded


def load_settings(path: Optional[Union[str, Path]] = None) -> RecurrenceSettings:
    """Load settings from an optional YAML file plus the environment.

    Environment variables (``BUDGET_RECURRENCE_*``) take precedence over values
    from the file. A missing file yields the defaults.

    Args:
        path: Optional path to a YAML config file.

    Returns:
        RecurrenceSettings instance.

    Raises:
        ValueError: If the file's top level is not a mapping.
    """
    if path is None:
        return RecurrenceSettings()

    config_path = Path(path)
    logger.debug("Attempting to load config from %s", config_path)
    if not config_path.exists():
        logger.info("Config file %s not found; using defaults", config_path)
        return RecurrenceSettings()

    raw = _load_yaml(config_path)
    overridden = _env_vars_set()
    file_values = {
        key: value
        for key, value in raw.items()
        if key in RecurrenceSettings.model_fields and key not in overridden
    }
    ignored = sorted(set(raw) - set(RecurrenceSettings.model_fields))
    if ignored:
        logger.warning("Ignoring unknown config keys in %s: %s", config_path, ", ".join(ignored))

    settings = RecurrenceSettings(**file_values)
    logger.info("Loaded configuration from %s", config_path)
    logger.debug("Configuration values: %s", settings)
    return settings
