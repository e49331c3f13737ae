"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, field_validator

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

POLL_UNTIL_CHOICES = ("known", "current", "deleted", "forever")
OUTPUT_CHOICES = ("events", "table", "json")
LOG_FORMATS = ("console", "json")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str | float | int) -> float:
    """Parse a duration into seconds.

    Accepts bare numbers (seconds) and Go-style strings such as ``500ms``,
    ``2s`` or ``1m30s``.

    Raises:
        ValueError: If the value is malformed or negative.
    """
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = value.strip()
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_PART.finditer(text):
                if match.start() != pos:
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                pos = match.end()
            if pos == 0 or pos != len(text):
                raise ValueError(f"invalid duration: {value!r}") from None
    if seconds < 0:
        raise ValueError(f"duration must not be negative: {value!r}")
    return seconds


class WatchConfig(BaseModel):
    """Status watch configuration — mirrors the status command flags."""

    poll_period_secs: float = 2.0
    poll_until: str = "known"
    output: str = "events"
    timeout_secs: float = 0.0
    use_cache: bool = True
    drain_timeout_secs: float = 5.0

    @field_validator("poll_period_secs", "timeout_secs", "drain_timeout_secs", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> float:
        return parse_duration(value)

    @field_validator("poll_period_secs")
    @classmethod
    def _check_poll_period(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("poll_period_secs must be positive")
        return value

    @field_validator("poll_until")
    @classmethod
    def _check_poll_until(cls, value: str) -> str:
        if value not in POLL_UNTIL_CHOICES:
            raise ValueError(
                f"poll_until must be one of {', '.join(POLL_UNTIL_CHOICES)}; got {value!r}",
            )
        return value

    @field_validator("output")
    @classmethod
    def _check_output(cls, value: str) -> str:
        if value not in OUTPUT_CHOICES:
            raise ValueError(
                f"output must be one of {', '.join(OUTPUT_CHOICES)}; got {value!r}",
            )
        return value


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"

    @field_validator("format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        if value not in LOG_FORMATS:
            raise ValueError(f"format must be one of {', '.join(LOG_FORMATS)}; got {value!r}")
        return value


class Settings(BaseModel):
    """Root settings container."""

    watch: WatchConfig = WatchConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
