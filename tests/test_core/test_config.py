"""Tests for kwatch/core/config.py — YAML loading, defaults, duration parsing."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from kwatch.core.config import (
    LoggingConfig,
    Settings,
    WatchConfig,
    get_settings,
    load_settings,
    parse_duration,
    reset_settings,
)


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    def test_default_watch_config(self) -> None:
        cfg = WatchConfig()
        assert cfg.poll_period_secs == 2.0
        assert cfg.poll_until == "known"
        assert cfg.output == "events"
        assert cfg.timeout_secs == 0.0
        assert cfg.use_cache is True

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "console"

    def test_default_settings(self) -> None:
        s = Settings()
        assert s.watch.poll_until == "known"
        assert s.logging.level == "INFO"


class TestValidation:
    def test_rejects_unknown_poll_until(self) -> None:
        with pytest.raises(ValidationError):
            WatchConfig(poll_until="ready")

    def test_rejects_unknown_output(self) -> None:
        with pytest.raises(ValidationError):
            WatchConfig(output="yaml")

    def test_rejects_negative_timeout(self) -> None:
        with pytest.raises(ValidationError):
            WatchConfig(timeout_secs=-1)

    @pytest.mark.parametrize("period", [0, "0s", "0ms"])
    def test_rejects_non_positive_poll_period(self, period: object) -> None:
        with pytest.raises(ValidationError):
            WatchConfig(poll_period_secs=period)

    def test_rejects_unknown_log_format(self) -> None:
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")

    def test_accepts_duration_strings(self) -> None:
        cfg = WatchConfig(poll_period_secs="500ms", timeout_secs="1m30s")
        assert cfg.poll_period_secs == 0.5
        assert cfg.timeout_secs == 90.0


class TestParseDuration:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("2s", 2.0),
            ("500ms", 0.5),
            ("1m", 60.0),
            ("1h", 3600.0),
            ("1m30s", 90.0),
            ("1.5s", 1.5),
            ("3", 3.0),
            (0, 0.0),
            (2.5, 2.5),
        ],
    )
    def test_valid(self, value: str | float, expected: float) -> None:
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "abc", "2x", "s", "1s2", "-1s", -1])
    def test_invalid(self, value: str | float) -> None:
        with pytest.raises(ValueError):
            parse_duration(value)


class TestYamlLoading:
    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "watch": {
                "poll_period_secs": "250ms",
                "poll_until": "current",
                "output": "json",
                "timeout_secs": "10s",
            },
            "logging": {"level": "DEBUG", "format": "json"},
        }
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        s = load_settings(config_file)
        assert s.watch.poll_period_secs == 0.25
        assert s.watch.poll_until == "current"
        assert s.watch.output == "json"
        assert s.watch.timeout_secs == 10.0
        assert s.logging.level == "DEBUG"

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        s = load_settings(tmp_path / "nonexistent.yaml")
        assert s.watch.poll_until == "known"

    def test_empty_yaml_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        s = load_settings(config_file)
        assert s.watch.output == "events"

    def test_partial_yaml_merges_with_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "partial.yaml"
        config_file.write_text(yaml.dump({"watch": {"poll_until": "forever"}}))
        s = load_settings(config_file)
        assert s.watch.poll_until == "forever"
        assert s.watch.poll_period_secs == 2.0


class TestGetSettings:
    def test_caches(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"watch": {"output": "table"}}))
        loaded = load_settings(config_file)
        assert get_settings() is loaded

    def test_reset_clears_cache(self, tmp_path: Path) -> None:
        load_settings(tmp_path / "nonexistent.yaml")
        reset_settings()
        from kwatch.core import config as config_module

        assert config_module._settings is None
