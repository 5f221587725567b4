"""Tests for perch.config — AppConfig and application config loading."""

import json
import logging
from pathlib import Path

import pytest

from perch.config import AppConfig, ConfigParam, load_config, load_config_from_path
from perch.errors import ConfigurationError
from perch.validation import min_value, of_type, one_of, url

SCHEMA = (
    ConfigParam("api_base_url", (url,)),
    ConfigParam("log_level", (one_of("debug", "info", "warn", "error"),), default="info"),
    ConfigParam("port", (of_type(int), min_value(1)), default=8080),
)


class TestAppConfig:
    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert cfg.debug is False
        assert cfg.log_level == "info"
        assert cfg.log_format == "json"
        assert cfg.max_body_size == 1024 * 1024

    def test_frozen(self) -> None:
        cfg = AppConfig()
        with pytest.raises(AttributeError):
            cfg.debug = True  # type: ignore[misc]


class TestLoadConfig:
    def test_applies_defaults(self) -> None:
        config = load_config(SCHEMA, {"api_base_url": "https://api.example.com"})
        assert config == {
            "api_base_url": "https://api.example.com",
            "log_level": "info",
            "port": 8080,
        }

    def test_values_override_defaults(self) -> None:
        config = load_config(SCHEMA, {"api_base_url": "http://x.test", "port": 9000})
        assert config["port"] == 9000

    def test_keeps_unknown_keys(self) -> None:
        config = load_config(SCHEMA, {"api_base_url": "http://x.test", "extra": True})
        assert config["extra"] is True

    def test_missing_required(self) -> None:
        with pytest.raises(ConfigurationError, match="'api_base_url' is required"):
            load_config(SCHEMA, {})

    def test_reports_every_problem(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR, logger="perch.config"):
            with pytest.raises(ConfigurationError) as exc_info:
                load_config(SCHEMA, {"log_level": "loud", "port": 0})

        message = str(exc_info.value)
        assert message.startswith("Config is not valid:")
        assert " - 'api_base_url' is required" in message
        assert " - 'log_level' must be one of: 'debug', 'info', 'warn', 'error'" in message
        assert " - 'port' must be >= 1" in message
        assert "Config is not valid" in caplog.text

    def test_does_not_mutate_input(self) -> None:
        values = {"api_base_url": "http://x.test"}
        load_config(SCHEMA, values)
        assert values == {"api_base_url": "http://x.test"}


class TestLoadConfigFromPath:
    def test_reads_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"api_base_url": "https://api.example.com"}))
        assert load_config_from_path(SCHEMA, path)["log_level"] == "info"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Config file does not exist"):
            load_config_from_path(SCHEMA, tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_config_from_path(SCHEMA, path)

    def test_not_an_object(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigurationError, match="must contain a JSON object"):
            load_config_from_path(SCHEMA, str(path))
