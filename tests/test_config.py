"""
Tests for YAML configuration loading.
"""

import logging

import pytest

from geotrack.config import (
    CONFIG_ENV,
    ENGINE_MODULES_ENV,
    LOG_LEVEL_ENV,
    ConfigError,
    EngineConfig,
    configure_logging,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (CONFIG_ENV, ENGINE_MODULES_ENV, LOG_LEVEL_ENV):
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    def test_defaults(self):
        assert load_config() == EngineConfig()
        assert EngineConfig().engine_modules == ("geotrack.engine",)

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "geotrack.yaml"
        path.write_text("engine_modules:\n  - custom.engine\n  - geotrack.engine\nlog_level: debug\n")
        config = load_config(path)
        assert config.engine_modules == ("custom.engine", "geotrack.engine")
        assert config.log_level == "DEBUG"

    def test_comma_separated_modules(self, tmp_path):
        path = tmp_path / "geotrack.yaml"
        path.write_text("engine_modules: a.engine, b.engine\n")
        assert load_config(path).engine_modules == ("a.engine", "b.engine")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == EngineConfig()

    def test_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yaml"
        path.write_text("log_level: WARNING\n")
        monkeypatch.setenv(CONFIG_ENV, str(path))
        assert load_config().log_level == "WARNING"

    def test_environment_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "geotrack.yaml"
        path.write_text("engine_modules: [a.engine]\nlog_level: INFO\n")
        monkeypatch.setenv(ENGINE_MODULES_ENV, "x.engine, y.engine")
        monkeypatch.setenv(LOG_LEVEL_ENV, "error")
        config = load_config(path)
        assert config.engine_modules == ("x.engine", "y.engine")
        assert config.log_level == "ERROR"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    @pytest.mark.parametrize("body", [
        "- just\n- a list\n",
        "engine_modules: 5\n",
        "engine_modules: [1, 2]\n",
        "log_level: [a]\n",
        "engine_modules: []\n",
        "engine_modules: [unclosed\n",
    ])
    def test_bad_shapes(self, tmp_path, body):
        path = tmp_path / "bad.yaml"
        path.write_text(body)
        with pytest.raises(ConfigError):
            load_config(path)

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)


def test_configure_logging_falls_back_to_info(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    configure_logging("LOUD")
    configure_logging("debug")
    assert [c["level"] for c in calls] == [logging.INFO, logging.DEBUG]
