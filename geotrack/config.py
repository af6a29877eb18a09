"""
Configuration for GPS Track Analysis

This module reads runtime configuration from a YAML file and environment
variables. Algorithm tunables live in constants.py; this layer only covers
how the engine is located and how logging is set up.

Example geotrack.yaml:

    engine_modules:
      - geotrack.engine
      - /opt/engines/custom_engine.py
    log_level: DEBUG
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import yaml

CONFIG_ENV = "GEOTRACK_CONFIG"
ENGINE_MODULES_ENV = "GEOTRACK_ENGINE_MODULES"
LOG_LEVEL_ENV = "GEOTRACK_LOG_LEVEL"

DEFAULT_ENGINE_MODULES = ("geotrack.engine",)
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ConfigError(ValueError):
    """Raised when a configuration file has the wrong shape."""


@dataclass(frozen=True)
class EngineConfig:
    """
    Runtime settings.

    Attributes:
        engine_modules: Candidate engine sources tried in order. Each is a
            dotted module name or a path to a .py file.
        log_level: Logging level name for the entry points.
    """

    engine_modules: Tuple[str, ...] = DEFAULT_ENGINE_MODULES
    log_level: str = DEFAULT_LOG_LEVEL


def _split_modules(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _read_file(path: Path) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"{path}: invalid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping, got {type(data).__name__}")
    return data


def load_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Build an EngineConfig from a YAML file and environment overrides.

    The file is path if given, else the file named by GEOTRACK_CONFIG, else
    none. GEOTRACK_ENGINE_MODULES (comma-separated) and GEOTRACK_LOG_LEVEL
    override the matching keys.

    Args:
        path: Optional path to a YAML configuration file.

    Returns:
        EngineConfig.

    Raises:
        FileNotFoundError: If the named file does not exist.
        ConfigError: If the file is not a mapping or a key has the wrong type.
    """
    if path is None and os.environ.get(CONFIG_ENV):
        path = os.environ[CONFIG_ENV]
    data = _read_file(Path(path)) if path is not None else {}

    modules = data.get("engine_modules", DEFAULT_ENGINE_MODULES)
    if isinstance(modules, str):
        modules = _split_modules(modules)
    if not isinstance(modules, (list, tuple)) or not all(isinstance(m, str) for m in modules):
        raise ConfigError("engine_modules must be a list of strings")

    log_level = data.get("log_level", DEFAULT_LOG_LEVEL)
    if not isinstance(log_level, str):
        raise ConfigError("log_level must be a string")

    if os.environ.get(ENGINE_MODULES_ENV):
        modules = _split_modules(os.environ[ENGINE_MODULES_ENV])
    if os.environ.get(LOG_LEVEL_ENV):
        log_level = os.environ[LOG_LEVEL_ENV]

    if not modules:
        raise ConfigError("engine_modules must name at least one candidate")

    return EngineConfig(engine_modules=tuple(modules), log_level=log_level.upper())


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure root logging for the CLI and API entry points."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
