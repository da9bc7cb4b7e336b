"""
Settings loader (``pvz_config.loader``).

Responsibility
--------------
Builds ``AppSettings`` from three layers, later layers winning:

1. dataclass defaults (``pvz_config.settings``);
2. a YAML file, from the ``path`` argument or ``PVZ_CONFIG_FILE``;
3. environment variables.

YAML layout::

    database:
      url: postgresql://user:pass@db:5432/pvz
      pool_size: 20
      max_overflow: 10
      pool_timeout: 30
      pool_recycle: 1800
      echo: false
    logging:
      level: INFO

Environment overrides
---------------------
``PVZ_DATABASE_URL``, ``PVZ_DB_POOL_SIZE``, ``PVZ_DB_MAX_OVERFLOW``,
``PVZ_DB_POOL_TIMEOUT``, ``PVZ_DB_ECHO``, ``PVZ_LOG_LEVEL``.

Failure modes
-------------
* Missing or unreadable file, invalid YAML, unknown keys, or values of the
  wrong type -> ``ConfigError``.
* A pool size outside 1..100 is not an error: it falls back to the
  default with a warning.
"""

from __future__ import annotations

import os
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from pvz_config.settings import (
    DEFAULT_POOL_SIZE,
    MAX_POOL_SIZE,
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
)
from pvz_kernel.logging_config import get_logger

logger = get_logger("config")

CONFIG_FILE_ENV = "PVZ_CONFIG_FILE"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# env var -> (section, key)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "PVZ_DATABASE_URL": ("database", "url"),
    "PVZ_DB_POOL_SIZE": ("database", "pool_size"),
    "PVZ_DB_MAX_OVERFLOW": ("database", "max_overflow"),
    "PVZ_DB_POOL_TIMEOUT": ("database", "pool_timeout"),
    "PVZ_DB_ECHO": ("database", "echo"),
    "PVZ_LOG_LEVEL": ("logging", "level"),
}

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off", ""})


class ConfigError(Exception):
    """Settings could not be loaded."""


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its top-level mapping.

    Raises:
        ConfigError: If the file is missing, unparsable, or not a mapping.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return data


def _coerce(section: str, key: str, value: Any, expected: type) -> Any:
    if expected is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS:
            return True
        if isinstance(value, str) and value.strip().lower() in _FALSE_STRINGS:
            return False
    elif expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
    elif expected is str:
        if isinstance(value, str):
            return value
    raise ConfigError(f"{section}.{key}: expected {expected.__name__}, got {value!r}")


def _apply(section_name: str, current: Any, values: Mapping[str, Any]) -> Any:
    types = {f.name: f.type for f in fields(current)}
    changes: dict[str, Any] = {}
    for key, value in values.items():
        if key not in types:
            raise ConfigError(f"unknown setting {section_name}.{key}")
        # Annotations are strings under postponed evaluation
        expected = {"int": int, "bool": bool, "str": str}[types[key]]
        changes[key] = _coerce(section_name, key, value, expected)
    return replace(current, **changes)


def _sections(data: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    sections: dict[str, dict[str, Any]] = {}
    for name, body in data.items():
        if name not in ("database", "logging"):
            raise ConfigError(f"unknown config section {name!r}")
        if body is None:
            continue
        if not isinstance(body, dict):
            raise ConfigError(f"config section {name!r} must be a mapping")
        sections[name] = dict(body)
    return sections


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppSettings:
    """
    Load settings from defaults, an optional YAML file and the environment.

    Args:
        path: YAML file to read.  Defaults to ``$PVZ_CONFIG_FILE``; when
            neither is set, no file is read.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        A fully populated, frozen AppSettings.

    Raises:
        ConfigError: On unreadable files or invalid values.
    """
    env = os.environ if environ is None else environ

    file_path = path or env.get(CONFIG_FILE_ENV)
    sections: dict[str, dict[str, Any]] = {}
    if file_path:
        sections = _sections(load_yaml_file(Path(file_path)))

    for var, (section, key) in _ENV_OVERRIDES.items():
        if var in env:
            sections.setdefault(section, {})[key] = env[var]

    database = _apply("database", DatabaseSettings(), sections.get("database", {}))
    log_settings = _apply("logging", LoggingSettings(), sections.get("logging", {}))

    if database.pool_size <= 0 or database.pool_size > MAX_POOL_SIZE:
        logger.warning(
            "invalid_pool_size_using_default",
            extra={"pool_size": database.pool_size, "default": DEFAULT_POOL_SIZE},
        )
        database = replace(database, pool_size=DEFAULT_POOL_SIZE)

    level = log_settings.level.strip().upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of {_LOG_LEVELS}, got {level!r}")
    log_settings = replace(log_settings, level=level)

    settings = AppSettings(database=database, logging=log_settings)

    logger.debug(
        "settings_loaded",
        extra={
            "config_file": str(file_path) if file_path else None,
            "pool_size": database.pool_size,
            "log_level": level,
        },
    )
    return settings
