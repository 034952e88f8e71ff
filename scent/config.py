"""Settings loading: YAML file first, environment variables on top."""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path("scent.yaml")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class Settings:
    """Options shared by the command line and library callers."""
    decorated: bool = False
    selectors_path: Optional[str] = None
    use_remote: bool = False
    remote_timeout: float = 3.0
    show_functions: bool = False
    log_level: str = "WARNING"


def _env_flag(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_VALUES | _FALSE_VALUES:
            return _env_flag(text)
    raise ValueError(f"expected a boolean, got {value!r}")


def _to_float(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return float(value)
    raise ValueError(f"expected a positive number, got {value!r}")


def _to_str(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise ValueError(f"expected a string, got {value!r}")


def _to_optional_str(value: Any) -> Optional[str]:
    return None if value is None else _to_str(value)


def _to_log_level(value: Any) -> str:
    level = _to_str(value).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"unknown log level {value!r}")
    return level


# Field name -> converter from the YAML value
_CONVERTERS = {
    "decorated": _to_bool,
    "selectors_path": _to_optional_str,
    "use_remote": _to_bool,
    "remote_timeout": _to_float,
    "show_functions": _to_bool,
    "log_level": _to_log_level,
}


def load_settings(path: Union[str, Path, None] = None) -> Settings:
    """Load settings from a YAML file and ``SCENT_*`` environment variables.

    A missing file is not an error; an explicitly given one must exist.

    Raises:
        ConfigError: if the file cannot be read, is not a YAML mapping or
            holds a value of the wrong type
    """
    settings_path = Path(path) if path else DEFAULT_SETTINGS_PATH
    data = {}

    if settings_path.exists():
        try:
            with open(settings_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"failed to load settings from {settings_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"settings file {settings_path} must contain a mapping")
    elif path:
        raise ConfigError(f"settings file {settings_path} does not exist")

    known = {f.name for f in fields(Settings)}
    for key in sorted(set(data) - known, key=str):
        logger.warning("Ignoring unknown setting %r in %s", key, settings_path)

    values = {}
    for key in known & set(data):
        try:
            values[key] = _CONVERTERS[key](data[key])
        except ValueError as e:
            raise ConfigError(f"invalid setting {key!r} in {settings_path}: {e}") from e

    settings = Settings(**values)

    # Environment variables override file settings
    if os.getenv("SCENT_SELECTORS"):
        settings.selectors_path = os.getenv("SCENT_SELECTORS")
    if os.getenv("SCENT_USE_REMOTE"):
        settings.use_remote = _env_flag(os.getenv("SCENT_USE_REMOTE"))
    if os.getenv("SCENT_LOG_LEVEL"):
        settings.log_level = os.getenv("SCENT_LOG_LEVEL").upper()

    return settings
