"""Configuration loading and validation."""

from clipcast.config.loader import (
    ConfigError,
    ConfigErrorCode,
    load_config,
    load_config_from_dict,
    load_config_or_default,
)
from clipcast.config.settings import EnvSettings

__all__ = [
    "ConfigError",
    "ConfigErrorCode",
    "EnvSettings",
    "load_config",
    "load_config_from_dict",
    "load_config_or_default",
]
