"""Configuration loading and validation."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from clipcast.config.settings import EnvSettings
from clipcast.models.config import Config

logger = logging.getLogger(__name__)


class ConfigErrorCode(str, Enum):
    """Stable config error codes."""

    FILE_NOT_FOUND = "CONFIG_FILE_NOT_FOUND"
    YAML_INVALID = "CONFIG_YAML_INVALID"
    EMPTY_FILE = "CONFIG_EMPTY_FILE"
    ROOT_NOT_MAPPING = "CONFIG_ROOT_NOT_MAPPING"
    VALIDATION_FAILED = "CONFIG_VALIDATION_FAILED"
    UNKNOWN = "CONFIG_UNKNOWN"


class ConfigError(Exception):
    """Configuration loading or validation error."""

    def __init__(
        self,
        message: str,
        *,
        code: ConfigErrorCode = ConfigErrorCode.UNKNOWN,
        path: Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.path = path
        self.__cause__ = cause


def load_config(path: Path, *, env: EnvSettings | None = None) -> Config:
    """Load and validate configuration from YAML file.

    Environment overrides (`PORT`, `HOST`, `MEDIA_ROOT`, `FFMPEG_PATH`) win over
    values from the file.

    Raises:
        ConfigError: If file not found, YAML invalid, or validation fails
    """
    if not path.exists():
        raise ConfigError(
            f"Config file not found: {path}",
            code=ConfigErrorCode.FILE_NOT_FOUND,
            path=path,
        )

    try:
        with path.open() as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {path}: {e}",
            code=ConfigErrorCode.YAML_INVALID,
            path=path,
            cause=e,
        ) from e

    if raw is None:
        raise ConfigError(
            f"Config file is empty: {path}",
            code=ConfigErrorCode.EMPTY_FILE,
            path=path,
        )

    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config must be a YAML mapping, got {type(raw).__name__}",
            code=ConfigErrorCode.ROOT_NOT_MAPPING,
            path=path,
        )

    return _validate(raw, path=path, env=env)


def load_config_from_dict(data: dict[str, Any], *, env: EnvSettings | None = None) -> Config:
    """Load and validate configuration from a dict (useful for testing)."""
    return _validate(data, path=None, env=env)


def load_config_or_default(path: Path | None, *, env: EnvSettings | None = None) -> Config:
    """Load config from `path`, or build defaults plus env overrides when no path is given."""
    if path is None:
        logger.info("No config file given; using defaults")
        return load_config_from_dict({}, env=env)
    return load_config(path, env=env)


def apply_env_overrides(data: dict[str, Any], env: EnvSettings) -> dict[str, Any]:
    """Return a copy of raw config data with environment overrides applied."""
    merged = dict(data)
    server = dict(merged.get("server") or {})
    storage = dict(merged.get("storage") or {})
    encoder = dict(merged.get("encoder") or {})

    if env.port is not None:
        server["port"] = env.port
    if env.host:
        server["host"] = env.host
    if env.media_root:
        storage["media_root"] = env.media_root
    if env.ffmpeg_path:
        encoder["ffmpeg_path"] = env.ffmpeg_path

    merged["server"] = server
    merged["storage"] = storage
    merged["encoder"] = encoder
    return merged


def format_validation_error(e: ValidationError, path: Path | None = None) -> str:
    """Format Pydantic validation error for human readability."""
    prefix = f"Config validation failed ({path}):" if path else "Config validation failed:"
    errors = []
    for err in e.errors():
        loc = " -> ".join(str(x) for x in err["loc"])
        msg = err["msg"]
        errors.append(f"  {loc}: {msg}")
    return prefix + "\n" + "\n".join(errors)


def _validate(data: dict[str, Any], *, path: Path | None, env: EnvSettings | None) -> Config:
    settings = env if env is not None else EnvSettings()
    try:
        return Config.model_validate(apply_env_overrides(data, settings))
    except ValidationError as e:
        raise ConfigError(
            format_validation_error(e, path),
            code=ConfigErrorCode.VALIDATION_FAILED,
            path=path,
            cause=e,
        ) from e
