"""Environment overrides for the YAML config."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_DOTENV = Path(__file__).resolve().parents[3] / ".env"


class EnvSettings(BaseSettings):
    """Environment overrides applied on top of the YAML config."""

    model_config = SettingsConfigDict(
        env_file=(".env", _REPO_DOTENV),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    port: int | None = None
    host: str | None = None
    media_root: str | None = None
    ffmpeg_path: str | None = None
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return str(value).upper()
