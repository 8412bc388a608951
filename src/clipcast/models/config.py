"""Configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

DEFAULT_PORT = 3000


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    max_body_bytes: int = Field(default=10 * 1024 * 1024, ge=1)


class StorageConfig(BaseModel):
    """Media root configuration."""

    media_root: str = "./media"


class ClipsConfig(BaseModel):
    """Clip lifecycle behavior."""

    reject_uploads_after_end: bool = False
    default_device_id: str = "unknown-device"
    default_reason: str = "unspecified"


class EncoderConfig(BaseModel):
    """External video encoder (ffmpeg) configuration."""

    ffmpeg_path: str = "ffmpeg"
    frame_rate: float = Field(default=6.0, gt=0)
    min_frames: int = Field(default=2, ge=1)
    pixel_format: str = "yuv420p"
    timeout_s: float | None = Field(default=None, gt=0)
    extra_output_args: list[str] = Field(default_factory=list)

    @field_validator("pixel_format", mode="before")
    @classmethod
    def _normalize_pixel_format(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class RetryConfig(BaseModel):
    """Retry configuration for encoder invocations."""

    max_attempts: int = Field(default=1, ge=1)
    backoff_s: float = Field(default=1.0, ge=0.0)


class Config(BaseModel):
    """Main configuration."""

    version: int = 1
    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    clips: ClipsConfig = Field(default_factory=ClipsConfig)
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
