"""Core clip-centric data models."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from clipcast.models.enums import ClipStatus

FRAME_PREFIX = "frame_"
FRAME_SUFFIX = ".jpg"
FRAME_INDEX_WIDTH = 6
MAX_FRAME_INDEX = 10**FRAME_INDEX_WIDTH - 1


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys (`clip.json` and HTTP payloads)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ClipMetadata(CamelModel):
    """Persisted clip record (stored as `clip.json`)."""

    clip_id: str
    device_id: str
    reason: str
    # Optional only so hand-edited records without a start time still load.
    started_at: datetime | None = None
    ended_at: datetime | None = None
    frame_count: int = Field(default=0, ge=0)
    has_audio: bool = False

    @field_validator("started_at", "ended_at", mode="before")
    @classmethod
    def _blank_as_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("started_at", "ended_at", mode="after")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def status(self) -> ClipStatus:
        return ClipStatus.OPEN if self.ended_at is None else ClipStatus.ENDED


class FrameFile(BaseModel):
    """A stored frame belonging to a clip."""

    index: int
    file_name: str
    path: Path


def frame_file_name(index: int) -> str:
    """Build the fixed-width frame filename for a 1-based index.

    Lexicographic order of these names equals numeric order, which is what
    frame listing relies on.
    """
    if not 0 <= index <= MAX_FRAME_INDEX:
        raise ValueError(f"frame index must be between 0 and {MAX_FRAME_INDEX}, got {index}")
    return f"{FRAME_PREFIX}{index:0{FRAME_INDEX_WIDTH}d}{FRAME_SUFFIX}"


def parse_frame_index(file_name: str) -> int | None:
    """Return the index encoded in a frame filename, or None if it is not one."""
    if not (file_name.startswith(FRAME_PREFIX) and file_name.lower().endswith(FRAME_SUFFIX)):
        return None
    digits = file_name[len(FRAME_PREFIX) : -len(FRAME_SUFFIX)]
    if not (digits.isascii() and digits.isdigit()):
        return None
    return int(digits)


class ClipDetail(BaseModel):
    """Metadata plus the current on-disk asset state for one clip."""

    metadata: ClipMetadata
    frames: list[FrameFile]
    has_audio_file: bool
    has_video: bool


class ClipSummary(BaseModel):
    """Listing entry with a live frame count and a preview frame."""

    metadata: ClipMetadata
    frame_count: int
    preview: FrameFile | None = None
    has_video: bool = False


class VideoResult(BaseModel):
    """Successful video assembly."""

    output_path: Path
    frame_count: int
    frame_rate: float
