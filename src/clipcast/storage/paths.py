"""Helpers for building clip storage paths and public media URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

CLIPS_DIR = "clips"
UPLOADS_DIR = "uploads"
FRAMES_DIR = "frames"
METADATA_FILE = "clip.json"
AUDIO_FILE = "audio.wav"
VIDEO_FILE = "clip.mp4"
MANIFEST_FILE = "frames.txt"
MEDIA_URL_PREFIX = "/media"

_CLIP_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


@dataclass(frozen=True, slots=True)
class ClipPaths:
    """On-disk layout for one clip."""

    clip_dir: Path
    frames_dir: Path
    meta_file: Path
    audio_file: Path
    video_file: Path


def validate_clip_id(clip_id: str) -> str:
    """Reject ids that are not a single URL-safe path segment."""
    if not _CLIP_ID_PATTERN.fullmatch(clip_id):
        raise ValueError(f"Invalid clip_id: {clip_id!r}")
    return clip_id


def build_clip_paths(media_root: Path, clip_id: str) -> ClipPaths:
    """Pure mapping from clip id to its directory layout."""
    clip_dir = media_root / CLIPS_DIR / validate_clip_id(clip_id)
    return ClipPaths(
        clip_dir=clip_dir,
        frames_dir=clip_dir / FRAMES_DIR,
        meta_file=clip_dir / METADATA_FILE,
        audio_file=clip_dir / AUDIO_FILE,
        video_file=clip_dir / VIDEO_FILE,
    )


def _media_url(path: PurePosixPath) -> str:
    if path.is_absolute():
        raise ValueError(f"media path must be relative, got {path}")
    for part in path.parts:
        if part in ("", ".", ".."):
            raise ValueError(f"media path contains invalid segment: {path}")
    return f"{MEDIA_URL_PREFIX}/{path}"


def frame_url(clip_id: str, file_name: str) -> str:
    return _media_url(PurePosixPath(CLIPS_DIR) / clip_id / FRAMES_DIR / file_name)


def audio_url(clip_id: str) -> str:
    return _media_url(PurePosixPath(CLIPS_DIR) / clip_id / AUDIO_FILE)


def video_url(clip_id: str) -> str:
    return _media_url(PurePosixPath(CLIPS_DIR) / clip_id / VIDEO_FILE)


def upload_url(file_name: str) -> str:
    return _media_url(PurePosixPath(UPLOADS_DIR) / file_name)
