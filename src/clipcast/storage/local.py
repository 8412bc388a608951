"""Local filesystem media store."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from clipcast.errors import StorageFaultError
from clipcast.interfaces import MediaStore
from clipcast.models.clip import ClipMetadata, FrameFile, frame_file_name, parse_frame_index
from clipcast.models.config import StorageConfig
from clipcast.storage.paths import CLIPS_DIR, UPLOADS_DIR, ClipPaths, build_clip_paths

logger = logging.getLogger(__name__)


class LocalMediaStore(MediaStore):
    """Media store bound to a directory tree on the local filesystem.

    Layout: `{root}/clips/{clip_id}/{frames/frame_NNNNNN.jpg, audio.wav, clip.mp4, clip.json}`
    plus `{root}/uploads/` for loose photos.
    """

    def __init__(self, config: StorageConfig) -> None:
        self.root = Path(config.media_root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / CLIPS_DIR).mkdir(exist_ok=True)

    def resolve_paths(self, clip_id: str) -> ClipPaths:
        return build_clip_paths(self.root, clip_id)

    async def read_metadata(self, clip_id: str) -> ClipMetadata | None:
        paths = self.resolve_paths(clip_id)
        try:
            raw = await asyncio.to_thread(paths.meta_file.read_bytes)
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as exc:
            raise StorageFaultError("read", clip_id, exc) from exc

        try:
            return ClipMetadata.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "Unparsable clip metadata at %s: %s",
                paths.meta_file,
                exc.errors()[0]["msg"] if exc.errors() else exc,
                extra={"clip_id": clip_id},
            )
            return None

    async def write_metadata(self, clip_id: str, metadata: ClipMetadata) -> None:
        paths = self.resolve_paths(clip_id)
        payload = metadata.model_dump_json(by_alias=True, indent=2)
        try:
            await asyncio.to_thread(_atomic_write_text, paths.meta_file, payload)
        except OSError as exc:
            raise StorageFaultError("metadata write", clip_id, exc) from exc

    async def ensure_directories(self, clip_id: str) -> None:
        paths = self.resolve_paths(clip_id)
        try:
            await asyncio.to_thread(paths.frames_dir.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageFaultError("mkdir", clip_id, exc) from exc

    async def list_frames(self, clip_id: str) -> list[FrameFile]:
        paths = self.resolve_paths(clip_id)
        try:
            return await asyncio.to_thread(_scan_frames, paths.frames_dir)
        except OSError as exc:
            raise StorageFaultError("frame listing", clip_id, exc) from exc

    async def write_frame(self, clip_id: str, index: int, data: bytes) -> FrameFile:
        paths = self.resolve_paths(clip_id)
        file_name = frame_file_name(index)
        dest = paths.frames_dir / file_name
        try:
            await asyncio.to_thread(paths.frames_dir.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(dest.write_bytes, data)
        except OSError as exc:
            raise StorageFaultError("frame write", clip_id, exc) from exc
        return FrameFile(index=index, file_name=file_name, path=dest)

    async def write_audio(self, clip_id: str, data: bytes) -> Path:
        paths = self.resolve_paths(clip_id)
        try:
            await asyncio.to_thread(paths.audio_file.write_bytes, data)
        except OSError as exc:
            raise StorageFaultError("audio write", clip_id, exc) from exc
        return paths.audio_file

    async def has_audio(self, clip_id: str) -> bool:
        return await asyncio.to_thread(self.resolve_paths(clip_id).audio_file.is_file)

    async def has_video(self, clip_id: str) -> bool:
        return await asyncio.to_thread(self.resolve_paths(clip_id).video_file.is_file)

    async def list_clip_ids(self) -> list[str]:
        clips_root = self.root / CLIPS_DIR
        try:
            entries = await asyncio.to_thread(lambda: list(clips_root.iterdir()))
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageFaultError("clip listing", None, exc) from exc
        return sorted(entry.name for entry in entries if entry.is_dir())

    def uploads_dir(self) -> Path:
        return self.root / UPLOADS_DIR

    async def write_upload(self, file_name: str, data: bytes) -> Path:
        folder = self.uploads_dir()
        dest = folder / Path(file_name).name
        try:
            await asyncio.to_thread(folder.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(dest.write_bytes, data)
        except OSError as exc:
            raise StorageFaultError("upload write", None, exc) from exc
        return dest

    async def list_uploads(self) -> list[Path]:
        folder = self.uploads_dir()

        def _scan() -> list[Path]:
            if not folder.is_dir():
                return []
            return sorted(
                (p for p in folder.iterdir() if p.is_file() and p.name.lower().endswith(".jpg")),
                key=lambda p: p.name,
            )

        try:
            return await asyncio.to_thread(_scan)
        except OSError as exc:
            raise StorageFaultError("upload listing", None, exc) from exc

    async def ping(self) -> bool:
        return self.root.exists() and self.root.is_dir()


def _scan_frames(frames_dir: Path) -> list[FrameFile]:
    if not frames_dir.is_dir():
        return []
    frames: list[FrameFile] = []
    for entry in frames_dir.iterdir():
        index = parse_frame_index(entry.name)
        if index is None or not entry.is_file():
            continue
        frames.append(FrameFile(index=index, file_name=entry.name, path=entry))
    # Fixed-width names make lexicographic order the playback order.
    frames.sort(key=lambda frame: frame.file_name)
    return frames


def _atomic_write_text(dest: Path, payload: str) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, dest)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
