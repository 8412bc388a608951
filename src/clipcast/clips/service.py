"""Clip lifecycle: start, upload frames/audio, end, query, assemble video."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from clipcast.clips.locks import ClipLockRegistry
from clipcast.errors import ClipClosedError, ClipNotFoundError
from clipcast.interfaces import MediaStore, VideoEncoder
from clipcast.models.clip import (
    ClipDetail,
    ClipMetadata,
    ClipSummary,
    FrameFile,
    VideoResult,
    frame_file_name,
)
from clipcast.models.config import ClipsConfig, EncoderConfig
from clipcast.storage.paths import validate_clip_id

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_clip_id() -> str:
    return secrets.token_hex(16)


class ClipService:
    """Implements the clip state machine (OPEN -> ENDED) on top of a MediaStore.

    Every read-modify-write of a clip's metadata runs under that clip's lock,
    so concurrent uploads to one clip never lose a frame count update.
    """

    def __init__(
        self,
        store: MediaStore,
        encoder: VideoEncoder,
        *,
        clips: ClipsConfig | None = None,
        encoder_config: EncoderConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = _new_clip_id,
    ) -> None:
        self._store = store
        self._encoder = encoder
        self._clips = clips or ClipsConfig()
        self._encoder_config = encoder_config or EncoderConfig()
        self._clock = clock
        self._id_factory = id_factory
        self._locks = ClipLockRegistry()
        # Encodes of one clip queue behind each other without blocking uploads.
        self._encode_locks = ClipLockRegistry()

    @property
    def store(self) -> MediaStore:
        return self._store

    @property
    def encoder(self) -> VideoEncoder:
        return self._encoder

    @property
    def default_frame_rate(self) -> float:
        return self._encoder_config.frame_rate

    async def start_clip(
        self, device_id: str | None = None, reason: str | None = None
    ) -> ClipMetadata:
        clip_id = self._id_factory()
        metadata = ClipMetadata(
            clip_id=clip_id,
            device_id=device_id or self._clips.default_device_id,
            reason=reason or self._clips.default_reason,
            started_at=self._clock(),
        )
        await self._store.ensure_directories(clip_id)
        await self._store.write_metadata(clip_id, metadata)
        logger.info(
            "Clip started: device=%s reason=%s",
            metadata.device_id,
            metadata.reason,
            extra={"clip_id": clip_id},
        )
        return metadata

    async def upload_frame(
        self, clip_id: str, image: bytes, index: int | None = None
    ) -> FrameFile:
        """Store one frame.

        Without an explicit index the frame goes to `frame_count + 1`. The
        running `frame_count` becomes the highest index seen, so sparse or
        out-of-order uploads are tolerated until `end_clip` normalizes it.
        """
        if index is not None:
            frame_file_name(index)  # raises ValueError when out of range

        async with self._locks.hold(clip_id):
            metadata = await self._require_open(clip_id)
            used_index = index if index is not None else metadata.frame_count + 1
            frame = await self._store.write_frame(clip_id, used_index, image)
            metadata.frame_count = max(metadata.frame_count, used_index)
            await self._store.write_metadata(clip_id, metadata)

        logger.debug(
            "Frame stored: %s (%d bytes)",
            frame.file_name,
            len(image),
            extra={"clip_id": clip_id},
        )
        return frame

    async def upload_audio(self, clip_id: str, audio: bytes) -> Path:
        async with self._locks.hold(clip_id):
            metadata = await self._require_open(clip_id)
            path = await self._store.write_audio(clip_id, audio)
            if not metadata.has_audio:
                metadata.has_audio = True
                await self._store.write_metadata(clip_id, metadata)

        logger.info("Audio stored (%d bytes)", len(audio), extra={"clip_id": clip_id})
        return path

    async def end_clip(self, clip_id: str) -> ClipMetadata:
        """Freeze `ended_at` and recount frames from storage.

        Re-ending an ended clip stamps `ended_at` again and recounts.
        """
        async with self._locks.hold(clip_id):
            metadata = await self._require_metadata(clip_id)
            frames = await self._store.list_frames(clip_id)
            metadata.ended_at = self._clock()
            metadata.frame_count = len(frames)
            await self._store.write_metadata(clip_id, metadata)

        logger.info("Clip ended with %d frames", metadata.frame_count, extra={"clip_id": clip_id})
        return metadata

    async def get_clip(self, clip_id: str) -> ClipDetail:
        metadata = await self._require_metadata(clip_id)
        frames = await self._store.list_frames(clip_id)
        return ClipDetail(
            metadata=metadata,
            frames=frames,
            has_audio_file=await self._store.has_audio(clip_id),
            has_video=await self._store.has_video(clip_id),
        )

    async def list_clips(self) -> list[ClipSummary]:
        """List every readable clip, newest `started_at` first.

        Clips whose metadata is missing or unparsable are skipped; clips
        without a start time sort last.
        """
        summaries: list[ClipSummary] = []
        for clip_id in await self._store.list_clip_ids():
            try:
                validate_clip_id(clip_id)
            except ValueError:
                logger.debug("Skipping non-clip directory %r", clip_id)
                continue
            metadata = await self._store.read_metadata(clip_id)
            if metadata is None:
                continue
            frames = await self._store.list_frames(clip_id)
            summaries.append(
                ClipSummary(
                    metadata=metadata,
                    frame_count=len(frames),
                    preview=frames[-1] if frames else None,
                    has_video=await self._store.has_video(clip_id),
                )
            )

        summaries.sort(key=_started_at_sort_key, reverse=True)
        return summaries

    async def make_video(self, clip_id: str, frame_rate: float | None = None) -> VideoResult:
        """Assemble the clip's stored frames into its single video file."""
        async with self._encode_locks.hold(clip_id):
            async with self._locks.hold(clip_id):
                await self._require_metadata(clip_id)
                frames = await self._store.list_frames(clip_id)

            rate = frame_rate if frame_rate is not None else self.default_frame_rate
            paths = self._store.resolve_paths(clip_id)
            return await self._encoder.assemble(
                [frame.path for frame in frames],
                paths.video_file,
                rate,
                clip_id=clip_id,
            )

    async def _require_metadata(self, clip_id: str) -> ClipMetadata:
        try:
            validate_clip_id(clip_id)
        except ValueError as exc:
            raise ClipNotFoundError(clip_id) from exc
        metadata = await self._store.read_metadata(clip_id)
        if metadata is None:
            raise ClipNotFoundError(clip_id)
        return metadata

    async def _require_open(self, clip_id: str) -> ClipMetadata:
        metadata = await self._require_metadata(clip_id)
        if self._clips.reject_uploads_after_end and metadata.ended_at is not None:
            raise ClipClosedError(clip_id)
        return metadata


def _started_at_sort_key(summary: ClipSummary) -> tuple[int, datetime]:
    started_at = summary.metadata.started_at
    if started_at is None:
        return (0, datetime.min.replace(tzinfo=timezone.utc))
    return (1, started_at)
