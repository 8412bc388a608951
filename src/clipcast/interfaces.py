"""Interface definitions for clip storage and video assembly."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from clipcast.models.clip import ClipMetadata, FrameFile, VideoResult
    from clipcast.storage.paths import ClipPaths


class MediaStore(ABC):
    """Persists clip metadata and media under a media root.

    Implementations keep no in-memory cache: every read reflects the current
    backing state.
    """

    @abstractmethod
    def resolve_paths(self, clip_id: str) -> ClipPaths:
        """Map a clip id to its directory layout. Never touches storage."""
        raise NotImplementedError

    @abstractmethod
    async def read_metadata(self, clip_id: str) -> ClipMetadata | None:
        """Return the clip record, or None if it is absent or unparsable."""
        raise NotImplementedError

    @abstractmethod
    async def write_metadata(self, clip_id: str, metadata: ClipMetadata) -> None:
        """Persist the full record, replacing any prior version atomically."""
        raise NotImplementedError

    @abstractmethod
    async def ensure_directories(self, clip_id: str) -> None:
        """Create the clip's directory tree (idempotent)."""
        raise NotImplementedError

    @abstractmethod
    async def list_frames(self, clip_id: str) -> list[FrameFile]:
        """List stored frames sorted by filename."""
        raise NotImplementedError

    @abstractmethod
    async def write_frame(self, clip_id: str, index: int, data: bytes) -> FrameFile:
        """Store frame bytes at `index`, overwriting any existing frame."""
        raise NotImplementedError

    @abstractmethod
    async def write_audio(self, clip_id: str, data: bytes) -> Path:
        """Store the clip's single audio asset, overwriting any prior one."""
        raise NotImplementedError

    @abstractmethod
    async def has_audio(self, clip_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def has_video(self, clip_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def list_clip_ids(self) -> list[str]:
        """Return ids of every clip directory under the media root."""
        raise NotImplementedError

    @abstractmethod
    async def write_upload(self, file_name: str, data: bytes) -> Path:
        """Store a loose photo in the shared uploads folder."""
        raise NotImplementedError

    @abstractmethod
    async def list_uploads(self) -> list[Path]:
        """List loose `.jpg` photos in the uploads folder, sorted by name."""
        raise NotImplementedError

    @abstractmethod
    def uploads_dir(self) -> Path:
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Health check. Returns True if the media root is usable."""
        raise NotImplementedError


class VideoEncoder(ABC):
    """Turns an ordered sequence of still images into one video file."""

    @property
    @abstractmethod
    def min_frames(self) -> int:
        raise NotImplementedError

    @abstractmethod
    async def assemble(
        self,
        frame_paths: Sequence[Path],
        output_path: Path,
        frame_rate: float,
        *,
        clip_id: str | None = None,
    ) -> VideoResult:
        """Encode `frame_paths` in order into `output_path`.

        Raises:
            InsufficientFramesError: fewer than `min_frames` inputs
            EncodingError: encoder failed (carries encoder output)
            EncodingTimeoutError: encoder exceeded its time limit
        """
        raise NotImplementedError
