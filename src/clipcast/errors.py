"""Error hierarchy for clip storage and video assembly."""

from __future__ import annotations


class ClipcastError(Exception):
    """Base exception for all clip lifecycle errors.

    Preserves stack traces via exception chaining when a lower-level cause
    (OS error, subprocess failure) is available.
    """

    def __init__(
        self, message: str, clip_id: str | None = None, cause: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.clip_id = clip_id
        self.cause = cause
        self.__cause__ = cause


class ClipNotFoundError(ClipcastError):
    """Referenced clip has no metadata record."""

    def __init__(self, clip_id: str) -> None:
        super().__init__(f"Clip not found: {clip_id}", clip_id=clip_id)


class ClipClosedError(ClipcastError):
    """Upload attempted on a clip that has already ended."""

    def __init__(self, clip_id: str) -> None:
        super().__init__(f"Clip already ended: {clip_id}", clip_id=clip_id)


class MediaDecodeError(ClipcastError):
    """Uploaded payload is not valid base64 media."""

    def __init__(self, field: str, cause: Exception | None = None) -> None:
        super().__init__(f"Invalid base64 data in '{field}'", cause=cause)
        self.field = field


class InsufficientFramesError(ClipcastError):
    """Video assembly requested with fewer than the minimum frame count."""

    def __init__(self, frame_count: int, min_frames: int, clip_id: str | None = None) -> None:
        super().__init__(
            f"Need at least {min_frames} images to make video (found {frame_count})",
            clip_id=clip_id,
        )
        self.frame_count = frame_count
        self.min_frames = min_frames


class StorageFaultError(ClipcastError):
    """Unexpected filesystem failure (disk full, permission denied, ...)."""

    def __init__(self, operation: str, clip_id: str | None, cause: Exception) -> None:
        super().__init__(
            f"Storage {operation} failed: {cause}",
            clip_id=clip_id,
            cause=cause,
        )
        self.operation = operation


class EncodingError(ClipcastError):
    """External encoder failed or produced no output.

    `output` carries the encoder's own diagnostic text verbatim.
    """

    def __init__(
        self,
        message: str,
        *,
        output: str = "",
        returncode: int | None = None,
        clip_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, clip_id=clip_id, cause=cause)
        self.output = output
        self.returncode = returncode


class EncodingTimeoutError(EncodingError):
    """External encoder did not finish within the configured timeout."""

    def __init__(self, timeout_s: float, *, output: str = "", clip_id: str | None = None) -> None:
        super().__init__(
            f"Encoder timed out after {timeout_s:g}s",
            output=output,
            clip_id=clip_id,
        )
        self.timeout_s = timeout_s
