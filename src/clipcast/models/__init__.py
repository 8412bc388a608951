"""clipcast data models."""

from clipcast.models.clip import (
    ClipDetail,
    ClipMetadata,
    ClipSummary,
    FrameFile,
    VideoResult,
    frame_file_name,
    parse_frame_index,
)
from clipcast.models.config import (
    ClipsConfig,
    Config,
    EncoderConfig,
    RetryConfig,
    ServerConfig,
    StorageConfig,
)
from clipcast.models.enums import ClipStatus

__all__ = [
    "ClipDetail",
    "ClipMetadata",
    "ClipStatus",
    "ClipSummary",
    "ClipsConfig",
    "Config",
    "EncoderConfig",
    "FrameFile",
    "RetryConfig",
    "ServerConfig",
    "StorageConfig",
    "VideoResult",
    "frame_file_name",
    "parse_frame_index",
]
