"""clipcast: photo clip backend for ESP32 cameras."""

__version__ = "0.1.0"

# Export commonly used types
from clipcast.errors import ClipcastError
from clipcast.models.clip import ClipMetadata, FrameFile, VideoResult

__all__ = [
    "ClipMetadata",
    "ClipcastError",
    "FrameFile",
    "VideoResult",
    "__version__",
]
