"""Media storage backends."""

from clipcast.storage.local import LocalMediaStore
from clipcast.storage.paths import ClipPaths, build_clip_paths

__all__ = ["ClipPaths", "LocalMediaStore", "build_clip_paths"]
