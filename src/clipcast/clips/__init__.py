"""Clip lifecycle management."""

from clipcast.clips.locks import ClipLockRegistry
from clipcast.clips.service import ClipService

__all__ = ["ClipLockRegistry", "ClipService"]
