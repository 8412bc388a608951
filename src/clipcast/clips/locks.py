"""Per-clip serialization of metadata mutations."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass


@dataclass
class _LockEntry:
    lock: asyncio.Lock
    holders: int = 0


class ClipLockRegistry:
    """Hands out one asyncio.Lock per clip id.

    Entries are dropped once no task holds or waits on them, so the registry
    does not grow with the number of clips ever seen.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, clip_id: str) -> AsyncIterator[None]:
        entry = self._entries.get(clip_id)
        if entry is None:
            entry = _LockEntry(lock=asyncio.Lock())
            self._entries[clip_id] = entry
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                self._entries.pop(clip_id, None)

    def __len__(self) -> int:
        return len(self._entries)
