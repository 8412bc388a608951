"""Centralized enums for type safety and IDE support."""

from enum import StrEnum


class ClipStatus(StrEnum):
    """Clip lifecycle status values.

    A clip starts OPEN and becomes ENDED once `endedAt` is set; there is no
    transition back.
    """

    OPEN = "open"
    ENDED = "ended"
