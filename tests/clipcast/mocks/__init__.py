"""Mock implementations for testing."""

from tests.clipcast.mocks.encoder import MockEncoder
from tests.clipcast.mocks.media_store import MockMediaStore
from tests.clipcast.mocks.samples import JPEG_BYTES, WAV_BYTES, StepClock, b64

__all__ = ["JPEG_BYTES", "WAV_BYTES", "MockEncoder", "MockMediaStore", "StepClock", "b64"]
