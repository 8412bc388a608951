"""Shared pytest fixtures for clipcast tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Add src to sys.path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path.resolve()) not in sys.path:
    sys.path.insert(0, str(src_path.resolve()))

import pytest

from clipcast.clips.service import ClipService
from clipcast.models.config import ClipsConfig, EncoderConfig, StorageConfig
from clipcast.storage.local import LocalMediaStore
from tests.clipcast.mocks import MockEncoder, MockMediaStore, StepClock


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def mock_store() -> MockMediaStore:
    return MockMediaStore()


@pytest.fixture
def mock_encoder() -> MockEncoder:
    return MockEncoder()


@pytest.fixture
def service(mock_store: MockMediaStore, mock_encoder: MockEncoder, clock: StepClock) -> ClipService:
    """ClipService over the in-memory store and recording encoder."""
    return ClipService(
        mock_store,
        mock_encoder,
        clips=ClipsConfig(),
        encoder_config=EncoderConfig(),
        clock=clock,
    )


@pytest.fixture
def local_store(tmp_path: Path) -> LocalMediaStore:
    """LocalMediaStore rooted in a temporary directory."""
    return LocalMediaStore(StorageConfig(media_root=str(tmp_path / "media")))


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host env vars from leaking into config loading."""
    for name in ("PORT", "HOST", "MEDIA_ROOT", "FFMPEG_PATH", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
