"""Tests for the clip lifecycle service."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from clipcast.clips.service import ClipService
from clipcast.errors import ClipClosedError, ClipNotFoundError, InsufficientFramesError
from clipcast.models.clip import ClipMetadata
from clipcast.models.config import ClipsConfig, EncoderConfig
from clipcast.models.enums import ClipStatus
from tests.clipcast.mocks import JPEG_BYTES, WAV_BYTES, MockEncoder, MockMediaStore, StepClock


class TestStartClip:
    """Tests for opening clips."""

    @pytest.mark.asyncio
    async def test_fresh_clip_is_open_and_empty(self, service: ClipService) -> None:
        """Starting then fetching a clip yields frameCount=0, endedAt=null, hasAudio=false."""
        # Given: A new clip
        started = await service.start_clip(device_id="esp32-cam", reason="button")

        # When: Fetching it back
        detail = await service.get_clip(started.clip_id)

        # Then: It is open with no frames or audio
        assert detail.metadata.frame_count == 0
        assert detail.metadata.ended_at is None
        assert detail.metadata.has_audio is False
        assert detail.metadata.status == ClipStatus.OPEN
        assert detail.metadata.device_id == "esp32-cam"
        assert detail.metadata.reason == "button"
        assert detail.frames == []
        assert detail.has_video is False

    @pytest.mark.asyncio
    async def test_missing_device_and_reason_use_defaults(self, service: ClipService) -> None:
        """Absent deviceId/reason fall back to configured placeholders."""
        # Given/When: Starting a clip without identifiers
        started = await service.start_clip()

        # Then: Placeholders are recorded
        assert started.device_id == "unknown-device"
        assert started.reason == "unspecified"

    @pytest.mark.asyncio
    async def test_clip_ids_are_unique_and_url_safe(self, service: ClipService) -> None:
        """Each start allocates a distinct hex token."""
        # Given/When: Starting several clips
        ids = [(await service.start_clip()).clip_id for _ in range(5)]

        # Then: All ids differ and are 32-char hex
        assert len(set(ids)) == 5
        assert all(len(clip_id) == 32 and int(clip_id, 16) >= 0 for clip_id in ids)

    @pytest.mark.asyncio
    async def test_start_creates_directories(
        self, service: ClipService, mock_store: MockMediaStore
    ) -> None:
        """The clip's directory tree exists right after start."""
        # Given/When: Starting a clip
        started = await service.start_clip()

        # Then: The store created its directories
        assert started.clip_id in mock_store.directories


class TestUploadFrame:
    """Tests for frame uploads and frame count semantics."""

    @pytest.mark.asyncio
    async def test_auto_index_appends_after_current_count(self, service: ClipService) -> None:
        """Frames without an index take frameCount + 1."""
        # Given: A fresh clip
        clip_id = (await service.start_clip()).clip_id

        # When: Uploading two frames without indices
        first = await service.upload_frame(clip_id, JPEG_BYTES)
        second = await service.upload_frame(clip_id, JPEG_BYTES)

        # Then: They are numbered 1 and 2
        assert first.file_name == "frame_000001.jpg"
        assert second.file_name == "frame_000002.jpg"
        detail = await service.get_clip(clip_id)
        assert detail.metadata.frame_count == 2

    @pytest.mark.asyncio
    async def test_out_of_order_indices_end_sorted(self, service: ClipService) -> None:
        """Indices 3, 1, 2 in any order end with three sorted frames."""
        # Given: A fresh clip
        clip_id = (await service.start_clip()).clip_id

        # When: Uploading indices out of order and ending
        for index in (3, 1, 2):
            await service.upload_frame(clip_id, JPEG_BYTES, index=index)
        ended = await service.end_clip(clip_id)

        # Then: frameCount is 3 and listing is in filename order
        assert ended.frame_count == 3
        detail = await service.get_clip(clip_id)
        assert [frame.file_name for frame in detail.frames] == [
            "frame_000001.jpg",
            "frame_000002.jpg",
            "frame_000003.jpg",
        ]

    @pytest.mark.asyncio
    async def test_sparse_index_uses_max_then_end_normalizes(
        self, service: ClipService, mock_store: MockMediaStore
    ) -> None:
        """Index 10 over frameCount 2 sets 10; end recounts real files."""
        # Given: A clip whose frame count was raised to 2 without files
        clip_id = (await service.start_clip()).clip_id
        metadata = await mock_store.read_metadata(clip_id)
        assert metadata is not None
        metadata.frame_count = 2
        await mock_store.write_metadata(clip_id, metadata)

        # When: Uploading a frame at index 10
        await service.upload_frame(clip_id, JPEG_BYTES, index=10)

        # Then: frameCount jumps to the highest index seen
        detail = await service.get_clip(clip_id)
        assert detail.metadata.frame_count == 10
        assert len(detail.frames) == 1

        # When: Ending the clip
        ended = await service.end_clip(clip_id)

        # Then: frameCount equals the true file count
        assert ended.frame_count == 1

    @pytest.mark.asyncio
    async def test_lower_index_does_not_decrease_count(self, service: ClipService) -> None:
        """frameCount never decreases while open."""
        # Given: A clip with frame 5
        clip_id = (await service.start_clip()).clip_id
        await service.upload_frame(clip_id, JPEG_BYTES, index=5)

        # When: Uploading frame 2
        await service.upload_frame(clip_id, JPEG_BYTES, index=2)

        # Then: frameCount stays at 5
        assert (await service.get_clip(clip_id)).metadata.frame_count == 5

    @pytest.mark.asyncio
    async def test_duplicate_index_overwrites(
        self, service: ClipService, mock_store: MockMediaStore
    ) -> None:
        """Re-uploading an index replaces the earlier frame."""
        # Given: A clip with frame 1
        clip_id = (await service.start_clip()).clip_id
        await service.upload_frame(clip_id, b"old", index=1)

        # When: Uploading index 1 again
        await service.upload_frame(clip_id, b"new", index=1)

        # Then: Only the newer content remains
        assert mock_store.frames[clip_id] == {"frame_000001.jpg": b"new"}

    @pytest.mark.asyncio
    async def test_negative_index_rejected(self, service: ClipService) -> None:
        """Negative indices are invalid."""
        # Given: A fresh clip
        clip_id = (await service.start_clip()).clip_id

        # When/Then: Uploading at -1 fails before touching storage
        with pytest.raises(ValueError):
            await service.upload_frame(clip_id, JPEG_BYTES, index=-1)

    @pytest.mark.asyncio
    async def test_unknown_clip_raises_not_found(self, service: ClipService) -> None:
        """Uploading to a missing clip raises ClipNotFoundError."""
        with pytest.raises(ClipNotFoundError):
            await service.upload_frame("deadbeef", JPEG_BYTES)

    @pytest.mark.asyncio
    async def test_concurrent_auto_index_uploads_do_not_collide(
        self, service: ClipService, mock_store: MockMediaStore
    ) -> None:
        """Concurrent uploads to one clip are serialized and get distinct indices."""
        # Given: A fresh clip
        clip_id = (await service.start_clip()).clip_id

        # When: Uploading five frames concurrently
        frames = await asyncio.gather(
            *(service.upload_frame(clip_id, JPEG_BYTES) for _ in range(5))
        )

        # Then: Every frame got its own index and no update was lost
        assert sorted(frame.index for frame in frames) == [1, 2, 3, 4, 5]
        assert len(mock_store.frames[clip_id]) == 5
        assert (await service.get_clip(clip_id)).metadata.frame_count == 5

    @pytest.mark.asyncio
    async def test_upload_after_end_allowed_by_default(self, service: ClipService) -> None:
        """Post-end uploads succeed unless rejection is configured."""
        # Given: An ended clip
        clip_id = (await service.start_clip()).clip_id
        await service.end_clip(clip_id)

        # When: Uploading a frame
        frame = await service.upload_frame(clip_id, JPEG_BYTES)

        # Then: It is stored
        assert frame.index == 1

    @pytest.mark.asyncio
    async def test_upload_after_end_rejected_when_configured(
        self, mock_store: MockMediaStore, mock_encoder: MockEncoder
    ) -> None:
        """reject_uploads_after_end turns post-end uploads into ClipClosedError."""
        # Given: A service that rejects post-end uploads and an ended clip
        strict = ClipService(
            mock_store,
            mock_encoder,
            clips=ClipsConfig(reject_uploads_after_end=True),
        )
        clip_id = (await strict.start_clip()).clip_id
        await strict.end_clip(clip_id)

        # When/Then: Frame and audio uploads are refused
        with pytest.raises(ClipClosedError):
            await strict.upload_frame(clip_id, JPEG_BYTES)
        with pytest.raises(ClipClosedError):
            await strict.upload_audio(clip_id, WAV_BYTES)


class TestUploadAudio:
    """Tests for the single audio asset."""

    @pytest.mark.asyncio
    async def test_second_upload_overwrites(
        self, service: ClipService, mock_store: MockMediaStore
    ) -> None:
        """Two uploads leave one audio asset and hasAudio true."""
        # Given: A fresh clip
        clip_id = (await service.start_clip()).clip_id

        # When: Uploading audio twice
        await service.upload_audio(clip_id, b"first")
        assert (await service.get_clip(clip_id)).metadata.has_audio is True
        await service.upload_audio(clip_id, b"second")

        # Then: One asset with the latest content
        detail = await service.get_clip(clip_id)
        assert detail.metadata.has_audio is True
        assert detail.has_audio_file is True
        assert mock_store.audio == {clip_id: b"second"}

    @pytest.mark.asyncio
    async def test_unknown_clip_raises_not_found(self, service: ClipService) -> None:
        with pytest.raises(ClipNotFoundError):
            await service.upload_audio("deadbeef", WAV_BYTES)


class TestEndClip:
    """Tests for ending clips."""

    @pytest.mark.asyncio
    async def test_end_sets_ended_at(self, service: ClipService, clock: StepClock) -> None:
        """Ending stamps endedAt and flips status."""
        # Given: An open clip
        clip_id = (await service.start_clip()).clip_id
        expected = clock.now

        # When: Ending it
        ended = await service.end_clip(clip_id)

        # Then: endedAt comes from the clock
        assert ended.ended_at == expected
        assert ended.status == ClipStatus.ENDED

    @pytest.mark.asyncio
    async def test_re_end_restamps(self, service: ClipService) -> None:
        """Ending twice sets a new endedAt and recounts."""
        # Given: An ended clip
        clip_id = (await service.start_clip()).clip_id
        first = await service.end_clip(clip_id)
        await service.upload_frame(clip_id, JPEG_BYTES)

        # When: Ending again
        second = await service.end_clip(clip_id)

        # Then: endedAt advanced and the new frame is counted
        assert first.ended_at is not None and second.ended_at is not None
        assert second.ended_at > first.ended_at
        assert second.frame_count == 1

    @pytest.mark.asyncio
    async def test_unknown_clip_raises_not_found(self, service: ClipService) -> None:
        with pytest.raises(ClipNotFoundError):
            await service.end_clip("deadbeef")

    @pytest.mark.asyncio
    async def test_malformed_clip_id_raises_not_found(self, service: ClipService) -> None:
        """Ids that are not a path segment are simply not found."""
        with pytest.raises(ClipNotFoundError):
            await service.end_clip("../etc")


class TestListClips:
    """Tests for clip listing."""

    @staticmethod
    async def _seed(store: MockMediaStore, clip_id: str, started_at: datetime | None) -> None:
        await store.ensure_directories(clip_id)
        await store.write_metadata(
            clip_id,
            ClipMetadata(clip_id=clip_id, device_id="d", reason="r", started_at=started_at),
        )

    @pytest.mark.asyncio
    async def test_newest_first(self, service: ClipService, mock_store: MockMediaStore) -> None:
        """January, June, March start times list as June, March, January."""
        # Given: Three clips with distinct start dates
        await self._seed(mock_store, "jan", datetime(2024, 1, 1, tzinfo=timezone.utc))
        await self._seed(mock_store, "jun", datetime(2024, 6, 1, tzinfo=timezone.utc))
        await self._seed(mock_store, "mar", datetime(2024, 3, 1, tzinfo=timezone.utc))

        # When: Listing
        summaries = await service.list_clips()

        # Then: Descending start order
        assert [s.metadata.clip_id for s in summaries] == ["jun", "mar", "jan"]

    @pytest.mark.asyncio
    async def test_missing_start_sorts_last(
        self, service: ClipService, mock_store: MockMediaStore
    ) -> None:
        """Clips without startedAt come after dated ones."""
        # Given: One undated and one dated clip
        await self._seed(mock_store, "undated", None)
        await self._seed(mock_store, "dated", datetime(2024, 1, 1, tzinfo=timezone.utc))

        # When: Listing
        summaries = await service.list_clips()

        # Then: Undated is last
        assert [s.metadata.clip_id for s in summaries] == ["dated", "undated"]

    @pytest.mark.asyncio
    async def test_skips_missing_and_unparsable_metadata(
        self, service: ClipService, mock_store: MockMediaStore
    ) -> None:
        """Directories without readable metadata are left out."""
        # Given: A good clip, a bare directory, and corrupt metadata
        good = (await service.start_clip()).clip_id
        await mock_store.ensure_directories("bare")
        mock_store.metadata["corrupt"] = "{not json"

        # When: Listing
        summaries = await service.list_clips()

        # Then: Only the good clip is returned
        assert [s.metadata.clip_id for s in summaries] == [good]

    @pytest.mark.asyncio
    async def test_live_count_and_preview(self, service: ClipService) -> None:
        """Summaries carry the on-disk frame count and last frame as preview."""
        # Given: A clip with a sparse frame index
        clip_id = (await service.start_clip()).clip_id
        await service.upload_frame(clip_id, JPEG_BYTES, index=1)
        await service.upload_frame(clip_id, JPEG_BYTES, index=7)

        # When: Listing
        (summary,) = await service.list_clips()

        # Then: Live count is 2 (not the max index) and preview is frame 7
        assert summary.metadata.frame_count == 7
        assert summary.frame_count == 2
        assert summary.preview is not None
        assert summary.preview.file_name == "frame_000007.jpg"


class TestMakeVideo:
    """Tests for assembling a clip's frames."""

    @pytest.mark.asyncio
    async def test_passes_frames_in_filename_order(
        self, service: ClipService, mock_encoder: MockEncoder, mock_store: MockMediaStore
    ) -> None:
        """The encoder receives every frame once, ascending, and writes clip.mp4."""
        # Given: A clip with three frames uploaded out of order
        clip_id = (await service.start_clip()).clip_id
        for index in (2, 3, 1):
            await service.upload_frame(clip_id, JPEG_BYTES, index=index)

        # When: Making the video
        result = await service.make_video(clip_id)

        # Then: Frames are ordered and output is the clip's video path
        (call,) = mock_encoder.calls
        assert [p.name for p in call.frame_paths] == [
            "frame_000001.jpg",
            "frame_000002.jpg",
            "frame_000003.jpg",
        ]
        assert call.output_path == mock_store.resolve_paths(clip_id).video_file
        assert call.frame_rate == EncoderConfig().frame_rate
        assert result.frame_count == 3

    @pytest.mark.asyncio
    async def test_single_frame_rejected_without_encoding(
        self, service: ClipService, mock_encoder: MockEncoder
    ) -> None:
        """One stored frame is below the minimum; the encoder is never run."""
        # Given: A clip with one frame
        clip_id = (await service.start_clip()).clip_id
        await service.upload_frame(clip_id, JPEG_BYTES)

        # When/Then: Assembly is refused
        with pytest.raises(InsufficientFramesError):
            await service.make_video(clip_id)
        assert mock_encoder.calls == []

    @pytest.mark.asyncio
    async def test_frame_rate_override(
        self, service: ClipService, mock_encoder: MockEncoder
    ) -> None:
        # Given: A clip with two frames
        clip_id = (await service.start_clip()).clip_id
        await service.upload_frame(clip_id, JPEG_BYTES)
        await service.upload_frame(clip_id, JPEG_BYTES)

        # When: Making the video at 12 fps
        await service.make_video(clip_id, frame_rate=12)

        # Then: The override reaches the encoder
        assert mock_encoder.calls[0].frame_rate == 12

    @pytest.mark.asyncio
    async def test_unknown_clip_raises_not_found(self, service: ClipService) -> None:
        with pytest.raises(ClipNotFoundError):
            await service.make_video("deadbeef")


class TestMakeVideoConcurrency:
    """Tests for overlapping encodes."""

    @pytest.mark.asyncio
    async def test_encodes_of_one_clip_are_serialized(self, mock_store: MockMediaStore) -> None:
        """A second encode of the same clip waits for the first to finish."""
        # Given: A slow encoder and a clip with two frames
        encoder = MockEncoder(delay_s=0.02)
        service = ClipService(mock_store, encoder)
        clip_id = (await service.start_clip()).clip_id
        await service.upload_frame(clip_id, JPEG_BYTES)
        await service.upload_frame(clip_id, JPEG_BYTES)

        # When: Two encodes are requested at once
        await asyncio.gather(service.make_video(clip_id), service.make_video(clip_id))

        # Then: Both ran, one at a time
        assert len(encoder.calls) == 2
        assert encoder.peak_active == 1

    @pytest.mark.asyncio
    async def test_encodes_of_different_clips_overlap(self, mock_store: MockMediaStore) -> None:
        # Given: A slow encoder and two clips
        encoder = MockEncoder(delay_s=0.02)
        service = ClipService(mock_store, encoder)
        clip_ids = [(await service.start_clip()).clip_id for _ in range(2)]
        for clip_id in clip_ids:
            await service.upload_frame(clip_id, JPEG_BYTES)
            await service.upload_frame(clip_id, JPEG_BYTES)

        # When: Both encode together
        await asyncio.gather(*(service.make_video(clip_id) for clip_id in clip_ids))

        # Then: The encodes ran side by side
        assert encoder.peak_active == 2

    @pytest.mark.asyncio
    async def test_uploads_proceed_during_encode(self, mock_store: MockMediaStore) -> None:
        """An in-flight encode does not hold up frame uploads for the clip."""
        # Given: A slow encode in progress
        encoder = MockEncoder(delay_s=0.2)
        service = ClipService(mock_store, encoder)
        clip_id = (await service.start_clip()).clip_id
        await service.upload_frame(clip_id, JPEG_BYTES)
        await service.upload_frame(clip_id, JPEG_BYTES)
        encode = asyncio.create_task(service.make_video(clip_id))
        await asyncio.sleep(0.01)

        # When: A frame arrives mid-encode
        await asyncio.wait_for(service.upload_frame(clip_id, JPEG_BYTES), timeout=0.1)

        # Then: The upload finished before the encode
        assert not encode.done()
        await encode
