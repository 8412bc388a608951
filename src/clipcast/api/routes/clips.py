"""Clip lifecycle endpoints."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Body, Depends
from pydantic import Field

from clipcast.api.dependencies import get_clip_service
from clipcast.api.payloads import decode_media
from clipcast.clips.service import ClipService
from clipcast.models.clip import MAX_FRAME_INDEX, CamelModel, ClipMetadata, FrameFile
from clipcast.storage.paths import audio_url, frame_url, video_url

router = APIRouter(tags=["clips"])
logger = logging.getLogger(__name__)


class StartClipRequest(CamelModel):
    reason: str | None = None
    device_id: str | None = None


class StartClipResponse(CamelModel):
    clip_id: str
    upload_frame_url: str
    upload_audio_url: str
    end_url: str


class UploadFrameRequest(CamelModel):
    image: str | None = None
    index: int | None = Field(default=None, ge=0, le=MAX_FRAME_INDEX)


class UploadFrameResponse(CamelModel):
    clip_id: str
    file_name: str
    url: str


class UploadAudioRequest(CamelModel):
    audio: str | None = None


class UploadAudioResponse(CamelModel):
    clip_id: str
    url: str


class EndClipResponse(CamelModel):
    clip_id: str
    frame_count: int


class MakeVideoRequest(CamelModel):
    fps: float | None = Field(default=None, gt=0, le=120)


class MakeVideoResponse(CamelModel):
    clip_id: str
    url: str
    frame_count: int


class FrameResponse(CamelModel):
    index: int
    file_name: str
    url: str


class ClipResponse(CamelModel):
    clip_id: str
    device_id: str
    reason: str
    status: str
    started_at: datetime | None
    ended_at: datetime | None
    frame_count: int
    has_audio: bool
    frames: list[FrameResponse] = Field(default_factory=list)
    audio_url: str | None = None
    video_url: str | None = None


class ClipSummaryResponse(CamelModel):
    clip_id: str
    device_id: str
    reason: str
    status: str
    started_at: datetime | None
    ended_at: datetime | None
    frame_count: int
    has_audio: bool
    preview_url: str | None = None
    video_url: str | None = None


def _clip_base_url(clip_id: str) -> str:
    return f"/clip/{clip_id}"


def _frame_response(clip_id: str, frame: FrameFile) -> FrameResponse:
    return FrameResponse(
        index=frame.index,
        file_name=frame.file_name,
        url=frame_url(clip_id, frame.file_name),
    )


def _metadata_fields(metadata: ClipMetadata) -> dict[str, object]:
    return {
        "clip_id": metadata.clip_id,
        "device_id": metadata.device_id,
        "reason": metadata.reason,
        "status": metadata.status.value,
        "started_at": metadata.started_at,
        "ended_at": metadata.ended_at,
        "has_audio": metadata.has_audio,
    }


@router.post("/clip/start", response_model=StartClipResponse)
async def start_clip(
    body: StartClipRequest | None = Body(default=None),
    service: ClipService = Depends(get_clip_service),
) -> StartClipResponse:
    """Open a new clip and return the URLs for its uploads."""
    request = body or StartClipRequest()
    metadata = await service.start_clip(device_id=request.device_id, reason=request.reason)
    base = _clip_base_url(metadata.clip_id)
    return StartClipResponse(
        clip_id=metadata.clip_id,
        upload_frame_url=f"{base}/frame",
        upload_audio_url=f"{base}/audio",
        end_url=f"{base}/end",
    )


@router.post("/clip/{clip_id}/frame", response_model=UploadFrameResponse)
async def upload_frame(
    clip_id: str,
    body: UploadFrameRequest | None = Body(default=None),
    service: ClipService = Depends(get_clip_service),
) -> UploadFrameResponse:
    """Store one base64 frame, at an explicit index or after the current last one."""
    request = body or UploadFrameRequest()
    image = decode_media(request.image, field="image", missing_detail="No image data received")
    frame = await service.upload_frame(clip_id, image, index=request.index)
    return UploadFrameResponse(
        clip_id=clip_id,
        file_name=frame.file_name,
        url=frame_url(clip_id, frame.file_name),
    )


@router.post("/clip/{clip_id}/audio", response_model=UploadAudioResponse)
async def upload_audio(
    clip_id: str,
    body: UploadAudioRequest | None = Body(default=None),
    service: ClipService = Depends(get_clip_service),
) -> UploadAudioResponse:
    """Store (or replace) the clip's audio track."""
    request = body or UploadAudioRequest()
    audio = decode_media(request.audio, field="audio", missing_detail="No audio data received")
    await service.upload_audio(clip_id, audio)
    return UploadAudioResponse(clip_id=clip_id, url=audio_url(clip_id))


@router.post("/clip/{clip_id}/end", response_model=EndClipResponse)
async def end_clip(
    clip_id: str,
    service: ClipService = Depends(get_clip_service),
) -> EndClipResponse:
    """Close the clip and recount its frames."""
    metadata = await service.end_clip(clip_id)
    return EndClipResponse(clip_id=clip_id, frame_count=metadata.frame_count)


@router.post("/clip/{clip_id}/video", response_model=MakeVideoResponse)
async def make_clip_video(
    clip_id: str,
    body: MakeVideoRequest | None = Body(default=None),
    service: ClipService = Depends(get_clip_service),
) -> MakeVideoResponse:
    """Encode the clip's frames into `clip.mp4`."""
    fps = body.fps if body is not None else None
    result = await service.make_video(clip_id, frame_rate=fps)
    return MakeVideoResponse(
        clip_id=clip_id,
        url=video_url(clip_id),
        frame_count=result.frame_count,
    )


@router.get("/clip/{clip_id}", response_model=ClipResponse)
async def get_clip(
    clip_id: str,
    service: ClipService = Depends(get_clip_service),
) -> ClipResponse:
    """Get one clip with its frames and asset URLs."""
    detail = await service.get_clip(clip_id)
    return ClipResponse(
        **_metadata_fields(detail.metadata),
        frame_count=detail.metadata.frame_count,
        frames=[_frame_response(clip_id, frame) for frame in detail.frames],
        audio_url=audio_url(clip_id) if detail.has_audio_file else None,
        video_url=video_url(clip_id) if detail.has_video else None,
    )


@router.get("/clips", response_model=list[ClipSummaryResponse])
async def list_clips(service: ClipService = Depends(get_clip_service)) -> list[ClipSummaryResponse]:
    """List clips, newest first."""
    summaries = await service.list_clips()
    responses: list[ClipSummaryResponse] = []
    for summary in summaries:
        clip_id = summary.metadata.clip_id
        responses.append(
            ClipSummaryResponse(
                **_metadata_fields(summary.metadata),
                frame_count=summary.frame_count,
                preview_url=(
                    frame_url(clip_id, summary.preview.file_name) if summary.preview else None
                ),
                video_url=video_url(clip_id) if summary.has_video else None,
            )
        )
    return responses

