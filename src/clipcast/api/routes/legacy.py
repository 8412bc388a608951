"""Single-folder upload endpoints kept for devices on older firmware."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Body, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from clipcast.api.dependencies import get_clip_service
from clipcast.api.payloads import decode_media
from clipcast.clips.service import ClipService
from clipcast.storage.paths import upload_url

router = APIRouter(tags=["legacy"])
logger = logging.getLogger(__name__)

BANNER = "Hello from the ESP32 backend!"


class UploadPhotoRequest(BaseModel):
    image: str | None = None


class UploadPhotoResponse(BaseModel):
    message: str
    fileName: str


class LegacyVideoResponse(BaseModel):
    message: str
    url: str


def _epoch_ms() -> int:
    return time.time_ns() // 1_000_000


@router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def banner() -> str:
    return BANNER


@router.post("/upload", response_model=UploadPhotoResponse)
async def upload_photo(
    body: UploadPhotoRequest | None = Body(default=None),
    service: ClipService = Depends(get_clip_service),
) -> UploadPhotoResponse:
    """Store a loose photo as `uploads/photo_<epoch-ms>.jpg`."""
    request = body or UploadPhotoRequest()
    image = decode_media(request.image, field="image", missing_detail="No image data received")
    file_name = f"photo_{_epoch_ms()}.jpg"
    await service.store.write_upload(file_name, image)
    logger.info("Image saved: %s", file_name)
    return UploadPhotoResponse(message="Image received", fileName=file_name)


@router.get("/make-video", response_model=LegacyVideoResponse)
async def make_video_from_uploads(
    service: ClipService = Depends(get_clip_service),
) -> LegacyVideoResponse:
    """Encode every loose photo, in filename order, into `uploads/clip_<epoch-ms>.mp4`."""
    photos = await service.store.list_uploads()
    logger.info("Found %d uploaded photos", len(photos))
    output_path = service.store.uploads_dir() / f"clip_{_epoch_ms()}.mp4"
    await service.encoder.assemble(photos, output_path, service.default_frame_rate)
    return LegacyVideoResponse(message="Video created", url=upload_url(output_path.name))
