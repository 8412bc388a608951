"""Health endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from clipcast.api.dependencies import get_clipcast_app

if TYPE_CHECKING:
    from clipcast.app import Application

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    storage: str
    uptime_seconds: float


@router.get("/health", response_model=HealthResponse)
async def get_health(
    app: Application = Depends(get_clipcast_app),
) -> HealthResponse | JSONResponse:
    """Liveness/readiness check; 503 when the media root is unusable."""
    storage_ok = await app.store.ping()
    response = HealthResponse(
        status="healthy" if storage_ok else "unhealthy",
        storage="ok" if storage_ok else "unavailable",
        uptime_seconds=app.uptime_seconds,
    )
    if not storage_ok:
        return JSONResponse(status_code=503, content=response.model_dump(mode="json"))
    return response
