"""FastAPI dependency helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from fastapi import Depends, Request, status

from clipcast.api.errors import APIError, APIErrorCode

if TYPE_CHECKING:
    from clipcast.app import Application
    from clipcast.clips.service import ClipService


async def get_clipcast_app(request: Request) -> Application:
    """Get the clipcast Application instance from request state."""
    app = cast("Application | None", getattr(request.app.state, "clipcast", None))
    if app is None:
        raise APIError(
            "Application not initialized",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code=APIErrorCode.APP_NOT_INITIALIZED,
        )
    return app


async def get_clip_service(app: Application = Depends(get_clipcast_app)) -> ClipService:
    return app.service
