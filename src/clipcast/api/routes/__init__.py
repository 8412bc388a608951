"""API route registration."""

from __future__ import annotations

from fastapi import FastAPI

from clipcast.api.routes import clips, health, legacy


def register_routes(app: FastAPI) -> None:
    """Register all API routers."""
    app.include_router(health.router)
    app.include_router(clips.router)
    app.include_router(legacy.router)
