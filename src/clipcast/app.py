"""Main application that wires all components together."""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from pathlib import Path

from fastapi import FastAPI

from clipcast.api import APIServer, create_app
from clipcast.clips.service import ClipService
from clipcast.encoding.ffmpeg import FfmpegEncoder
from clipcast.interfaces import MediaStore, VideoEncoder
from clipcast.models.config import Config
from clipcast.storage.local import LocalMediaStore

logger = logging.getLogger(__name__)


class Application:
    """Owns the media store, encoder, clip service and HTTP server.

    Handles component creation, lifecycle, and graceful shutdown.
    """

    def __init__(
        self,
        config: Config,
        *,
        store: MediaStore | None = None,
        encoder: VideoEncoder | None = None,
    ) -> None:
        self._config = config
        self._store = store or LocalMediaStore(config.storage)
        self._encoder = encoder or FfmpegEncoder(config.encoder, retry=config.retry)
        self._service = ClipService(
            self._store,
            self._encoder,
            clips=config.clips,
            encoder_config=config.encoder,
        )
        self._api_server: APIServer | None = None
        self._start_time: float | None = None

        # Shutdown state
        self._shutdown_event = asyncio.Event()
        self._shutdown_started = False

    def create_api(self) -> FastAPI:
        return create_app(self)

    async def run(self) -> None:
        """Serve HTTP until SIGINT/SIGTERM."""
        logger.info("Starting clipcast; media root: %s", self.media_root)

        self._setup_signal_handlers()

        server_cfg = self._config.server
        self._api_server = APIServer(
            app=self.create_api(),
            host=server_cfg.host,
            port=server_cfg.port,
        )
        await self._api_server.start()
        self._start_time = time.time()

        await self._shutdown_event.wait()
        await self.shutdown()

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_signal, sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        if self._shutdown_started:
            logger.warning("Shutdown already in progress, ignoring signal")
            return

        logger.info("Received signal %s, initiating shutdown...", sig.name)
        self._shutdown_started = True
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Stop accepting requests."""
        logger.info("Shutting down application...")
        if self._api_server:
            await self._api_server.stop()
        logger.info("Application shutdown complete")

    @property
    def config(self) -> Config:
        return self._config

    @property
    def store(self) -> MediaStore:
        return self._store

    @property
    def service(self) -> ClipService:
        return self._service

    @property
    def media_root(self) -> Path:
        return Path(self._config.storage.media_root).expanduser().resolve()

    @property
    def uptime_seconds(self) -> float:
        if self._start_time is None:
            return 0.0
        return time.time() - self._start_time
