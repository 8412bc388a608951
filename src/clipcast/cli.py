"""CLI entrypoint for clipcast."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import fire  # type: ignore[import-untyped]

from clipcast.app import Application
from clipcast.config import ConfigError, EnvSettings, load_config_or_default
from clipcast.errors import ClipcastError
from clipcast.logging_setup import configure_logging
from clipcast.models.config import Config


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for CLI."""
    configure_logging(log_level=level)


def _load(config: str | None) -> Config:
    return load_config_or_default(Path(config) if config else None)


class Clipcast:
    """clipcast CLI - ESP32 photo clip backend."""

    def run(self, config: str | None = None, log_level: str | None = None) -> None:
        """Run the HTTP server.

        Args:
            config: Optional path to YAML config file
            log_level: Logging level (defaults to LOG_LEVEL env or INFO)
        """
        setup_logging(log_level or EnvSettings().log_level)

        try:
            app = Application(_load(config))
            asyncio.run(app.run())
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)
        except KeyboardInterrupt:
            pass  # Handled by signal handlers

    def validate(self, config: str) -> None:
        """Validate config file without running.

        Args:
            config: Path to YAML config file
        """
        config_path = Path(config)
        try:
            cfg = load_config_or_default(config_path)
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)

        print(f"✓ Config valid: {config_path}")
        print(f"  Listen: {cfg.server.host}:{cfg.server.port}")
        print(f"  Media root: {cfg.storage.media_root}")
        print(f"  Encoder: {cfg.encoder.ffmpeg_path} @ {cfg.encoder.frame_rate:g} fps")
        print(f"  Min frames for video: {cfg.encoder.min_frames}")
        print(f"  Reject uploads after end: {cfg.clips.reject_uploads_after_end}")

    def make_video(
        self,
        clip_id: str,
        config: str | None = None,
        fps: float | None = None,
        log_level: str = "INFO",
    ) -> None:
        """Assemble a stored clip's frames into its video file.

        Args:
            clip_id: Clip to encode
            config: Optional path to YAML config file
            fps: Frame rate override
            log_level: Logging level
        """
        setup_logging(log_level)
        try:
            app = Application(_load(config))
            result = asyncio.run(app.service.make_video(clip_id, frame_rate=fps))
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)
        except ClipcastError as e:
            print(f"✗ {e}", file=sys.stderr)
            sys.exit(1)
        print(f"✓ Video created: {result.output_path} ({result.frame_count} frames)")

    def list_clips(self, config: str | None = None) -> None:
        """Print stored clips, newest first.

        Args:
            config: Optional path to YAML config file
        """
        try:
            app = Application(_load(config))
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)

        for summary in asyncio.run(app.service.list_clips()):
            meta = summary.metadata
            started = meta.started_at.isoformat() if meta.started_at else "-"
            print(
                f"{meta.clip_id}  {started}  {meta.status.value:<5}  "
                f"frames={summary.frame_count}  device={meta.device_id}  reason={meta.reason}"
            )


def main() -> None:
    """Main CLI entrypoint."""
    # Strip --help/-h when it's the only arg so Fire shows its commands list
    if len(sys.argv) == 2 and sys.argv[1] in ("--help", "-h"):
        sys.argv.pop()
    fire.Fire(Clipcast)


if __name__ == "__main__":
    main()
