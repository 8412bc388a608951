"""ffmpeg-backed video assembly."""

from __future__ import annotations

import asyncio
import logging
import os
import secrets
import shlex
from collections.abc import Sequence
from contextlib import suppress
from pathlib import Path

from clipcast.errors import EncodingError, EncodingTimeoutError, InsufficientFramesError
from clipcast.interfaces import VideoEncoder
from clipcast.models.clip import VideoResult
from clipcast.models.config import EncoderConfig, RetryConfig
from clipcast.storage.paths import MANIFEST_FILE

logger = logging.getLogger(__name__)

_STDERR_TAIL_BYTES = 4000
MANIFEST_STEM, MANIFEST_SUFFIX = os.path.splitext(MANIFEST_FILE)


def _format_cmd(cmd: Sequence[str]) -> str:
    return shlex.join([str(x) for x in cmd])


def _quote_concat_path(path: Path) -> str:
    # concat demuxer: close the quote, emit an escaped quote, reopen.
    return "'" + path.as_posix().replace("'", "'\\''") + "'"


def build_manifest(frame_paths: Sequence[Path], frame_rate: float) -> str:
    """Build a concat-demuxer manifest listing each frame once, in order."""
    duration = 1.0 / frame_rate
    lines: list[str] = []
    for path in frame_paths:
        lines.append(f"file {_quote_concat_path(path.resolve())}")
        lines.append(f"duration {duration:.6f}")
    return "\n".join(lines) + "\n"


def parse_manifest(text: str) -> list[str]:
    """Return the file paths referenced by a manifest, in order."""
    paths: list[str] = []
    for line in text.splitlines():
        if not line.startswith("file "):
            continue
        quoted = line[len("file ") :].strip()
        if quoted.startswith("'") and quoted.endswith("'"):
            quoted = quoted[1:-1].replace("'\\''", "'")
        paths.append(quoted)
    return paths


def _scratch_paths(output_path: Path) -> tuple[Path, Path]:
    """Per-call manifest and partial output beside `output_path`.

    The partial keeps the output's extension so ffmpeg still infers the container.
    """
    token = secrets.token_hex(6)
    folder = output_path.parent
    manifest_path = folder / f".{MANIFEST_STEM}.{token}{MANIFEST_SUFFIX}"
    partial_path = folder / f".{output_path.stem}.{token}.partial{output_path.suffix}"
    return manifest_path, partial_path


def _unlink_quietly(path: Path) -> None:
    with suppress(FileNotFoundError):
        path.unlink()


def _tail(data: bytes, max_bytes: int = _STDERR_TAIL_BYTES) -> str:
    if len(data) <= max_bytes:
        return data.decode(errors="replace")
    return data[-max_bytes:].decode(errors="replace")


class FfmpegEncoder(VideoEncoder):
    """Runs ffmpeg out of line from request handling to encode stills into MP4."""

    def __init__(self, config: EncoderConfig, retry: RetryConfig | None = None) -> None:
        self._config = config
        self._retry = retry or RetryConfig()
        self._max_attempts = max(1, int(self._retry.max_attempts))
        self._backoff_s = max(0.0, float(self._retry.backoff_s))

    @property
    def min_frames(self) -> int:
        return self._config.min_frames

    def build_command(self, manifest_path: Path, output_path: Path, frame_rate: float) -> list[str]:
        cmd = [
            self._config.ffmpeg_path,
            "-y",
            "-loglevel",
            "error",
            "-f",
            "concat",
            "-safe",
            "0",
            "-i",
            str(manifest_path),
            "-vf",
            f"fps={frame_rate:g}",
            "-pix_fmt",
            self._config.pixel_format,
        ]
        cmd.extend(self._config.extra_output_args)
        cmd.append(str(output_path))
        return cmd

    async def assemble(
        self,
        frame_paths: Sequence[Path],
        output_path: Path,
        frame_rate: float,
        *,
        clip_id: str | None = None,
    ) -> VideoResult:
        if len(frame_paths) < self.min_frames:
            raise InsufficientFramesError(len(frame_paths), self.min_frames, clip_id=clip_id)
        if frame_rate <= 0:
            raise ValueError(f"frame_rate must be positive, got {frame_rate}")

        manifest_path, partial_path = _scratch_paths(output_path)
        manifest = build_manifest(frame_paths, frame_rate)
        await asyncio.to_thread(output_path.parent.mkdir, parents=True, exist_ok=True)

        cmd = self.build_command(manifest_path, partial_path, frame_rate)
        logger.info(
            "Assembling %d frames at %g fps into %s",
            len(frame_paths),
            frame_rate,
            output_path,
            extra={"clip_id": clip_id},
        )
        logger.debug("ffmpeg command: %s", _format_cmd(cmd), extra={"clip_id": clip_id})

        try:
            await asyncio.to_thread(manifest_path.write_text, manifest, encoding="utf-8")
            await self._run_with_retries(cmd, partial_path, clip_id=clip_id)
            # Only a finished encode replaces the published video.
            await asyncio.to_thread(os.replace, partial_path, output_path)
        except OSError as exc:
            raise EncodingError(
                f"Failed to publish encoder output: {exc}",
                output=str(exc),
                clip_id=clip_id,
                cause=exc,
            ) from exc
        finally:
            await asyncio.to_thread(_unlink_quietly, partial_path)
            await asyncio.to_thread(_unlink_quietly, manifest_path)

        logger.info("Video created: %s", output_path, extra={"clip_id": clip_id})
        return VideoResult(
            output_path=output_path,
            frame_count=len(frame_paths),
            frame_rate=frame_rate,
        )

    async def _run_with_retries(
        self, cmd: list[str], output_path: Path, *, clip_id: str | None
    ) -> None:
        attempt = 1
        while True:
            try:
                await self._run(cmd, output_path, clip_id=clip_id)
                return
            except EncodingTimeoutError:
                raise
            except EncodingError as exc:
                if attempt >= self._max_attempts:
                    raise
                logger.warning(
                    "Encoding failed (attempt %d/%d): %s",
                    attempt,
                    self._max_attempts,
                    exc,
                    extra={"clip_id": clip_id},
                )
                delay = self._backoff_s * (2 ** (attempt - 1))
                if delay > 0:
                    await asyncio.sleep(delay)
                attempt += 1

    async def _run(self, cmd: list[str], output_path: Path, *, clip_id: str | None) -> None:
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise EncodingError(
                f"Failed to start encoder: {exc}",
                output=str(exc),
                clip_id=clip_id,
                cause=exc,
            ) from exc

        timeout_s = self._config.timeout_s
        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_s)
        except asyncio.TimeoutError:
            with suppress(ProcessLookupError):
                proc.kill()
            _, stderr = await proc.communicate()
            raise EncodingTimeoutError(
                timeout_s or 0.0,
                output=_tail(stderr or b""),
                clip_id=clip_id,
            ) from None

        output = _tail(stderr or b"")
        if proc.returncode != 0:
            logger.error(
                "ffmpeg exited with code %s:\n%s",
                proc.returncode,
                output,
                extra={"clip_id": clip_id},
            )
            raise EncodingError(
                output.strip() or f"Encoder exited with code {proc.returncode}",
                output=output,
                returncode=proc.returncode,
                clip_id=clip_id,
            )

        exists = await asyncio.to_thread(output_path.is_file)
        if not exists:
            raise EncodingError(
                "Encoder produced no output file",
                output=output,
                returncode=proc.returncode,
                clip_id=clip_id,
            )
