"""Video assembly adapters."""

from clipcast.encoding.ffmpeg import FfmpegEncoder, build_manifest, parse_manifest

__all__ = ["FfmpegEncoder", "build_manifest", "parse_manifest"]
