"""Media decode surface used for probing durations and grabbing frames."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import shutil
from pathlib import Path
from typing import Optional, Protocol, Sequence

LOGGER = logging.getLogger(__name__)


class DecodeError(Exception):
    """Raised when a media file cannot be decoded."""


class DecoderUnavailableError(DecodeError):
    """Raised when the external decoding tools are not installed."""


class MediaDecoder(Protocol):
    """Minimal decoding capability needed to probe a media file."""

    async def duration(self, path: Path) -> float:
        """Return the playable duration in seconds."""
        ...

    async def frame(self, path: Path, at_seconds: float) -> bytes:
        """Return one decoded frame at ``at_seconds`` as encoded image bytes."""
        ...


class FFmpegDecoder:
    """Decode media with the ``ffprobe`` and ``ffmpeg`` command line tools.

    Every subprocess is killed and reaped before the call returns, including
    when the awaiting task is cancelled by a probe timeout.
    """

    def __init__(self, ffprobe_path: Optional[str] = None, ffmpeg_path: Optional[str] = None) -> None:
        self._ffprobe = ffprobe_path or shutil.which("ffprobe")
        self._ffmpeg = ffmpeg_path or shutil.which("ffmpeg")

    @property
    def available(self) -> bool:
        return bool(self._ffprobe and self._ffmpeg)

    async def duration(self, path: Path) -> float:
        if not self._ffprobe:
            raise DecoderUnavailableError("ffprobe not found")
        stdout = await _run(
            [self._ffprobe, "-v", "error", "-show_format", "-of", "json", str(path)]
        )
        try:
            payload = json.loads(stdout.decode("utf-8", errors="replace") or "{}")
            value = float(payload["format"]["duration"])
        except (ValueError, KeyError, TypeError) as exc:
            raise DecodeError(f"No duration reported for {path.name}") from exc
        if not math.isfinite(value) or value < 0:
            raise DecodeError(f"Invalid duration {value!r} for {path.name}")
        return value

    async def frame(self, path: Path, at_seconds: float) -> bytes:
        if not self._ffmpeg:
            raise DecoderUnavailableError("ffmpeg not found")
        args = [self._ffmpeg, "-hide_banner", "-loglevel", "error"]
        if at_seconds > 0:
            args.extend(["-ss", f"{at_seconds:.3f}"])
        args.extend(
            ["-i", str(path), "-frames:v", "1", "-f", "image2pipe", "-vcodec", "png", "pipe:1"]
        )
        data = await _run(args)
        if not data:
            raise DecodeError(f"No frame decoded for {path.name} at {at_seconds:.2f}s")
        return data


async def _run(args: Sequence[str]) -> bytes:
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise DecoderUnavailableError(f"{args[0]} not found") from exc
    try:
        stdout, stderr = await process.communicate()
    finally:
        if process.returncode is None:
            process.kill()
            await process.wait()
    if process.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip().splitlines()
        raise DecodeError(detail[-1] if detail else f"{Path(args[0]).name} exited {process.returncode}")
    return stdout


__all__ = ["DecodeError", "DecoderUnavailableError", "MediaDecoder", "FFmpegDecoder"]
