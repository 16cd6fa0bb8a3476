"""Duration and preview probing tests."""

from __future__ import annotations

import asyncio
import base64
import io
import os
import time
from pathlib import Path

import pytest
from PIL import Image

from localplay.capabilities import FileHandle
from localplay.ingestion import MetadataProbe
from localplay.ingestion.decoders import DecoderUnavailableError, FFmpegDecoder
from localplay.ingestion.extractors import preview_seek_point


def _file(tmp_path: Path, granted, name: str = "clip.mp4") -> FileHandle:
    path = tmp_path / name
    path.write_bytes(b"\0")
    return FileHandle(path, granted)


def _decode_preview(data_url: str) -> Image.Image:
    prefix = "data:image/jpeg;base64,"
    assert data_url.startswith(prefix)
    return Image.open(io.BytesIO(base64.b64decode(data_url[len(prefix) :])))


@pytest.mark.parametrize(
    ("duration", "expected"),
    [(600.0, 10.0), (10.5, 10.0), (10.0, 1.0), (30.0, 10.0), (8.0, 0.8), (0.0, 0.0)],
)
def test_preview_seek_point(duration: float, expected: float) -> None:
    assert preview_seek_point(duration) == pytest.approx(expected)


def test_probe_returns_duration_and_downscaled_preview(tmp_path: Path, granted, decoder) -> None:
    decoder.durations["clip.mp4"] = 125.0
    probe = MetadataProbe(decoder)

    result = asyncio.run(probe.probe(_file(tmp_path, granted)))

    assert result.ok
    assert result.duration_seconds == pytest.approx(125.0)
    assert decoder.frames_requested == [("clip.mp4", 10.0)]
    with _decode_preview(result.preview_image) as image:
        assert image.format == "JPEG"
        assert image.size == (320, 180)


def test_small_frames_are_not_upscaled(tmp_path: Path, granted, decoder) -> None:
    decoder.frame_size = (160, 90)

    result = asyncio.run(MetadataProbe(decoder).probe(_file(tmp_path, granted)))

    with _decode_preview(result.preview_image) as image:
        assert image.size == (160, 90)


def test_probe_without_preview_skips_frame(tmp_path: Path, granted, decoder) -> None:
    result = asyncio.run(MetadataProbe(decoder).probe(_file(tmp_path, granted), want_preview=False))

    assert result.ok
    assert result.preview_image is None
    assert decoder.frames_requested == []


def test_decode_error_degrades_to_zero_duration(tmp_path: Path, granted, decoder) -> None:
    decoder.failures.add("clip.mp4")

    result = asyncio.run(MetadataProbe(decoder).probe(_file(tmp_path, granted)))

    assert not result.ok
    assert result.reason == "decode_error"
    assert result.duration_seconds == 0.0
    assert result.preview_image is None


def test_probe_times_out(tmp_path: Path, granted, decoder) -> None:
    decoder.delay = 1.0
    probe = MetadataProbe(decoder, timeout_seconds=0.05)

    result = asyncio.run(probe.probe(_file(tmp_path, granted)))

    assert not result.ok
    assert result.reason == "probe_timeout"


def test_missing_tools_report_missing_tool(tmp_path: Path, granted) -> None:
    decoder = FFmpegDecoder()
    decoder._ffprobe = None
    decoder._ffmpeg = None

    result = asyncio.run(MetadataProbe(decoder).probe(_file(tmp_path, granted)))

    assert not decoder.available
    assert result.reason == "missing_tool"


def test_ffmpeg_decoder_raises_when_tool_missing(tmp_path: Path) -> None:
    decoder = FFmpegDecoder()
    decoder._ffprobe = None

    with pytest.raises(DecoderUnavailableError):
        asyncio.run(decoder.duration(tmp_path / "clip.mp4"))


def test_unreadable_frame_keeps_duration(tmp_path: Path, granted, decoder) -> None:
    decoder.durations["clip.mp4"] = 42.0

    async def broken_frame(path: Path, at_seconds: float) -> bytes:
        return b"not an image"

    decoder.frame = broken_frame

    result = asyncio.run(MetadataProbe(decoder).probe(_file(tmp_path, granted)))

    assert result.ok
    assert result.duration_seconds == pytest.approx(42.0)
    assert result.preview_image is None


def test_missing_frame_tool_keeps_duration(tmp_path: Path, granted, decoder) -> None:
    async def no_ffmpeg(path: Path, at_seconds: float) -> bytes:
        raise DecoderUnavailableError("ffmpeg not found")

    decoder.frame = no_ffmpeg

    result = asyncio.run(MetadataProbe(decoder).probe(_file(tmp_path, granted)))

    assert result.ok
    assert result.duration_seconds == pytest.approx(60.0)
    assert result.preview_image is None


def test_slow_frame_still_times_out(tmp_path: Path, granted, decoder) -> None:
    async def slow_frame(path: Path, at_seconds: float) -> bytes:
        await asyncio.sleep(1.0)
        return b""

    decoder.frame = slow_frame

    result = asyncio.run(MetadataProbe(decoder, timeout_seconds=0.05).probe(_file(tmp_path, granted)))

    assert result.reason == "probe_timeout"


@pytest.mark.skipif(os.name != "posix", reason="requires a POSIX shell")
def test_ffmpeg_decoder_kills_child_on_timeout(tmp_path: Path, granted) -> None:
    pid_file = tmp_path / "child.pid"
    script = tmp_path / "slow-ffprobe"
    script.write_text(f"#!/bin/sh\necho $$ > {pid_file}\nexec sleep 30\n", encoding="utf-8")
    script.chmod(0o755)
    decoder = FFmpegDecoder(str(script), str(script))

    result = asyncio.run(
        MetadataProbe(decoder, timeout_seconds=1.0).probe(_file(tmp_path, granted))
    )

    assert result.reason == "probe_timeout"
    pid = int(pid_file.read_text(encoding="utf-8").strip())
    deadline = time.monotonic() + 5.0
    while _alive(pid) and time.monotonic() < deadline:
        time.sleep(0.05)
    assert not _alive(pid)


def _alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True
