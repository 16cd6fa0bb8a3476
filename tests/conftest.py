"""Shared fixtures: a sample course folder, a fake decoder, and permission brokers."""

from __future__ import annotations

import asyncio
import io
from pathlib import Path
from typing import Optional

import pytest
from PIL import Image

from localplay.capabilities.handles import DirectoryHandle, PermissionState
from localplay.ingestion.decoders import DecodeError


class FakeDecoder:
    """Decoder double returning canned durations and solid-colour PNG frames."""

    def __init__(self) -> None:
        self.durations: dict[str, float] = {}
        self.failures: set[str] = set()
        self.delay = 0.0
        self.frame_size = (640, 360)
        self.frames_requested: list[tuple[str, float]] = []

    async def duration(self, path: Path) -> float:
        if self.delay:
            await asyncio.sleep(self.delay)
        if path.name in self.failures:
            raise DecodeError(f"cannot decode {path.name}")
        return self.durations.get(path.name, 60.0)

    async def frame(self, path: Path, at_seconds: float) -> bytes:
        self.frames_requested.append((path.name, at_seconds))
        buffer = io.BytesIO()
        Image.new("RGB", self.frame_size, (200, 40, 40)).save(buffer, format="PNG")
        return buffer.getvalue()


class UnlistableDirectory(DirectoryHandle):
    """Directory handle whose listing fails as an unreadable folder would."""

    async def entries(self):
        raise PermissionError(f"Permission denied: {self.path}")
        yield


class RootWithUnlistable(DirectoryHandle):
    """Root handle that hands out :class:`UnlistableDirectory` for chosen sections."""

    def __init__(self, path: Path, permissions, locked: set[str]) -> None:
        super().__init__(path, permissions)
        self.locked = locked

    async def entries(self):
        async for entry in super().entries():
            if entry.name in self.locked:
                yield UnlistableDirectory(entry.path, entry.permissions)
            else:
                yield entry


class StaticPermissions:
    """Permission broker with a fixed answer and a prompt counter."""

    def __init__(
        self, state: PermissionState = "granted", answer: Optional[PermissionState] = "granted"
    ) -> None:
        self.state = state
        self.answer = answer
        self.requests = 0

    async def query(self, path: Path) -> PermissionState:
        return self.state

    async def request(self, path: Path) -> Optional[PermissionState]:
        self.requests += 1
        if self.answer is not None:
            self.state = self.answer
        return self.answer


def _touch(path: Path, size: int = 16) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\0" * size)


@pytest.fixture
def course_root(tmp_path: Path) -> Path:
    """Return a course folder with two sections, captions, and noise to ignore."""
    root = tmp_path / "My_Course"
    _touch(root / "02-B" / "10-Wrap.mp4", 300)
    _touch(root / "02-B" / "2-Setup.mkv", 200)
    _touch(root / "01-A" / "01-Intro.mp4", 1024)
    _touch(root / "01-A" / "02-Next.mp4", 2048)
    _touch(root / "01-A" / "notes.txt")
    _touch(root / "01-A" / "extra" / "03-Hidden.mp4")
    (root / "01-A_subtitles").mkdir()
    (root / "01-A_subtitles" / "01-Intro.srt").write_text(
        "1\n00:00:01,000 --> 00:00:02,500\nHello\n", encoding="utf-8"
    )
    (root / "01-A_subtitles" / "01-Intro.vtt").write_text("WEBVTT\n", encoding="utf-8")
    _touch(root / "Resources" / "slides.pdf")
    _touch(root / "root-level.mp4")
    return root


@pytest.fixture
def decoder() -> FakeDecoder:
    return FakeDecoder()


@pytest.fixture
def granted() -> StaticPermissions:
    return StaticPermissions()


@pytest.fixture
def make_permissions():
    return StaticPermissions


@pytest.fixture
def unlistable_root():
    """Return a factory for root handles whose named sections cannot be listed."""

    def _factory(path: Path, permissions, *locked: str) -> RootWithUnlistable:
        return RootWithUnlistable(path, permissions, set(locked))

    return _factory
