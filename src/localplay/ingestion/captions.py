"""Caption sidecar matching and SRT parsing."""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path, PurePath
from typing import Iterable

from localplay.capabilities import DirectoryHandle, FileHandle
from localplay.catalog.models import CaptionRef

from .models import CaptionCue, CaptionResult
from .naming import strip_extension

LOGGER = logging.getLogger(__name__)

_TIMING = re.compile(
    r"(?P<start>(?:\d{1,2}:)?\d{2}:\d{2}[,.]\d{1,3})\s*-->\s*(?P<end>(?:\d{1,2}:)?\d{2}:\d{2}[,.]\d{1,3})"
)
_BLOCK_SPLIT = re.compile(r"\r?\n\s*\r?\n")


class CaptionMatcher:
    """Find an item's caption in its section's ``{section}_subtitles`` sidecar folder.

    The caption's name without extension must equal the item's name without
    extension, case included. When several files qualify (``Intro.srt`` and
    ``Intro.vtt``), extensions earlier in ``caption_extensions`` win, then
    the lexicographically smaller file name.
    """

    def __init__(
        self,
        *,
        caption_extensions: Iterable[str] = (".srt", ".vtt"),
        sidecar_suffix: str = "_subtitles",
    ) -> None:
        self.caption_extensions = [ext.lower() for ext in caption_extensions]
        self.sidecar_suffix = sidecar_suffix

    def sidecar_name(self, section_source_name: str) -> str:
        return f"{section_source_name}{self.sidecar_suffix}"

    async def match(
        self,
        parent: DirectoryHandle,
        section_source_name: str,
        item_source_name: str,
    ) -> CaptionResult:
        """Look up the caption for ``item_source_name``.

        Args:
            parent: The collection root containing the section folder.
            section_source_name: Folder name of the item's section.
            item_source_name: File name of the item.

        Returns:
            CaptionResult: The matched reference, or why none was found.
        """
        try:
            sidecar = await parent.get_directory(self.sidecar_name(section_source_name))
        except (FileNotFoundError, NotADirectoryError, PermissionError):
            return CaptionResult(reason="no_sidecar")

        stem = strip_extension(item_source_name)
        candidates: list[FileHandle] = []
        try:
            async for entry in sidecar.entries():
                if isinstance(entry, FileHandle) and self._is_caption_for(entry.name, stem):
                    candidates.append(entry)
        except OSError as exc:
            LOGGER.debug("Could not list caption folder %s: %s", sidecar.path, exc)
            return CaptionResult(reason="no_sidecar")

        if not candidates:
            return CaptionResult(reason="no_match")
        chosen = min(candidates, key=self._preference)
        return CaptionResult(
            reason="matched",
            ref=CaptionRef(path=str(chosen.path), source_name=chosen.name),
        )

    async def load(self, ref: CaptionRef) -> list[CaptionCue]:
        """Read and parse the caption file referenced by ``ref``."""
        text = await asyncio.to_thread(_read_caption, Path(ref.path))
        return parse_srt(text)

    def _is_caption_for(self, name: str, stem: str) -> bool:
        suffix = PurePath(name).suffix.lower()
        return suffix in self.caption_extensions and name[: -len(suffix)] == stem

    def _preference(self, handle: FileHandle) -> tuple[int, str]:
        suffix = PurePath(handle.name).suffix.lower()
        return self.caption_extensions.index(suffix), handle.name


def _read_caption(path: Path) -> str:
    raw = path.read_bytes()
    for encoding in ("utf-8-sig", "cp1252"):
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    return raw.decode("latin-1")


def _timestamp_seconds(value: str) -> float:
    *head, seconds = value.replace(",", ".").split(":")
    total = float(seconds)
    for scale, part in zip((60, 3600), reversed(head)):
        total += int(part) * scale
    return total


def parse_srt(text: str) -> list[CaptionCue]:
    """Parse SubRip (and WebVTT-style) caption text into cues.

    Blocks without a timing line are skipped. Cue indices are renumbered
    from 1 in file order.
    """
    cues: list[CaptionCue] = []
    for block in _BLOCK_SPLIT.split(text.strip()):
        lines = [line.rstrip() for line in block.splitlines()]
        timing_at = next((i for i, line in enumerate(lines) if _TIMING.search(line)), None)
        if timing_at is None:
            continue
        timing = _TIMING.search(lines[timing_at])
        body = "\n".join(line for line in lines[timing_at + 1 :] if line).strip()
        cues.append(
            CaptionCue(
                index=len(cues) + 1,
                start_seconds=_timestamp_seconds(timing.group("start")),
                end_seconds=_timestamp_seconds(timing.group("end")),
                text=body,
            )
        )
    return cues


__all__ = ["CaptionMatcher", "parse_srt"]
