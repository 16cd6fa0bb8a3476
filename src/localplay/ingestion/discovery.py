"""Collection folder discovery."""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import AsyncIterator, Iterable

from localplay.capabilities import DirectoryHandle, FileHandle

from .models import RawItem, RawSection

LOGGER = logging.getLogger(__name__)


class TreeWalker:
    """Enumerate a collection root one level deep into sections and items.

    Direct subdirectories of the root are sections and recognized media files
    inside them are items. Files at the root, caption sidecar folders, and
    anything nested deeper are ignored. Results come back in filesystem order.
    """

    def __init__(
        self,
        *,
        media_extensions: Iterable[str],
        caption_dir_suffix: str,
        include_hidden: bool = False,
    ) -> None:
        self.media_extensions = frozenset(ext.lower() for ext in media_extensions)
        self.caption_dir_suffix = caption_dir_suffix
        self.include_hidden = include_hidden

    def is_media_file(self, name: str) -> bool:
        """Return whether ``name`` carries one of the configured media extensions.

        The comparison ignores case, so ``Lecture.MKV`` matches ``.mkv``.
        """
        return PurePath(name).suffix.lower() in self.media_extensions

    def is_caption_sidecar(self, name: str) -> bool:
        return bool(self.caption_dir_suffix) and name.endswith(self.caption_dir_suffix)

    async def enumerate(self, root: DirectoryHandle) -> AsyncIterator[RawSection]:
        """Yield a :class:`RawSection` for each eligible subdirectory of ``root``."""
        async for entry in root.entries():
            if not isinstance(entry, DirectoryHandle):
                continue
            if self._hidden(entry.name) or self.is_caption_sidecar(entry.name):
                continue
            yield RawSection(
                source_name=entry.name,
                capability=entry,
                raw_items=self._items(entry),
            )

    async def _items(self, section: DirectoryHandle) -> AsyncIterator[RawItem]:
        try:
            files = [entry async for entry in section.entries() if isinstance(entry, FileHandle)]
        except OSError as exc:
            LOGGER.debug("Skipping unreadable section %s: %s", section.path, exc)
            return
        for entry in files:
            if self._hidden(entry.name) or not self.is_media_file(entry.name):
                continue
            try:
                size = await entry.size()
            except OSError as exc:
                LOGGER.debug("Skipping unreadable file %s: %s", entry.path, exc)
                continue
            yield RawItem(source_name=entry.name, file_capability=entry, size_bytes=size)

    def _hidden(self, name: str) -> bool:
        return not self.include_hidden and name.startswith(".")


__all__ = ["TreeWalker"]
