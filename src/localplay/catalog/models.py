"""Catalog data models: collections, sections, and items."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


class CaptionRef(BaseModel):
    """Location of a caption file matched to an item.

    Attributes:
        path: Absolute path of the caption file.
        source_name: Caption file name as found on disk.
    """

    path: str
    source_name: str


class _Sortable(BaseModel):
    sort_key: Optional[int] = None
    sort_label: str = ""

    @property
    def ordering(self) -> float:
        """Return the sort key, or infinity when the name has no numeric prefix."""
        return math.inf if self.sort_key is None else self.sort_key


class Item(_Sortable):
    """A single playable media file.

    Attributes:
        id: Identifier derived from collection, section, and file names.
        display_name: Cleaned name without extension or numeric prefix.
        source_name: File name as found on disk.
        path: Absolute path of the media file.
        size_bytes: File size at ingestion time.
        duration_seconds: Probed duration, 0 when probing failed.
        preview_image: JPEG data URL of a still frame, when generated.
        caption_ref: Matched caption file, when one exists.
    """

    id: str
    display_name: str
    source_name: str
    path: str
    size_bytes: int = 0
    duration_seconds: float = 0.0
    preview_image: Optional[str] = None
    caption_ref: Optional[CaptionRef] = None

    def correct_duration(self, duration_seconds: float) -> bool:
        """Fill in a duration that probing could not determine.

        Returns:
            bool: True when the stored duration changed.
        """
        if self.duration_seconds > 0:
            return False
        if not math.isfinite(duration_seconds) or duration_seconds <= 0:
            return False
        self.duration_seconds = float(duration_seconds)
        return True


class Section(_Sortable):
    """A direct subfolder of a collection holding one or more items."""

    id: str
    display_name: str
    source_name: str
    items: List[Item] = Field(default_factory=list)
    item_count: int = 0
    total_duration_seconds: float = 0.0
    preview_image: Optional[str] = None

    def refresh_totals(self) -> None:
        self.item_count = len(self.items)
        self.total_duration_seconds = sum(item.duration_seconds for item in self.items)


class Collection(BaseModel):
    """Root of one ingested folder tree."""

    id: str
    display_name: str
    source_name: str
    sections: List[Section] = Field(default_factory=list)
    section_count: int = 0
    item_count: int = 0
    total_duration_seconds: float = 0.0
    capability_id: str
    last_accessed: Optional[datetime] = None

    def refresh_totals(self) -> None:
        """Recompute counts and durations bottom-up from the items."""
        for section in self.sections:
            section.refresh_totals()
        self.section_count = len(self.sections)
        self.item_count = sum(section.item_count for section in self.sections)
        self.total_duration_seconds = sum(
            section.total_duration_seconds for section in self.sections
        )

    def iter_items(self):
        for section in self.sections:
            yield from section.items

    def find_item(self, item_id: str) -> Optional[Item]:
        return next((item for item in self.iter_items() if item.id == item_id), None)

    def find_section(self, section_id: str) -> Optional[Section]:
        return next((section for section in self.sections if section.id == section_id), None)

    def touch(self) -> None:
        self.last_accessed = datetime.now(timezone.utc)


__all__ = ["CaptionRef", "Item", "Section", "Collection"]
