"""Durable playback progress and roll-up queries."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from localplay.catalog.models import Collection, Item, Section
from localplay.state import Store

from .models import ProgressRecord

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionRule:
    """Decide whether a progress record counts as watched.

    A record is complete when its watched fraction is strictly greater than
    ``fraction`` or fewer than ``remaining_seconds`` are left. The remaining
    time rule only applies when the duration is known.
    """

    fraction: float = 0.95
    remaining_seconds: float = 5.0

    def is_complete(self, record: ProgressRecord | None) -> bool:
        """Return whether ``record`` counts as watched.

        Args:
            record: Stored progress, or ``None`` for an unwatched item.

        Returns:
            bool: ``True`` past the fraction threshold or inside the remaining window.
        """
        if record is None:
            return False
        if record.fraction_watched > self.fraction:
            return True
        if record.duration_seconds <= 0:
            return False
        return record.duration_seconds - record.position_seconds < self.remaining_seconds


DEFAULT_RULE = CompletionRule()

Records = Mapping[str, ProgressRecord]


def index_records(records: Iterable[ProgressRecord]) -> dict[str, ProgressRecord]:
    """Key records by item id."""
    return {record.item_id: record for record in records}


def completion_percentage(
    items: Sequence[Item], records: Records, rule: CompletionRule = DEFAULT_RULE
) -> int:
    """Return ``round(100 * completed / total)`` for ``items``; 0 when empty.

    Halves round up, so 1 of 8 completed reports 13.
    """
    if not items:
        return 0
    completed = sum(1 for item in items if rule.is_complete(records.get(item.id)))
    return math.floor(100 * completed / len(items) + 0.5)


def aggregate_for_section(
    section: Section, records: Records, rule: CompletionRule = DEFAULT_RULE
) -> int:
    return completion_percentage(section.items, records, rule)


def aggregate_for_collection(
    collection: Collection, records: Records, rule: CompletionRule = DEFAULT_RULE
) -> int:
    return completion_percentage(list(collection.iter_items()), records, rule)


def most_recently_watched(items: Iterable[Item], records: Records, limit: int) -> list[Item]:
    """Return up to ``limit`` items watched recently, newest first.

    Items whose record has ``last_watched_at == 0`` or no record are excluded.
    """
    watched = [
        (records[item.id].last_watched_at, position, item)
        for position, item in enumerate(items)
        if item.id in records and records[item.id].last_watched_at > 0
    ]
    watched.sort(key=lambda entry: (-entry[0], entry[1]))
    return [item for _, _, item in watched[: max(0, limit)]]


class ProgressStore:
    """Persist one progress record per item id."""

    def __init__(self, store: Store, rule: CompletionRule = DEFAULT_RULE) -> None:
        self._records = store.namespace("progress")
        self.rule = rule

    async def record(
        self, item_id: str, position_seconds: float, duration_seconds: float
    ) -> ProgressRecord:
        """Upsert the position for ``item_id`` and stamp it as watched now."""
        record = ProgressRecord.create(item_id, position_seconds, duration_seconds)
        await self._records.put(item_id, record.model_dump(mode="json"))
        return record

    async def mark_complete(self, item_id: str, duration_seconds: float) -> ProgressRecord:
        """Record ``item_id`` as watched to the end."""
        record = ProgressRecord.completed(item_id, duration_seconds)
        await self._records.put(item_id, record.model_dump(mode="json"))
        return record

    async def clear(self, item_id: str) -> None:
        """Delete the record so the item starts from the beginning."""
        await self._records.delete(item_id)

    async def clear_recency(self, item_id: str) -> ProgressRecord | None:
        """Hide ``item_id`` from recency views, keeping its resume position."""
        record = await self.get(item_id)
        if record is None:
            return None
        updated = record.model_copy(update={"last_watched_at": 0})
        await self._records.put(item_id, updated.model_dump(mode="json"))
        return updated

    async def get(self, item_id: str) -> ProgressRecord | None:
        """Return the progress stored for ``item_id``, or ``None`` if never watched."""
        data = await self._records.get(item_id)
        return ProgressRecord.model_validate(data) if data is not None else None

    async def get_all(self) -> list[ProgressRecord]:
        """Return every stored progress record."""
        return [ProgressRecord.model_validate(data) for data in await self._records.all()]

    async def records_by_item(self) -> dict[str, ProgressRecord]:
        return index_records(await self.get_all())

    def is_complete(self, record: ProgressRecord | None) -> bool:
        """Apply this store's :class:`CompletionRule` to ``record``."""
        return self.rule.is_complete(record)

    async def aggregate_for_section(self, section: Section) -> int:
        return aggregate_for_section(section, await self.records_by_item(), self.rule)

    async def aggregate_for_collection(self, collection: Collection) -> int:
        return aggregate_for_collection(collection, await self.records_by_item(), self.rule)

    async def most_recently_watched(self, items: Iterable[Item], limit: int) -> list[Item]:
        return most_recently_watched(items, await self.records_by_item(), limit)

    # Bulk operations ---------------------------------------------------

    async def reset_items(self, items: Iterable[Item]) -> int:
        """Delete progress for every item; return how many records existed."""
        return await self._records.delete_many(item.id for item in items)

    async def complete_items(self, items: Iterable[Item]) -> list[ProgressRecord]:
        """Mark every item as fully watched."""
        records = [ProgressRecord.completed(item.id, item.duration_seconds) for item in items]
        await self._records.put_many(
            (record.item_id, record.model_dump(mode="json")) for record in records
        )
        return records

    async def reset_section(self, section: Section) -> int:
        return await self.reset_items(section.items)

    async def complete_section(self, section: Section) -> list[ProgressRecord]:
        return await self.complete_items(section.items)

    async def reset_collection(self, collection: Collection) -> int:
        return await self.reset_items(collection.iter_items())

    async def complete_collection(self, collection: Collection) -> list[ProgressRecord]:
        return await self.complete_items(collection.iter_items())

    async def clear_section_recency(self, section: Section) -> int:
        """Hide every item of ``section`` from recency views."""
        current = await self.records_by_item()
        updates = [
            current[item.id].model_copy(update={"last_watched_at": 0})
            for item in section.items
            if item.id in current and current[item.id].last_watched_at != 0
        ]
        if updates:
            await self._records.put_many(
                (record.item_id, record.model_dump(mode="json")) for record in updates
            )
        return len(updates)


__all__ = [
    "CompletionRule",
    "DEFAULT_RULE",
    "ProgressStore",
    "index_records",
    "completion_percentage",
    "aggregate_for_section",
    "aggregate_for_collection",
    "most_recently_watched",
]
