"""Playback progress records."""

from __future__ import annotations

import time

from pydantic import BaseModel


def now_millis() -> int:
    return int(time.time() * 1000)


def watched_fraction(position_seconds: float, duration_seconds: float) -> float:
    """Return ``position / duration`` clamped to ``[0, 1]``; 0 for unknown durations."""
    if duration_seconds <= 0:
        return 0.0
    return min(1.0, max(0.0, position_seconds / duration_seconds))


class ProgressRecord(BaseModel):
    """Last known playback position for one item.

    Attributes:
        item_id: Identifier of the item the position belongs to.
        position_seconds: Resume position.
        duration_seconds: Item duration reported at recording time.
        fraction_watched: ``position / duration`` clamped to ``[0, 1]``.
        last_watched_at: Epoch milliseconds of the last update; 0 hides the
            record from recency views while keeping the position.
    """

    item_id: str
    position_seconds: float
    duration_seconds: float
    fraction_watched: float
    last_watched_at: int

    @classmethod
    def create(
        cls,
        item_id: str,
        position_seconds: float,
        duration_seconds: float,
        last_watched_at: int | None = None,
    ) -> "ProgressRecord":
        return cls(
            item_id=item_id,
            position_seconds=position_seconds,
            duration_seconds=duration_seconds,
            fraction_watched=watched_fraction(position_seconds, duration_seconds),
            last_watched_at=now_millis() if last_watched_at is None else last_watched_at,
        )

    @classmethod
    def completed(cls, item_id: str, duration_seconds: float) -> "ProgressRecord":
        """Return a fully watched record, even when the duration is unknown."""
        record = cls.create(item_id, duration_seconds, duration_seconds)
        if duration_seconds <= 0:
            record.fraction_watched = 1.0
        return record

    @property
    def percentage(self) -> float:
        return self.fraction_watched * 100


__all__ = ["ProgressRecord", "now_millis", "watched_fraction"]
