"""Playback session bookkeeping.

The session owns the live decode resource for the active item. It samples
progress while playback runs and guarantees the last position is recorded
before a resource is released, whether the item ends, is replaced by another
item, or the session closes.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Awaitable, Callable, Optional, Protocol

from localplay.catalog.models import Item

from .models import ProgressRecord
from .store import ProgressStore

LOGGER = logging.getLogger(__name__)


class PlaybackResource(Protocol):
    """Live decode/display resource for the item being played."""

    @property
    def position(self) -> float: ...

    @property
    def duration(self) -> float: ...

    @property
    def playing(self) -> bool: ...

    def close(self) -> None: ...


DurationCorrected = Callable[[Item], Awaitable[None]]


class PlaybackSession:
    """Track the active item and persist its progress."""

    def __init__(
        self,
        progress: ProgressStore,
        *,
        on_duration_corrected: Optional[DurationCorrected] = None,
        sample_interval_seconds: float = 5.0,
    ) -> None:
        self.progress = progress
        self.sample_interval_seconds = sample_interval_seconds
        self._on_duration_corrected = on_duration_corrected
        self._item: Optional[Item] = None
        self._resource: Optional[PlaybackResource] = None

    @property
    def item(self) -> Optional[Item]:
        return self._item

    @property
    def resource(self) -> Optional[PlaybackResource]:
        return self._resource

    async def start(self, item: Item, resource: PlaybackResource) -> Optional[ProgressRecord]:
        """Make ``item`` active and return its saved resume point, if any.

        Any previously active item is flushed and released first.
        """
        await self.release()
        self._item = item
        self._resource = resource
        await self._correct_duration()
        return await self.progress.get(item.id)

    async def switch(self, item: Item, resource: PlaybackResource) -> Optional[ProgressRecord]:
        """Replace the active item, recording the outgoing position first."""
        return await self.start(item, resource)

    async def sample(self) -> Optional[ProgressRecord]:
        """Record the active item's current position."""
        if self._item is None or self._resource is None:
            return None
        await self._correct_duration()
        duration = self._duration()
        return await self.progress.record(self._item.id, self._resource.position, duration)

    async def finish(self) -> Optional[ProgressRecord]:
        """Record the active item as watched to the end."""
        if self._item is None:
            return None
        return await self.progress.mark_complete(self._item.id, self._duration())

    async def release(self) -> None:
        """Flush progress for the active item and close its resource."""
        resource = self._resource
        if resource is None:
            self._item = None
            return
        try:
            await self.sample()
        finally:
            self._item = None
            self._resource = None
            resource.close()

    async def close(self) -> None:
        await self.release()

    async def run(self, interval_seconds: Optional[float] = None) -> None:
        """Sample progress on a fixed interval while the resource is playing.

        Runs until cancelled. Defaults to ``sample_interval_seconds``.
        """
        interval = interval_seconds or self.sample_interval_seconds
        while True:
            await asyncio.sleep(interval)
            if self._resource is not None and self._resource.playing:
                await self.sample()

    async def __aenter__(self) -> "PlaybackSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _duration(self) -> float:
        reported = self._resource.duration if self._resource is not None else 0.0
        if reported and math.isfinite(reported) and reported > 0:
            return reported
        return self._item.duration_seconds if self._item is not None else 0.0

    async def _correct_duration(self) -> None:
        if self._item is None or self._resource is None:
            return
        if self._item.correct_duration(self._resource.duration):
            LOGGER.debug("Corrected duration of %s to %.2fs", self._item.id, self._item.duration_seconds)
            if self._on_duration_corrected is not None:
                await self._on_duration_corrected(self._item)


__all__ = ["PlaybackResource", "PlaybackSession"]
