"""Application facade tying capabilities, ingestion, and progress together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from localplay.capabilities import (
    CapabilityDeniedError,
    CapabilityStore,
    DirectoryHandle,
    FilesystemPermissions,
    PermissionBroker,
    acquire,
)
from localplay.catalog import CatalogRepository, Collection, Item, Section
from localplay.config.models import LocalPlayConfig
from localplay.ingestion import CatalogBuilder, IngestionReport, MediaDecoder
from localplay.ingestion.models import CaptionCue
from localplay.progress import CompletionRule, PlaybackSession, ProgressStore
from localplay.state import MissingStateError, Store

LOGGER = logging.getLogger(__name__)


class Library:
    """Everything a front end needs to manage collections and progress.

    The library owns no global state: it is built around a single open
    :class:`Store` that is shared by every repository.
    """

    def __init__(
        self,
        store: Store,
        config: LocalPlayConfig,
        *,
        permissions: Optional[PermissionBroker] = None,
        decoder: Optional[MediaDecoder] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.permissions = permissions or FilesystemPermissions()
        self.capabilities = CapabilityStore(store, self.permissions)
        self.catalog = CatalogRepository(store)
        self.progress = ProgressStore(
            store,
            CompletionRule(
                fraction=config.progress.completion_fraction,
                remaining_seconds=config.progress.completion_remaining_seconds,
            ),
        )
        self.builder = CatalogBuilder.from_config(
            config,
            capabilities=self.capabilities,
            catalog=self.catalog,
            decoder=decoder,
        )

    @classmethod
    async def open(
        cls,
        config: LocalPlayConfig,
        *,
        permissions: Optional[PermissionBroker] = None,
        decoder: Optional[MediaDecoder] = None,
    ) -> "Library":
        """Open the configured store and build a library around it."""
        store = await Store.open(Path(config.storage.path).expanduser())
        return cls(store, config, permissions=permissions, decoder=decoder)

    # Collections -------------------------------------------------------

    async def add_folder(self, path: Path, report: Optional[IngestionReport] = None) -> Collection:
        """Ingest a user-picked folder as a collection.

        Raises:
            CapabilityAbandonedError: If the access prompt was dismissed.
            CapabilityDeniedError: If access was declined.
            EmptyCatalogError: If the folder has no sections with media.
            StoreUnavailableError: If the result cannot be persisted.
        """
        handle = await acquire(path, self.permissions)
        return await self.builder.ingest(handle, report)

    async def open_folder(self, collection_id: str) -> DirectoryHandle:
        """Return the stored folder handle after re-validating access.

        Raises:
            MissingStateError: If no capability is stored for the collection.
            CapabilityDeniedError: If access is no longer granted.
        """
        handle = await self.capabilities.restore(collection_id)
        if handle is None:
            raise MissingStateError(f"No folder access stored for {collection_id!r}.")
        if await self.capabilities.revalidate(handle) != "granted":
            raise CapabilityDeniedError(f"Access to {handle.path} was revoked.")
        return handle

    async def rescan(
        self, collection_id: str, report: Optional[IngestionReport] = None
    ) -> Collection:
        """Re-ingest a stored collection from its saved folder access."""
        handle = await self.open_folder(collection_id)
        return await self.builder.ingest(handle, report)

    async def collections(self) -> list[Collection]:
        return await self.catalog.all()

    async def collection(self, collection_id: str) -> Collection:
        return await self.catalog.load(collection_id)

    async def remove_collection(self, collection_id: str) -> bool:
        """Forget a collection, its progress, and its folder access."""
        collection = await self.catalog.get(collection_id)
        if collection is not None:
            await self.progress.reset_collection(collection)
        removed = await self.catalog.delete(collection_id)
        await self.capabilities.forget(collection_id)
        return removed or collection is not None

    async def find_item(self, item_id: str) -> tuple[Collection, Section, Item]:
        """Locate an item across all stored collections.

        Raises:
            MissingStateError: If no stored collection contains ``item_id``.
        """
        for collection in await self.collections():
            for section in collection.sections:
                for item in section.items:
                    if item.id == item_id:
                        return collection, section, item
        raise MissingStateError(f"No item with id {item_id!r}.")

    async def captions(self, item: Item) -> list[CaptionCue]:
        if item.caption_ref is None:
            return []
        return await self.builder.captions.load(item.caption_ref)

    # Progress ----------------------------------------------------------

    async def collection_progress(self, collection: Collection) -> int:
        return await self.progress.aggregate_for_collection(collection)

    async def section_progress(self, section: Section) -> int:
        return await self.progress.aggregate_for_section(section)

    async def recent(self, limit: int) -> list[tuple[Collection, Item]]:
        """Return recently watched items across all collections, newest first."""
        owners: dict[str, Collection] = {}
        items: list[Item] = []
        for collection in await self.collections():
            for item in collection.iter_items():
                owners[item.id] = collection
                items.append(item)
        recent = await self.progress.most_recently_watched(items, limit)
        return [(owners[item.id], item) for item in recent]

    def session(self, collection: Collection) -> PlaybackSession:
        """Create a playback session that persists late duration corrections."""

        async def _save_correction(item: Item) -> None:
            collection.refresh_totals()
            await self.catalog.save(collection)

        return PlaybackSession(
            self.progress,
            on_duration_corrected=_save_correction,
            sample_interval_seconds=self.config.progress.sample_interval_seconds,
        )


__all__ = ["Library"]
