"""Persistence for ingested collections."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from localplay.state import MissingStateError, StateError, Store

from .models import Collection

LOGGER = logging.getLogger(__name__)


class CatalogRepository:
    """Store collections keyed by collection id."""

    def __init__(self, store: Store) -> None:
        self._records = store.namespace("collections")

    async def save(self, collection: Collection) -> Collection:
        """Persist ``collection``, stamping ``last_accessed`` with the current time."""
        collection.touch()
        await self._records.put(collection.id, collection.model_dump(mode="json"))
        return collection

    async def get(self, collection_id: str) -> Collection | None:
        """Return the stored collection, or ``None`` when it is unknown.

        Raises:
            StateError: If the stored record no longer validates.
        """
        data = await self._records.get(collection_id)
        if data is None:
            return None
        return self._parse(data)

    async def load(self, collection_id: str) -> Collection:
        """Return the stored collection.

        Raises:
            MissingStateError: If no collection is stored under ``collection_id``.
            StateError: If the stored record cannot be parsed.
        """
        collection = await self.get(collection_id)
        if collection is None:
            raise MissingStateError(f"No collection stored with id {collection_id!r}.")
        return collection

    async def all(self) -> list[Collection]:
        """Return every stored collection, skipping records that no longer parse."""
        collections: list[Collection] = []
        for data in await self._records.all():
            try:
                collections.append(Collection.model_validate(data))
            except ValidationError as exc:
                LOGGER.warning("Skipping unreadable collection %s: %s", data.get("id"), exc)
        return collections

    async def delete(self, collection_id: str) -> bool:
        return await self._records.delete(collection_id)

    def _parse(self, data: dict) -> Collection:
        try:
            return Collection.model_validate(data)
        except ValidationError as exc:
            raise StateError(f"Invalid collection data for {data.get('id')}: {exc}") from exc


__all__ = ["CatalogRepository"]
