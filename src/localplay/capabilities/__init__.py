"""Persistence and re-validation of user-granted folder access."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from localplay.state import Store

from .errors import CapabilityAbandonedError, CapabilityDeniedError, CapabilityError
from .handles import (
    DirectoryHandle,
    FileHandle,
    FilesystemPermissions,
    PermissionBroker,
    PermissionState,
)
from .models import CapabilityRecord, CapabilitySummary

LOGGER = logging.getLogger(__name__)

Validity = Literal["granted", "revoked"]


class CapabilityStore:
    """Keep one directory capability per collection across sessions."""

    def __init__(self, store: Store, permissions: PermissionBroker | None = None) -> None:
        """Initialize the capability store.

        Args:
            store: Open durable store.
            permissions: Broker given to handles rebuilt by :meth:`restore`.
        """
        self._records = store.namespace("capabilities")
        self._permissions = permissions or FilesystemPermissions()

    async def persist(
        self,
        collection_id: str,
        capability: DirectoryHandle,
        summary: CapabilitySummary,
    ) -> CapabilityRecord:
        """Store ``capability`` for ``collection_id``, replacing any prior entry."""
        record = CapabilityRecord(
            id=collection_id,
            kind=capability.kind,
            path=str(capability.path),
            summary=summary,
        )
        await self._records.put(collection_id, record.model_dump(mode="json"))
        LOGGER.debug("Stored capability for %s at %s", collection_id, capability.path)
        return record

    async def revalidate(self, capability: DirectoryHandle | FileHandle) -> Validity:
        """Confirm read access, prompting the user at most once.

        Returns:
            str: ``"granted"`` when access is available, otherwise ``"revoked"``.
                A dismissed prompt counts as ``"revoked"``.
        """
        if await capability.query_permission() == "granted":
            return "granted"
        answer = await capability.request_permission()
        if answer == "granted":
            return "granted"
        LOGGER.info("Access to %s was not re-granted (%s).", capability.path, answer or "dismissed")
        return "revoked"

    async def forget(self, collection_id: str) -> None:
        """Remove the stored capability. OS-level permission is left untouched."""
        await self._records.delete(collection_id)

    async def get(self, collection_id: str) -> CapabilityRecord | None:
        data = await self._records.get(collection_id)
        return CapabilityRecord.model_validate(data) if data is not None else None

    async def all(self) -> list[CapabilityRecord]:
        return [CapabilityRecord.model_validate(data) for data in await self._records.all()]

    async def restore(self, collection_id: str) -> DirectoryHandle | None:
        """Rebuild the stored directory handle for ``collection_id``, if any."""
        record = await self.get(collection_id)
        if record is None:
            return None
        return DirectoryHandle(Path(record.path), self._permissions)


async def acquire(path: Path, permissions: PermissionBroker) -> DirectoryHandle:
    """Turn a user-picked folder into a granted directory capability.

    Raises:
        CapabilityAbandonedError: If the user dismissed the access prompt.
        CapabilityDeniedError: If access was declined or is unavailable.
    """
    handle = DirectoryHandle(Path(path).expanduser().resolve(), permissions)
    state = await handle.query_permission()
    if state != "granted":
        state = await handle.request_permission()
        if state is None:
            raise CapabilityAbandonedError(f"Access prompt for {handle.path} was dismissed.")
    if state != "granted":
        raise CapabilityDeniedError(f"Permission denied to access folder {handle.path}.")
    return handle


__all__ = [
    "CapabilityStore",
    "CapabilityRecord",
    "CapabilitySummary",
    "CapabilityError",
    "CapabilityDeniedError",
    "CapabilityAbandonedError",
    "DirectoryHandle",
    "FileHandle",
    "FilesystemPermissions",
    "PermissionBroker",
    "PermissionState",
    "Validity",
    "acquire",
]
