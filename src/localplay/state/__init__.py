"""Durable key/value store shared by the LocalPlay repositories.

The store is a directory holding one JSON document per namespace. It is
opened once per process and handed to every repository that needs it, so
there is no hidden module-level connection.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable

from .errors import MissingStateError, StateError, StoreUnavailableError

LOGGER = logging.getLogger(__name__)

NAMESPACES = ("capabilities", "progress", "collections", "preferences")


class Namespace:
    """One keyed collection inside the store.

    Reads are served from memory. Every write rewrites the namespace file
    through a temporary file and ``os.replace`` so a crash never leaves a
    half-written document behind.
    """

    def __init__(self, name: str, path: Path, records: dict[str, dict[str, Any]]) -> None:
        self.name = name
        self.path = path
        self._records = records
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> dict[str, Any] | None:
        """Return a copy of the record stored under ``key``."""
        record = self._records.get(key)
        return dict(record) if record is not None else None

    async def all(self) -> list[dict[str, Any]]:
        """Return copies of every record in insertion order."""
        return [dict(record) for record in self._records.values()]

    async def keys(self) -> list[str]:
        """Return the stored keys in insertion order."""
        return list(self._records)

    async def put(self, key: str, value: dict[str, Any]) -> None:
        """Insert or overwrite the record stored under ``key``."""
        await self.put_many([(key, value)])

    async def put_many(self, items: Iterable[tuple[str, dict[str, Any]]]) -> None:
        """Insert or overwrite several records with a single file write."""
        async with self._lock:
            updated = dict(self._records)
            for key, value in items:
                updated[key] = dict(value)
            await self._flush(updated)
            self._records = updated

    async def delete(self, key: str) -> bool:
        """Remove ``key``; return whether a record was present."""
        return bool(await self.delete_many([key]))

    async def delete_many(self, keys: Iterable[str]) -> int:
        """Remove several keys with a single file write; return how many existed."""
        async with self._lock:
            updated = dict(self._records)
            removed = 0
            for key in keys:
                if updated.pop(key, None) is not None:
                    removed += 1
            if removed:
                await self._flush(updated)
                self._records = updated
            return removed

    async def _flush(self, records: dict[str, dict[str, Any]]) -> None:
        payload = json.dumps(records, indent=2, sort_keys=False)
        try:
            await asyncio.to_thread(_atomic_write, self.path, payload)
        except OSError as exc:
            raise StoreUnavailableError(f"Could not write {self.name} store: {exc}") from exc


class Store:
    """Open handle on the durable store directory."""

    def __init__(self, root: Path, namespaces: dict[str, Namespace]) -> None:
        self._root = root
        self._namespaces = namespaces

    @property
    def root(self) -> Path:
        """Return the directory backing the store."""
        return self._root

    @classmethod
    async def open(cls, root: Path | str) -> "Store":
        """Open (creating if needed) the store rooted at ``root``.

        Args:
            root: Directory that holds the namespace documents.

        Returns:
            Store: Loaded store context.

        Raises:
            StoreUnavailableError: If the directory cannot be created or a
                namespace document cannot be read or parsed.
        """
        directory = Path(root).expanduser()
        try:
            await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailableError(f"Could not open store at {directory}: {exc}") from exc

        namespaces: dict[str, Namespace] = {}
        for name in NAMESPACES:
            path = directory / f"{name}.json"
            records = await asyncio.to_thread(_read_document, path)
            namespaces[name] = Namespace(name, path, records)
        LOGGER.debug("Opened store at %s", directory)
        return cls(directory, namespaces)

    def namespace(self, name: str) -> Namespace:
        """Return the namespace called ``name``."""
        try:
            return self._namespaces[name]
        except KeyError:
            raise StateError(f"Unknown store namespace: {name}") from None


def _read_document(path: Path) -> dict[str, dict[str, Any]]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise StoreUnavailableError(f"Could not read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise StoreUnavailableError(f"Invalid store data in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise StoreUnavailableError(f"Store document {path} must contain a mapping.")
    return data


def _atomic_write(path: Path, payload: str) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(payload, encoding="utf-8")
    os.replace(tmp, path)


__all__ = [
    "NAMESPACES",
    "Namespace",
    "Store",
    "StateError",
    "StoreUnavailableError",
    "MissingStateError",
]
