"""Permission-scoped directory and file handles.

A handle is the only way the ingestion code touches the filesystem. Each one
carries a permission broker that answers "may I read this?" and, when the
answer is not yet known, can ask the user.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Callable, Literal, Optional, Protocol, Union

PermissionState = Literal["granted", "denied", "prompt"]

PromptCallback = Callable[[Path], Optional[bool]]
"""Ask the user to grant read access to a path.

Returns ``True`` when the user accepts, ``False`` when they decline, and
``None`` when they dismiss the prompt without deciding.
"""


class PermissionBroker(Protocol):
    """Answer and request read permission for handle paths."""

    async def query(self, path: Path) -> PermissionState: ...

    async def request(self, path: Path) -> PermissionState | None: ...


class FilesystemPermissions:
    """Permission broker backed by OS access checks and an optional prompt.

    A path that is readable reports ``granted``. An unreadable path reports
    ``prompt`` until it has been requested once, then ``denied``.
    """

    def __init__(self, prompt: PromptCallback | None = None) -> None:
        self._prompt = prompt
        self._requested: set[Path] = set()

    async def query(self, path: Path) -> PermissionState:
        readable = await asyncio.to_thread(_readable, path)
        if readable:
            return "granted"
        return "denied" if path in self._requested else "prompt"

    async def request(self, path: Path) -> PermissionState | None:
        """Prompt for access; ``None`` signals the user dismissed the prompt."""
        self._requested.add(path)
        if self._prompt is not None:
            answer = await asyncio.to_thread(self._prompt, path)
            if answer is None:
                return None
            if not answer:
                return "denied"
        return await self.query(path)


def _readable(path: Path) -> bool:
    if not path.exists():
        return False
    mode = os.R_OK | os.X_OK if path.is_dir() else os.R_OK
    return os.access(path, mode)


class _Handle:
    kind: str

    def __init__(self, path: Path, permissions: PermissionBroker) -> None:
        self.path = Path(path)
        self.permissions = permissions

    @property
    def name(self) -> str:
        return self.path.name

    async def query_permission(self) -> PermissionState:
        return await self.permissions.query(self.path)

    async def request_permission(self) -> PermissionState | None:
        return await self.permissions.request(self.path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _Handle) and other.kind == self.kind and other.path == self.path

    def __hash__(self) -> int:
        return hash((self.kind, self.path))


class FileHandle(_Handle):
    """Read capability for a single file."""

    kind = "file"

    async def size(self) -> int:
        stat = await asyncio.to_thread(self.path.stat)
        return stat.st_size

    def open(self) -> BinaryIO:
        """Open the underlying bytes for reading; callers own the returned file."""
        return self.path.open("rb")


class DirectoryHandle(_Handle):
    """Read capability for a directory subtree."""

    kind = "directory"

    async def entries(self) -> AsyncIterator[Union["DirectoryHandle", FileHandle]]:
        """Yield child handles in filesystem order.

        Children inherit this handle's permission broker. Entries that are
        neither regular files nor directories are skipped.
        """
        entries = await asyncio.to_thread(_list_entries, self.path)
        for name, is_dir in entries:
            child = self.path / name
            if is_dir:
                yield DirectoryHandle(child, self.permissions)
            else:
                yield FileHandle(child, self.permissions)

    async def get_directory(self, name: str) -> "DirectoryHandle":
        """Return the child directory ``name``.

        Raises:
            FileNotFoundError: If no such directory exists.
        """
        child = self.path / name
        if not await asyncio.to_thread(child.is_dir):
            raise FileNotFoundError(f"No directory named {name!r} in {self.path}")
        return DirectoryHandle(child, self.permissions)

    async def get_file(self, name: str) -> FileHandle:
        """Return the child file ``name``.

        Raises:
            FileNotFoundError: If no such file exists.
        """
        child = self.path / name
        if not await asyncio.to_thread(child.is_file):
            raise FileNotFoundError(f"No file named {name!r} in {self.path}")
        return FileHandle(child, self.permissions)


def _list_entries(path: Path) -> list[tuple[str, bool]]:
    listed: list[tuple[str, bool]] = []
    with os.scandir(path) as iterator:
        for entry in iterator:
            try:
                if entry.is_dir():
                    listed.append((entry.name, True))
                elif entry.is_file():
                    listed.append((entry.name, False))
            except OSError:
                continue
    return listed


__all__ = [
    "PermissionState",
    "PromptCallback",
    "PermissionBroker",
    "FilesystemPermissions",
    "FileHandle",
    "DirectoryHandle",
]
