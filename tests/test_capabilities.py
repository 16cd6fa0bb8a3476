"""Folder capability persistence and permission handling tests."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from localplay.capabilities import (
    CapabilityAbandonedError,
    CapabilityDeniedError,
    CapabilityStore,
    CapabilitySummary,
    DirectoryHandle,
    FileHandle,
    FilesystemPermissions,
    acquire,
)
from localplay.state import Store

SUMMARY = CapabilitySummary(title="Course", section_count=2, item_count=4)


def test_persist_and_restore_round_trip(tmp_path: Path, granted) -> None:
    folder = tmp_path / "Course"
    folder.mkdir()

    async def scenario():
        store = await Store.open(tmp_path / "store")
        capabilities = CapabilityStore(store, granted)
        handle = DirectoryHandle(folder, granted)
        await capabilities.persist("collection-Course", handle, SUMMARY)
        await capabilities.persist("collection-Course", handle, SUMMARY)

        reopened = CapabilityStore(await Store.open(tmp_path / "store"), granted)
        return await reopened.restore("collection-Course"), await reopened.all(), handle

    restored, records, handle = asyncio.run(scenario())

    assert restored == handle
    assert len(records) == 1
    assert records[0].summary.item_count == 4
    assert records[0].kind == "directory"


def test_restore_unknown_returns_none(tmp_path: Path) -> None:
    async def scenario():
        capabilities = CapabilityStore(await Store.open(tmp_path))
        return await capabilities.restore("collection-missing"), await capabilities.get("x")

    assert asyncio.run(scenario()) == (None, None)


def test_forget_removes_record(tmp_path: Path, granted) -> None:
    async def scenario():
        capabilities = CapabilityStore(await Store.open(tmp_path / "store"), granted)
        await capabilities.persist("c1", DirectoryHandle(tmp_path, granted), SUMMARY)
        await capabilities.forget("c1")
        await capabilities.forget("c1")
        return await capabilities.all()

    assert asyncio.run(scenario()) == []


@pytest.mark.parametrize(
    ("state", "answer", "expected", "prompts"),
    [
        ("granted", "granted", "granted", 0),
        ("prompt", "granted", "granted", 1),
        ("prompt", "denied", "revoked", 1),
        ("prompt", None, "revoked", 1),
        ("denied", "denied", "revoked", 1),
    ],
)
def test_revalidate_prompts_at_most_once(
    tmp_path: Path, make_permissions, state, answer, expected, prompts
) -> None:
    permissions = make_permissions(state=state, answer=answer)

    async def scenario():
        capabilities = CapabilityStore(await Store.open(tmp_path / "store"), permissions)
        return await capabilities.revalidate(DirectoryHandle(tmp_path, permissions))

    assert asyncio.run(scenario()) == expected
    assert permissions.requests == prompts


def test_acquire_distinguishes_dismissed_from_denied(tmp_path: Path, make_permissions) -> None:
    with pytest.raises(CapabilityAbandonedError):
        asyncio.run(acquire(tmp_path, make_permissions(state="prompt", answer=None)))
    with pytest.raises(CapabilityDeniedError):
        asyncio.run(acquire(tmp_path, make_permissions(state="prompt", answer="denied")))

    handle = asyncio.run(acquire(tmp_path, make_permissions(state="prompt", answer="granted")))
    assert handle.path == tmp_path.resolve()


def test_filesystem_permissions_grant_readable_directories(tmp_path: Path) -> None:
    permissions = FilesystemPermissions()

    async def scenario():
        return await permissions.query(tmp_path), await permissions.query(tmp_path / "missing")

    assert asyncio.run(scenario()) == ("granted", "prompt")


def test_filesystem_permissions_report_dismissed_prompt(tmp_path: Path) -> None:
    asked: list[Path] = []

    def _prompt(path: Path):
        asked.append(path)
        return None

    permissions = FilesystemPermissions(prompt=_prompt)
    missing = tmp_path / "missing"

    async def scenario():
        answer = await permissions.request(missing)
        return answer, await permissions.query(missing)

    assert asyncio.run(scenario()) == (None, "denied")
    assert asked == [missing]


def test_directory_entries_yield_typed_handles(tmp_path: Path, granted) -> None:
    (tmp_path / "sub").mkdir()
    (tmp_path / "file.mp4").write_bytes(b"12345")

    async def scenario():
        root = DirectoryHandle(tmp_path, granted)
        children = {entry.name: entry async for entry in root.entries()}
        file = await root.get_file("file.mp4")
        return children, await file.size()

    children, size = asyncio.run(scenario())

    assert isinstance(children["sub"], DirectoryHandle)
    assert isinstance(children["file.mp4"], FileHandle)
    assert size == 5
    with pytest.raises(FileNotFoundError):
        asyncio.run(DirectoryHandle(tmp_path, granted).get_directory("file.mp4"))


def test_file_handle_opens_bytes(tmp_path: Path, granted) -> None:
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x01")

    with FileHandle(path, granted).open() as stream:
        assert stream.read() == b"\x00\x01"
