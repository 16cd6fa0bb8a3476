"""Library facade tests covering add, rescan, recent, and removal."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from localplay.capabilities import CapabilityAbandonedError, CapabilityDeniedError
from localplay.config import LocalPlayConfig
from localplay.library import Library
from localplay.state import MissingStateError


def _config(tmp_path: Path) -> LocalPlayConfig:
    return LocalPlayConfig.model_validate({"storage": {"path": str(tmp_path / "store")}})


def test_add_folder_persists_collection_and_capability(
    tmp_path: Path, course_root: Path, granted, decoder
) -> None:
    async def scenario():
        library = await Library.open(_config(tmp_path), permissions=granted, decoder=decoder)
        added = await library.add_folder(course_root)
        reopened = await Library.open(_config(tmp_path), permissions=granted, decoder=decoder)
        return added, await reopened.collections(), await reopened.capabilities.all()

    added, collections, capabilities = asyncio.run(scenario())

    assert [c.id for c in collections] == [added.id]
    assert capabilities[0].id == added.id
    assert capabilities[0].summary.section_count == 2


def test_add_folder_propagates_prompt_outcomes(
    tmp_path: Path, course_root: Path, make_permissions, decoder
) -> None:
    async def scenario(permissions):
        library = await Library.open(_config(tmp_path), permissions=permissions, decoder=decoder)
        await library.add_folder(course_root)

    with pytest.raises(CapabilityAbandonedError):
        asyncio.run(scenario(make_permissions(state="prompt", answer=None)))
    with pytest.raises(CapabilityDeniedError):
        asyncio.run(scenario(make_permissions(state="prompt", answer="denied")))


def test_rescan_requires_granted_access(
    tmp_path: Path, course_root: Path, make_permissions, decoder
) -> None:
    permissions = make_permissions()

    async def scenario():
        library = await Library.open(_config(tmp_path), permissions=permissions, decoder=decoder)
        collection = await library.add_folder(course_root)
        (course_root / "03-C").mkdir()
        (course_root / "03-C" / "01-New.mp4").write_bytes(b"x")
        rescanned = await library.rescan(collection.id)

        permissions.state = "prompt"
        permissions.answer = "denied"
        with pytest.raises(CapabilityDeniedError):
            await library.rescan(collection.id)
        with pytest.raises(MissingStateError):
            await library.rescan("collection-unknown")
        return rescanned

    rescanned = asyncio.run(scenario())

    assert rescanned.section_count == 3


def test_recent_spans_collections(tmp_path: Path, course_root: Path, granted, decoder) -> None:
    async def scenario():
        library = await Library.open(_config(tmp_path), permissions=granted, decoder=decoder)
        collection = await library.add_folder(course_root)
        first, second = collection.sections[0].items
        await library.progress.record(first.id, 10.0, 60.0)
        await asyncio.sleep(0.01)
        await library.progress.record(second.id, 20.0, 60.0)
        return await library.recent(5), first, second

    recent, first, second = asyncio.run(scenario())

    assert [item.id for _, item in recent] == [second.id, first.id]
    assert recent[0][0].id == "collection-My_Course"


def test_remove_collection_clears_progress_and_capability(
    tmp_path: Path, course_root: Path, granted, decoder
) -> None:
    async def scenario():
        library = await Library.open(_config(tmp_path), permissions=granted, decoder=decoder)
        collection = await library.add_folder(course_root)
        item = next(collection.iter_items())
        await library.progress.record(item.id, 10.0, 60.0)
        removed = await library.remove_collection(collection.id)
        again = await library.remove_collection(collection.id)
        return (
            removed,
            again,
            await library.collections(),
            await library.capabilities.all(),
            await library.progress.get_all(),
        )

    removed, again, collections, capabilities, progress = asyncio.run(scenario())

    assert removed is True
    assert again is False
    assert collections == capabilities == progress == []


def test_find_item_and_captions(tmp_path: Path, course_root: Path, granted, decoder) -> None:
    async def scenario():
        library = await Library.open(_config(tmp_path), permissions=granted, decoder=decoder)
        await library.add_folder(course_root)
        collection, section, item = await library.find_item("item-My_Course-01-A-01-Intro.mp4")
        cues = await library.captions(item)
        with pytest.raises(MissingStateError):
            await library.find_item("item-nope")
        return section.id, cues

    section_id, cues = asyncio.run(scenario())

    assert section_id == "section-My_Course-01-A"
    assert [cue.text for cue in cues] == ["Hello"]


def test_session_persists_duration_correction(
    tmp_path: Path, course_root: Path, granted, decoder
) -> None:
    decoder.failures.add("02-Next.mp4")

    class Resource:
        position = 12.0
        duration = 90.0
        playing = True

        def close(self) -> None:
            pass

    async def scenario():
        library = await Library.open(_config(tmp_path), permissions=granted, decoder=decoder)
        collection = await library.add_folder(course_root)
        target = collection.sections[0].items[1]
        async with library.session(collection) as session:
            await session.start(target, Resource())
        return await library.collection(collection.id), session.sample_interval_seconds

    stored, interval = asyncio.run(scenario())

    assert interval == 5.0
    assert stored.sections[0].items[1].duration_seconds == 90.0
    assert stored.sections[0].total_duration_seconds == pytest.approx(150.0)
