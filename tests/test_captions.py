"""Caption sidecar matching and SRT parsing tests."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from localplay.capabilities import DirectoryHandle
from localplay.catalog import CaptionRef
from localplay.ingestion import CaptionMatcher, parse_srt


def _match(root: Path, granted, section: str, item: str, matcher: CaptionMatcher | None = None):
    matcher = matcher or CaptionMatcher()
    return asyncio.run(matcher.match(DirectoryHandle(root, granted), section, item))


def test_matches_caption_with_same_stem(course_root: Path, granted) -> None:
    result = _match(course_root, granted, "01-A", "01-Intro.mp4")

    assert result.reason == "matched"
    assert result.ref.source_name == "01-Intro.srt"
    assert Path(result.ref.path) == course_root / "01-A_subtitles" / "01-Intro.srt"


def test_extension_preference_follows_configuration(course_root: Path, granted) -> None:
    matcher = CaptionMatcher(caption_extensions=[".vtt", ".srt"])

    result = _match(course_root, granted, "01-A", "01-Intro.mp4", matcher)

    assert result.ref.source_name == "01-Intro.vtt"


def test_item_without_caption_has_no_match(course_root: Path, granted) -> None:
    result = _match(course_root, granted, "01-A", "02-Next.mp4")

    assert result.reason == "no_match"
    assert not result.found


def test_section_without_sidecar(course_root: Path, granted) -> None:
    result = _match(course_root, granted, "02-B", "10-Wrap.mp4")

    assert result.reason == "no_sidecar"
    assert result.ref is None


def test_stem_match_is_case_sensitive(tmp_path: Path, granted) -> None:
    sidecar = tmp_path / "S_subtitles"
    sidecar.mkdir()
    (sidecar / "intro.srt").write_text("", encoding="utf-8")
    (sidecar / "Intro.txt").write_text("", encoding="utf-8")

    assert _match(tmp_path, granted, "S", "Intro.mp4").reason == "no_match"


def test_uppercase_caption_extension_is_accepted(tmp_path: Path, granted) -> None:
    sidecar = tmp_path / "S_subtitles"
    sidecar.mkdir()
    (sidecar / "Intro.SRT").write_text("", encoding="utf-8")

    assert _match(tmp_path, granted, "S", "Intro.mp4").ref.source_name == "Intro.SRT"


def test_parse_srt_reads_cues() -> None:
    text = (
        "1\r\n00:00:01,000 --> 00:00:02,500\r\nHello\r\nthere\r\n\r\n"
        "2\r\n01:00:03.250 --> 01:00:04,000\r\nLater\r\n\r\n"
        "garbage block\r\n"
    )

    cues = parse_srt(text)

    assert [cue.index for cue in cues] == [1, 2]
    assert cues[0].start_seconds == pytest.approx(1.0)
    assert cues[0].end_seconds == pytest.approx(2.5)
    assert cues[0].text == "Hello\nthere"
    assert cues[1].start_seconds == pytest.approx(3603.25)


def test_parse_srt_accepts_vtt_timings_without_hours() -> None:
    cues = parse_srt("WEBVTT\n\n00:05.000 --> 00:07.000\nShort form\n")

    assert len(cues) == 1
    assert cues[0].start_seconds == pytest.approx(5.0)
    assert cues[0].text == "Short form"


def test_load_decodes_legacy_encodings(tmp_path: Path) -> None:
    path = tmp_path / "Intro.srt"
    path.write_bytes("1\n00:00:01,000 --> 00:00:02,000\nCafé\n".encode("cp1252"))

    cues = asyncio.run(CaptionMatcher().load(CaptionRef(path=str(path), source_name=path.name)))

    assert cues[0].text == "Café"
