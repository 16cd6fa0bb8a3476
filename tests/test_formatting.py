"""Formatting helper tests."""

import pytest

from localplay.formatting import (
    format_display_name,
    format_duration,
    format_file_size,
    format_total_duration,
)


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1048576, "1 MB"),
        (5 * 1024**3 + 1024**3 // 4, "5.25 GB"),
        (3 * 1024**5, "3072 TB"),
    ],
)
def test_format_file_size(size: int, expected: str) -> None:
    assert format_file_size(size) == expected


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "0:00"), (5.9, "0:05"), (65, "1:05"), (3725, "1:02:05"), (float("nan"), "0:00")],
)
def test_format_duration(seconds: float, expected: str) -> None:
    assert format_duration(seconds) == expected


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "0m"), (30, "30s"), (330, "5m 30s"), (2700, "45m"), (4980, "1h 23m"), (7200, "2h")],
)
def test_format_total_duration(seconds: float, expected: str) -> None:
    assert format_total_duration(seconds) == expected


def test_format_display_name() -> None:
    assert format_display_name("Getting_Started", True) == "Getting Started"
    assert format_display_name("Getting_Started", False) == "Getting_Started"
