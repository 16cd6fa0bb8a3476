"""Human-readable rendering of sizes, durations, and names."""

from __future__ import annotations

import math

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def format_file_size(size_bytes: int) -> str:
    """Render ``size_bytes`` with a binary unit, e.g. ``1.5 KB``."""
    if size_bytes <= 0:
        return "0 Bytes"
    exponent = 0
    while size_bytes >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    value = round(size_bytes / 1024**exponent, 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[exponent]}"


def format_duration(seconds: float) -> str:
    """Render a playback position as ``H:MM:SS`` or ``M:SS``."""
    if not seconds or seconds <= 0 or not math.isfinite(seconds):
        return "0:00"
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_total_duration(seconds: float) -> str:
    """Render an aggregate length such as ``1h 23m``, ``45m``, ``5m 30s``, or ``30s``.

    Seconds are only shown for lengths under ten minutes.
    """
    if not seconds or seconds <= 0 or not math.isfinite(seconds):
        return "0m"
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"
    if minutes:
        return f"{minutes}m {secs}s" if secs and minutes < 10 else f"{minutes}m"
    return f"{secs}s"


def format_display_name(name: str, replace_underscores: bool) -> str:
    return name.replace("_", " ") if replace_underscores else name


__all__ = [
    "format_file_size",
    "format_duration",
    "format_total_duration",
    "format_display_name",
]
