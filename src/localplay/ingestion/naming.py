"""Name parsing helpers for ordering and identifying catalog entries."""

from __future__ import annotations

import re

from .models import SortPrefix

_LEADING_DIGITS = re.compile(r"^(\d+)")
_PREFIX_WITH_SEPARATORS = re.compile(r"^\d+[\s\-_.]*")
_EXTENSION = re.compile(r"\.[^/.]+$")


def strip_extension(name: str) -> str:
    """Return ``name`` without its final extension."""
    return _EXTENSION.sub("", name)


def parse_sort_prefix(name: str) -> SortPrefix:
    """Split a leading digit run off ``name``.

    ``"01 - Intro"`` gives key 1, label ``"01"`` and display name ``"Intro"``.
    A name without a leading digit run has no key and an empty label.
    """
    match = _LEADING_DIGITS.match(name)
    if match is None:
        return SortPrefix(key=None, label="", display_name=name.strip())
    label = match.group(1)
    display = _PREFIX_WITH_SEPARATORS.sub("", name, count=1).strip()
    return SortPrefix(key=int(label), label=label, display_name=display)


def collection_id(collection_name: str) -> str:
    """Return the stable id of the collection named after its root folder."""
    return f"collection-{collection_name}"


def section_id(collection_name: str, section_name: str) -> str:
    """Return the stable id of a section folder within a collection."""
    return f"section-{collection_name}-{section_name}"


def item_id(collection_name: str, section_name: str, file_name: str) -> str:
    """Return the stable id of a media file.

    The full file name, extension included, keeps ids distinct for files that
    differ only by extension.
    """
    return f"item-{collection_name}-{section_name}-{file_name}"


__all__ = [
    "strip_extension",
    "parse_sort_prefix",
    "collection_id",
    "section_id",
    "item_id",
]
