"""Intermediate values produced while ingesting a collection folder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AsyncIterator, Literal, Optional

from localplay.capabilities import DirectoryHandle, FileHandle
from localplay.catalog.models import CaptionRef


@dataclass(slots=True)
class RawItem:
    """A media file found inside a section folder."""

    source_name: str
    file_capability: FileHandle
    size_bytes: int


@dataclass(slots=True)
class RawSection:
    """A direct subfolder of the collection root.

    ``raw_items`` is a single-pass async iterator; it can only be consumed once.
    """

    source_name: str
    capability: DirectoryHandle
    raw_items: AsyncIterator[RawItem]


@dataclass(slots=True)
class ProbeData:
    duration_seconds: float
    preview_image: Optional[str] = None


ProbeFailureReason = Literal["decode_error", "missing_tool", "probe_timeout"]


@dataclass(slots=True)
class ProbeResult:
    """Outcome of probing one media file.

    Attributes:
        ok: Whether a duration could be decoded.
        data: Decoded metadata when ``ok`` is True.
        reason: Failure category when ``ok`` is False.
        error: Human-readable failure detail.
    """

    ok: bool
    data: Optional[ProbeData] = None
    reason: Optional[ProbeFailureReason] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, duration_seconds: float, preview_image: Optional[str] = None) -> "ProbeResult":
        return cls(ok=True, data=ProbeData(duration_seconds, preview_image))

    @classmethod
    def unavailable(cls, reason: ProbeFailureReason, error: str) -> "ProbeResult":
        return cls(ok=False, reason=reason, error=error)

    @property
    def duration_seconds(self) -> float:
        """Return the decoded duration, or 0 when probing failed."""
        return self.data.duration_seconds if self.data is not None else 0.0

    @property
    def preview_image(self) -> Optional[str]:
        return self.data.preview_image if self.data is not None else None


CaptionReason = Literal["matched", "no_sidecar", "no_match"]


@dataclass(slots=True)
class CaptionResult:
    """Outcome of looking for an item's caption file."""

    reason: CaptionReason
    ref: Optional[CaptionRef] = None

    @property
    def found(self) -> bool:
        return self.ref is not None


@dataclass(slots=True)
class CaptionCue:
    """One timed caption entry."""

    index: int
    start_seconds: float
    end_seconds: float
    text: str


@dataclass(slots=True)
class SortPrefix:
    """Ordering data parsed from a leading digit run in a name."""

    key: Optional[int]
    label: str
    display_name: str


@dataclass(slots=True)
class IngestionReport:
    """Counters describing what happened during one ingestion run."""

    sections_seen: int = 0
    sections_discarded: list[str] = field(default_factory=list)
    items_seen: int = 0
    probe_failures: list[str] = field(default_factory=list)
    captions_matched: int = 0


__all__ = [
    "RawItem",
    "RawSection",
    "ProbeData",
    "ProbeResult",
    "ProbeFailureReason",
    "CaptionResult",
    "CaptionReason",
    "CaptionCue",
    "SortPrefix",
    "IngestionReport",
]
