"""Persisted capability records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field


class CapabilitySummary(BaseModel):
    """Short description of the collection a capability was granted for."""

    title: str
    section_count: int = 0
    item_count: int = 0


class CapabilityRecord(BaseModel):
    """Stored directory grant keyed by collection id."""

    id: str
    kind: Literal["directory", "file"] = "directory"
    path: str
    summary: CapabilitySummary
    stored_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = ["CapabilitySummary", "CapabilityRecord"]
