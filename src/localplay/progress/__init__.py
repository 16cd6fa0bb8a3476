"""Playback progress persistence and aggregation."""

from .models import ProgressRecord, watched_fraction
from .session import PlaybackResource, PlaybackSession
from .store import (
    DEFAULT_RULE,
    CompletionRule,
    ProgressStore,
    aggregate_for_collection,
    aggregate_for_section,
    completion_percentage,
    index_records,
    most_recently_watched,
)

__all__ = [
    "ProgressRecord",
    "watched_fraction",
    "PlaybackResource",
    "PlaybackSession",
    "CompletionRule",
    "DEFAULT_RULE",
    "ProgressStore",
    "aggregate_for_collection",
    "aggregate_for_section",
    "completion_percentage",
    "index_records",
    "most_recently_watched",
]
