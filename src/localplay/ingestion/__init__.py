"""Ingestion pipeline package."""

from .captions import CaptionMatcher, parse_srt
from .decoders import DecodeError, FFmpegDecoder, MediaDecoder
from .discovery import TreeWalker
from .extractors import MetadataProbe
from .models import (
    CaptionCue,
    CaptionResult,
    IngestionReport,
    ProbeResult,
    RawItem,
    RawSection,
)
from .pipeline import CatalogBuilder

__all__ = [
    "CaptionMatcher",
    "CaptionCue",
    "CaptionResult",
    "CatalogBuilder",
    "DecodeError",
    "FFmpegDecoder",
    "IngestionReport",
    "MediaDecoder",
    "MetadataProbe",
    "ProbeResult",
    "RawItem",
    "RawSection",
    "TreeWalker",
    "parse_srt",
]
