"""Configuration models describing LocalPlay settings."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_MEDIA_EXTENSIONS = [
    ".mp4",
    ".webm",
    ".ogg",
    ".mov",
    ".avi",
    ".mkv",
    ".m4v",
    ".flv",
    ".wmv",
    ".mpg",
    ".mpeg",
]


class LocalPlayBaseModel(BaseModel):
    """Shared configuration for LocalPlay Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class ScanOptions(LocalPlayBaseModel):
    """Options governing how a collection folder is walked.

    Attributes:
        media_extensions: File extensions recognized as playable items.
        caption_extensions: Caption extensions, in tie-break preference order.
        caption_dir_suffix: Suffix naming a section's caption sidecar folder.
        include_hidden: Whether dot-prefixed entries are considered.
    """

    media_extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_MEDIA_EXTENSIONS))
    caption_extensions: List[str] = Field(default_factory=lambda: [".srt", ".vtt"])
    caption_dir_suffix: str = "_subtitles"
    include_hidden: bool = False

    @field_validator("media_extensions", "caption_extensions")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        normalized = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        return normalized


class ProbeOptions(LocalPlayBaseModel):
    """Options for duration and preview probing.

    Attributes:
        timeout_seconds: Hard limit for a single probe, preview included.
        max_concurrency: Number of probes allowed in flight at once.
        preview_width: Maximum width of generated preview images.
        preview_quality: JPEG quality used when encoding previews.
        item_previews: Whether every item gets a preview, not just the first.
        ffprobe_path: Optional explicit path to ffprobe.
        ffmpeg_path: Optional explicit path to ffmpeg.
    """

    timeout_seconds: float = 8.0
    max_concurrency: int = 4
    preview_width: int = 320
    preview_quality: int = 70
    item_previews: bool = False
    ffprobe_path: Optional[str] = None
    ffmpeg_path: Optional[str] = None


class ProgressOptions(LocalPlayBaseModel):
    """Completion and sampling behavior for playback progress.

    Attributes:
        completion_fraction: Watched fraction that must be exceeded to complete.
        completion_remaining_seconds: Remaining time under which an item completes.
        sample_interval_seconds: Interval between progress samples during playback.
    """

    completion_fraction: float = 0.95
    completion_remaining_seconds: float = 5.0
    sample_interval_seconds: float = 5.0


class StorageOptions(LocalPlayBaseModel):
    """Location of the durable store.

    Attributes:
        path: Directory holding the store namespaces and log files.
    """

    path: str = "~/.localplay/store"


class LoggingSettings(LocalPlayBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    max_size_mb: int = 10
    backup_count: int = 3


class CLIOptions(LocalPlayBaseModel):
    """CLI presentation preferences.

    Attributes:
        replace_underscores: Whether underscores render as spaces in names.
        recent_limit: Default number of entries shown by `localplay recent`.
    """

    replace_underscores: bool = True
    recent_limit: int = 5


class LocalPlayConfig(LocalPlayBaseModel):
    """Top-level configuration struct for LocalPlay.

    Attributes:
        scan: Folder walking settings.
        probe: Metadata probing settings.
        progress: Playback progress settings.
        storage: Durable store settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    scan: ScanOptions = Field(default_factory=ScanOptions)
    probe: ProbeOptions = Field(default_factory=ProbeOptions)
    progress: ProgressOptions = Field(default_factory=ProgressOptions)
    storage: StorageOptions = Field(default_factory=StorageOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "DEFAULT_MEDIA_EXTENSIONS",
    "LocalPlayBaseModel",
    "ScanOptions",
    "ProbeOptions",
    "ProgressOptions",
    "StorageOptions",
    "LoggingSettings",
    "CLIOptions",
    "LocalPlayConfig",
]
