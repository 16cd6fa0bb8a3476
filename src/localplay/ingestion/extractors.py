"""Duration and preview extraction for media items."""

from __future__ import annotations

import asyncio
import base64
import io
import logging

from PIL import Image, UnidentifiedImageError

from localplay.capabilities import FileHandle

from .decoders import DecodeError, DecoderUnavailableError, MediaDecoder
from .models import ProbeResult

LOGGER = logging.getLogger(__name__)

PREVIEW_SEEK_SECONDS = 10.0
SHORT_MEDIA_SEEK_FRACTION = 0.1
SHORT_MEDIA_SEEK_CAP_SECONDS = 2.0


def preview_seek_point(duration_seconds: float) -> float:
    """Return where to grab the preview frame for media of the given length."""
    if duration_seconds > PREVIEW_SEEK_SECONDS:
        return PREVIEW_SEEK_SECONDS
    return min(duration_seconds * SHORT_MEDIA_SEEK_FRACTION, SHORT_MEDIA_SEEK_CAP_SECONDS)


class MetadataProbe:
    """Derive duration and a still preview for a media file.

    Probing never raises for bad media. Decode errors, missing tools, and
    timeouts come back as an unavailable :class:`ProbeResult` so ingestion can
    continue with a zero duration and no preview. A failed preview alone
    keeps the decoded duration.
    """

    def __init__(
        self,
        decoder: MediaDecoder,
        *,
        timeout_seconds: float = 8.0,
        preview_width: int = 320,
        preview_quality: int = 70,
    ) -> None:
        self.decoder = decoder
        self.timeout_seconds = timeout_seconds
        self.preview_width = preview_width
        self.preview_quality = preview_quality

    async def probe(self, file: FileHandle, *, want_preview: bool = True) -> ProbeResult:
        """Probe ``file`` within the configured timeout.

        Args:
            file: Handle of the media file.
            want_preview: Whether to grab and encode a preview frame.

        Returns:
            ProbeResult: Duration and optional preview, or the failure reason.
        """
        try:
            return await asyncio.wait_for(
                self._probe(file, want_preview), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            LOGGER.debug("Probe timed out after %.1fs for %s", self.timeout_seconds, file.path)
            return ProbeResult.unavailable("probe_timeout", f"timed out after {self.timeout_seconds}s")
        except DecoderUnavailableError as exc:
            LOGGER.debug("Decoder unavailable for %s: %s", file.path, exc)
            return ProbeResult.unavailable("missing_tool", str(exc))
        except (DecodeError, OSError) as exc:
            LOGGER.debug("Probe failed for %s: %s", file.path, exc)
            return ProbeResult.unavailable("decode_error", str(exc))

    async def _probe(self, file: FileHandle, want_preview: bool) -> ProbeResult:
        duration = await self.decoder.duration(file.path)
        if not want_preview:
            return ProbeResult.success(duration)
        try:
            frame = await self.decoder.frame(file.path, preview_seek_point(duration))
            preview = await asyncio.to_thread(self.encode_preview, frame)
        except (DecodeError, OSError) as exc:
            LOGGER.debug("Preview unavailable for %s: %s", file.path, exc)
            return ProbeResult.success(duration)
        return ProbeResult.success(duration, preview)

    def encode_preview(self, frame: bytes) -> str:
        """Downscale an encoded frame and return it as a JPEG data URL.

        Raises:
            DecodeError: If the frame bytes are not a readable image.
        """
        try:
            with Image.open(io.BytesIO(frame)) as image:
                image.load()
                converted = image.convert("RGB")
        except (UnidentifiedImageError, OSError) as exc:
            raise DecodeError(f"Unreadable frame: {exc}") from exc

        with converted:
            if converted.width > self.preview_width:
                height = max(1, round(converted.height * self.preview_width / converted.width))
                resized = converted.resize((self.preview_width, height), Image.Resampling.LANCZOS)
            else:
                resized = converted.copy()
            with resized:
                buffer = io.BytesIO()
                resized.save(buffer, format="JPEG", quality=self.preview_quality)
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/jpeg;base64,{encoded}"


__all__ = ["MetadataProbe", "preview_seek_point"]
