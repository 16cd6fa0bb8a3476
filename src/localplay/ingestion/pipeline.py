"""Catalog construction from a collection folder."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Optional

from localplay.capabilities import CapabilityStore, CapabilitySummary, DirectoryHandle
from localplay.catalog import CatalogRepository, Collection, EmptyCatalogError, Item, Section
from localplay.config.models import LocalPlayConfig
from localplay.state import StoreUnavailableError

from .captions import CaptionMatcher
from .decoders import FFmpegDecoder, MediaDecoder
from .discovery import TreeWalker
from .extractors import MetadataProbe
from .models import IngestionReport, RawItem, RawSection, SortPrefix
from .naming import collection_id, item_id, parse_sort_prefix, section_id, strip_extension

LOGGER = logging.getLogger(__name__)


def _ordering(prefix: SortPrefix) -> float:
    return math.inf if prefix.key is None else prefix.key


class CatalogBuilder:
    """Coordinate discovery, probing, and caption matching to produce a collection.

    A collection is persisted only when it is complete: at least one section
    with at least one item. Otherwise :class:`EmptyCatalogError` is raised and
    nothing is written.
    """

    def __init__(
        self,
        walker: TreeWalker,
        probe: MetadataProbe,
        captions: CaptionMatcher,
        *,
        capabilities: CapabilityStore,
        catalog: CatalogRepository,
        max_concurrency: int = 4,
        item_previews: bool = False,
    ) -> None:
        self.walker = walker
        self.probe = probe
        self.captions = captions
        self.capabilities = capabilities
        self.catalog = catalog
        self.max_concurrency = max(1, max_concurrency)
        self.item_previews = item_previews

    @classmethod
    def from_config(
        cls,
        config: LocalPlayConfig,
        *,
        capabilities: CapabilityStore,
        catalog: CatalogRepository,
        decoder: Optional[MediaDecoder] = None,
    ) -> "CatalogBuilder":
        """Build a catalog builder wired according to ``config``."""
        scan = config.scan
        probe = config.probe
        return cls(
            TreeWalker(
                media_extensions=scan.media_extensions,
                caption_dir_suffix=scan.caption_dir_suffix,
                include_hidden=scan.include_hidden,
            ),
            MetadataProbe(
                decoder or FFmpegDecoder(probe.ffprobe_path, probe.ffmpeg_path),
                timeout_seconds=probe.timeout_seconds,
                preview_width=probe.preview_width,
                preview_quality=probe.preview_quality,
            ),
            CaptionMatcher(
                caption_extensions=scan.caption_extensions,
                sidecar_suffix=scan.caption_dir_suffix,
            ),
            capabilities=capabilities,
            catalog=catalog,
            max_concurrency=probe.max_concurrency,
            item_previews=probe.item_previews,
        )

    async def ingest(
        self, root: DirectoryHandle, report: Optional[IngestionReport] = None
    ) -> Collection:
        """Build the collection for ``root`` and persist it with its capability.

        Args:
            root: Granted handle of the collection folder.
            report: Optional report populated with ingestion counters.

        Returns:
            Collection: The persisted collection.

        Raises:
            EmptyCatalogError: If no section with media items was found.
            StoreUnavailableError: If the collection or its capability cannot be
                persisted. Previously stored records are left in place.
        """
        collection = await self.build(root, report)
        summary = CapabilitySummary(
            title=collection.display_name,
            section_count=collection.section_count,
            item_count=collection.item_count,
        )
        previous = await self.catalog.get(collection.id)
        await self.catalog.save(collection)
        try:
            await self.capabilities.persist(collection.id, root, summary)
        except StoreUnavailableError:
            if previous is None:
                await self.catalog.delete(collection.id)
            else:
                await self.catalog.save(previous)
            raise
        LOGGER.info(
            "Ingested %s: %d sections, %d items",
            collection.id,
            collection.section_count,
            collection.item_count,
        )
        return collection

    async def build(
        self, root: DirectoryHandle, report: Optional[IngestionReport] = None
    ) -> Collection:
        """Build the collection for ``root`` without persisting anything."""
        report = report if report is not None else IngestionReport()
        semaphore = asyncio.Semaphore(self.max_concurrency)
        built: list[tuple[float, int, Section]] = []

        enumeration_index = 0
        async for raw_section in self.walker.enumerate(root):
            report.sections_seen += 1
            section, prefix = await self._build_section(root, raw_section, semaphore, report)
            if not section.items:
                report.sections_discarded.append(raw_section.source_name)
                LOGGER.debug("Discarding section without media: %s", raw_section.source_name)
                continue
            built.append((_ordering(prefix), enumeration_index, section))
            enumeration_index += 1

        if not built:
            raise EmptyCatalogError()

        built.sort(key=lambda entry: (entry[0], entry[1]))
        collection = Collection(
            id=collection_id(root.name),
            display_name=parse_sort_prefix(root.name).display_name or root.name,
            source_name=root.name,
            sections=[section for _, _, section in built],
            capability_id=collection_id(root.name),
        )
        collection.refresh_totals()
        return collection

    async def _build_section(
        self,
        root: DirectoryHandle,
        raw_section: RawSection,
        semaphore: asyncio.Semaphore,
        report: IngestionReport,
    ) -> tuple[Section, SortPrefix]:
        raw_items = [raw async for raw in raw_section.raw_items]
        report.items_seen += len(raw_items)

        parsed = [(raw, parse_sort_prefix(strip_extension(raw.source_name))) for raw in raw_items]
        ordered = [
            parsed[index]
            for index in sorted(range(len(parsed)), key=lambda i: (_ordering(parsed[i][1]), i))
        ]

        items = await asyncio.gather(
            *(
                self._build_item(
                    root,
                    raw_section.source_name,
                    raw,
                    prefix,
                    want_preview=position == 0 or self.item_previews,
                    semaphore=semaphore,
                    report=report,
                )
                for position, (raw, prefix) in enumerate(ordered)
            )
        )

        prefix = parse_sort_prefix(raw_section.source_name)
        section = Section(
            id=section_id(root.name, raw_section.source_name),
            display_name=prefix.display_name,
            source_name=raw_section.source_name,
            items=list(items),
            sort_key=prefix.key,
            sort_label=prefix.label,
            preview_image=items[0].preview_image if items else None,
        )
        section.refresh_totals()
        return section, prefix

    async def _build_item(
        self,
        root: DirectoryHandle,
        section_name: str,
        raw: RawItem,
        prefix: SortPrefix,
        *,
        want_preview: bool,
        semaphore: asyncio.Semaphore,
        report: IngestionReport,
    ) -> Item:
        async with semaphore:
            probed, caption = await asyncio.gather(
                self.probe.probe(raw.file_capability, want_preview=want_preview),
                self.captions.match(root, section_name, raw.source_name),
            )

        if not probed.ok:
            report.probe_failures.append(f"{section_name}/{raw.source_name}: {probed.reason}")
        if caption.found:
            report.captions_matched += 1

        return Item(
            id=item_id(root.name, section_name, raw.source_name),
            display_name=prefix.display_name,
            source_name=raw.source_name,
            path=str(raw.file_capability.path),
            size_bytes=raw.size_bytes,
            duration_seconds=probed.duration_seconds,
            sort_key=prefix.key,
            sort_label=prefix.label,
            preview_image=probed.preview_image,
            caption_ref=caption.ref,
        )


__all__ = ["CatalogBuilder"]
