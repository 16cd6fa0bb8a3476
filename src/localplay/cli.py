"""Command line interface for LocalPlay."""

from __future__ import annotations

import asyncio
import copy
import difflib
from pathlib import Path
from typing import Any, Awaitable, Callable, NoReturn, Optional, TypeVar

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from localplay.capabilities import (
    CapabilityAbandonedError,
    CapabilityDeniedError,
    FilesystemPermissions,
)
from localplay.catalog import Collection, EmptyCatalogError
from localplay.config import ConfigError, ConfigManager, LocalPlayConfig, resolve_with_precedence
from localplay.config.resolver import assign_path
from localplay.formatting import (
    format_display_name,
    format_duration,
    format_file_size,
    format_total_duration,
)
from localplay.ingestion import IngestionReport
from localplay.library import Library
from localplay.logs import configure_logging
from localplay.state import MissingStateError, StateError

console = Console()

T = TypeVar("T")


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> NoReturn:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output.
        click.ClickException: For non-JSON flows.
    """
    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)
    raise click.ClickException(message) from original


def _load_config() -> LocalPlayConfig:
    manager = ConfigManager()
    try:
        config = manager.load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_logging(config.logging, Path(config.storage.path).expanduser())
    return config


def _prompt_for_access(path: Path) -> Optional[bool]:
    try:
        return click.confirm(f"LocalPlay needs read access to {path}. Grant access?", default=True)
    except click.Abort:
        return None


def _run_with_library(
    action: Callable[[Library], Awaitable[T]], *, json_output: bool = False
) -> T:
    """Open the library, run ``action``, and translate domain errors for the CLI."""
    config = _load_config()

    async def _main() -> T:
        library = await Library.open(
            config, permissions=FilesystemPermissions(prompt=_prompt_for_access)
        )
        return await action(library)

    try:
        return asyncio.run(_main())
    except EmptyCatalogError as exc:
        _handle_cli_error(str(exc), code="empty_catalog", json_output=json_output, original=exc)
    except CapabilityDeniedError as exc:
        _handle_cli_error(str(exc), code="capability_denied", json_output=json_output, original=exc)
    except MissingStateError as exc:
        _handle_cli_error(str(exc), code="not_found", json_output=json_output, original=exc)
    except StateError as exc:
        _handle_cli_error(
            f"Storage unavailable: {exc}", code="store_unavailable", json_output=json_output, original=exc
        )


def _name(config: LocalPlayConfig, value: str) -> str:
    return format_display_name(value, config.cli.replace_underscores)


def _collection_summary(collection: Collection, percent: int) -> dict[str, Any]:
    return {
        "id": collection.id,
        "title": collection.display_name,
        "sections": collection.section_count,
        "items": collection.item_count,
        "total_duration_seconds": collection.total_duration_seconds,
        "progress": percent,
    }


def _emit_report(report: IngestionReport) -> None:
    for name in report.sections_discarded:
        console.print(f"[yellow]Skipped '{name}': no media files.[/yellow]")
    if report.probe_failures:
        console.print(
            f"[yellow]{len(report.probe_failures)} item(s) could not be probed; "
            "durations will be filled in during playback.[/yellow]"
        )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="localplay")
def cli() -> None:
    """LocalPlay catalogs local video courses and remembers where you left off."""


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Emit the collection summary as JSON.")
def add(path: Path, json_output: bool) -> None:
    """Ingest the folder at PATH as a collection."""
    report = IngestionReport()

    async def _add(library: Library) -> Optional[Collection]:
        try:
            return await library.add_folder(path, report)
        except CapabilityAbandonedError:
            return None

    collection = _run_with_library(_add, json_output=json_output)
    if collection is None:
        return

    if json_output:
        console.print_json(data=_collection_summary(collection, 0))
        return
    _emit_report(report)
    console.print(
        f"[green]Added {collection.display_name} ({collection.id}): "
        f"{collection.section_count} sections, {collection.item_count} items, "
        f"{format_total_duration(collection.total_duration_seconds)}.[/green]"
    )


@cli.command()
@click.argument("collection_id")
def rescan(collection_id: str) -> None:
    """Re-ingest COLLECTION_ID from its saved folder access."""
    report = IngestionReport()
    collection = _run_with_library(lambda library: library.rescan(collection_id, report))
    _emit_report(report)
    console.print(
        f"[green]Rescanned {collection.display_name}: {collection.section_count} sections, "
        f"{collection.item_count} items.[/green]"
    )


@cli.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit collections as JSON.")
def list_collections(json_output: bool) -> None:
    """List stored collections with their progress."""

    async def _list(library: Library) -> list[tuple[Collection, int]]:
        collections = await library.collections()
        return [(c, await library.collection_progress(c)) for c in collections]

    rows = _run_with_library(_list, json_output=json_output)
    if json_output:
        console.print_json(data={"collections": [_collection_summary(c, p) for c, p in rows]})
        return
    if not rows:
        console.print("[yellow]No collections yet. Add one with `localplay add PATH`.[/yellow]")
        return

    config = _load_config()
    table = Table(title="Collections")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Sections", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("Progress", justify="right")
    for collection, percent in rows:
        table.add_row(
            collection.id,
            _name(config, collection.display_name),
            str(collection.section_count),
            str(collection.item_count),
            format_total_duration(collection.total_duration_seconds),
            f"{percent}%",
        )
    console.print(table)


@cli.command()
@click.argument("collection_id")
def show(collection_id: str) -> None:
    """Show sections and items of COLLECTION_ID."""

    async def _show(library: Library):
        collection = await library.collection(collection_id)
        records = await library.progress.records_by_item()
        percents = {s.id: await library.section_progress(s) for s in collection.sections}
        return collection, records, percents, library.progress

    config = _load_config()
    collection, records, percents, progress = _run_with_library(_show)
    console.print(
        f"[bold]{_name(config, collection.display_name)}[/bold] "
        f"({format_total_duration(collection.total_duration_seconds)})"
    )
    for section in collection.sections:
        table = Table(
            title=f"{_name(config, section.display_name)} ({percents[section.id]}%)",
            title_justify="left",
        )
        table.add_column("#", justify="right")
        table.add_column("Item")
        table.add_column("Length", justify="right")
        table.add_column("Size", justify="right")
        table.add_column("Watched", justify="right")
        table.add_column("CC")
        for item in section.items:
            record = records.get(item.id)
            watched = "done" if progress.is_complete(record) else (
                f"{record.percentage:.0f}%" if record else ""
            )
            table.add_row(
                item.sort_label,
                _name(config, item.display_name),
                format_duration(item.duration_seconds),
                format_file_size(item.size_bytes),
                watched,
                "yes" if item.caption_ref else "",
            )
        console.print(table)


@cli.command()
@click.option("--limit", type=int, help="Number of items to show.")
def recent(limit: Optional[int]) -> None:
    """Show recently watched items across collections."""
    config = _load_config()
    count = limit if limit is not None else config.cli.recent_limit

    entries = _run_with_library(lambda library: library.recent(count))
    if not entries:
        console.print("[yellow]Nothing watched recently.[/yellow]")
        return
    for collection, item in entries:
        console.print(f"{_name(config, collection.display_name)} / {_name(config, item.display_name)} [dim]{item.id}[/dim]")


@cli.command()
@click.argument("collection_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
def remove(collection_id: str, yes: bool) -> None:
    """Remove COLLECTION_ID, its progress, and its saved folder access."""
    if not yes:
        click.confirm(f"Remove {collection_id} and all of its progress?", abort=True)
    removed = _run_with_library(lambda library: library.remove_collection(collection_id))
    if not removed:
        raise click.ClickException(f"No collection stored with id {collection_id!r}.")
    console.print(f"[green]Removed {collection_id}.[/green]")


def _bulk(collection_id: str, section_id: Optional[str], complete: bool) -> str:
    async def _apply(library: Library) -> str:
        collection = await library.collection(collection_id)
        if section_id is None:
            if complete:
                await library.progress.complete_collection(collection)
            else:
                await library.progress.reset_collection(collection)
            return collection.display_name
        section = collection.find_section(section_id)
        if section is None:
            raise MissingStateError(f"No section {section_id!r} in {collection_id!r}.")
        if complete:
            await library.progress.complete_section(section)
        else:
            await library.progress.reset_section(section)
        return section.display_name

    return _run_with_library(_apply)


@cli.command()
@click.argument("collection_id")
@click.option("--section", "section_id", help="Only reset this section.")
def reset(collection_id: str, section_id: Optional[str]) -> None:
    """Reset progress for COLLECTION_ID (or one of its sections)."""
    name = _bulk(collection_id, section_id, complete=False)
    console.print(f"[green]Progress reset for {name}.[/green]")


@cli.command()
@click.argument("collection_id")
@click.option("--section", "section_id", help="Only complete this section.")
def complete(collection_id: str, section_id: Optional[str]) -> None:
    """Mark COLLECTION_ID (or one of its sections) as watched."""
    name = _bulk(collection_id, section_id, complete=True)
    console.print(f"[green]Marked {name} as watched.[/green]")


@cli.command()
@click.argument("item_id")
def captions(item_id: str) -> None:
    """Print the caption cues matched to ITEM_ID."""

    async def _captions(library: Library):
        _, _, item = await library.find_item(item_id)
        return await library.captions(item)

    cues = _run_with_library(_captions)
    if not cues:
        console.print("[yellow]No captions for this item.[/yellow]")
        return
    for cue in cues:
        console.print(
            f"[dim]{format_duration(cue.start_seconds)} → {format_duration(cue.end_seconds)}[/dim] {cue.text}"
        )


@cli.group()
def progress() -> None:
    """Inspect and edit per-item playback progress."""


@progress.command("record")
@click.argument("item_id")
@click.argument("position", type=float)
@click.argument("duration", type=float)
def progress_record(item_id: str, position: float, duration: float) -> None:
    """Record POSITION of DURATION seconds for ITEM_ID."""
    record = _run_with_library(lambda library: library.progress.record(item_id, position, duration))
    console.print(f"[green]Saved {item_id} at {format_duration(record.position_seconds)}.[/green]")


@progress.command("complete")
@click.argument("item_id")
def progress_complete(item_id: str) -> None:
    """Mark ITEM_ID as watched."""

    async def _complete(library: Library):
        _, _, item = await library.find_item(item_id)
        return await library.progress.mark_complete(item.id, item.duration_seconds)

    _run_with_library(_complete)
    console.print(f"[green]Marked {item_id} as watched.[/green]")


@progress.command("clear")
@click.argument("item_id")
def progress_clear(item_id: str) -> None:
    """Delete the saved progress of ITEM_ID."""
    _run_with_library(lambda library: library.progress.clear(item_id))
    console.print(f"[green]Cleared progress for {item_id}.[/green]")


@progress.command("forget-recent")
@click.argument("item_id")
def progress_forget_recent(item_id: str) -> None:
    """Hide ITEM_ID from recent items, keeping its resume point."""
    record = _run_with_library(lambda library: library.progress.clear_recency(item_id))
    if record is None:
        raise click.ClickException(f"No progress recorded for {item_id}.")
    console.print(f"[green]Removed {item_id} from recent items.[/green]")


@progress.command("show")
@click.argument("item_id")
@click.option("--json", "json_output", is_flag=True, help="Emit the record as JSON.")
def progress_show(item_id: str, json_output: bool) -> None:
    """Show the saved progress of ITEM_ID."""

    async def _show(library: Library):
        record = await library.progress.get(item_id)
        return record, library.progress.is_complete(record)

    record, done = _run_with_library(_show, json_output=json_output)
    if record is None:
        _handle_cli_error(
            f"No progress recorded for {item_id}.", code="not_found", json_output=json_output
        )
    if json_output:
        console.print_json(data={**record.model_dump(mode="json"), "complete": done})
        return
    console.print(
        f"{item_id}: {format_duration(record.position_seconds)} / "
        f"{format_duration(record.duration_seconds)} ({record.percentage:.0f}%)"
        + (" [green]complete[/green]" if done else "")
    )


@cli.group()
def config() -> None:
    """Manage LocalPlay configuration."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration."""
    manager = ConfigManager()
    try:
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""
    manager = ConfigManager()
    manager.ensure_exists()

    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must be a dotted path such as 'probe.timeout_seconds'.")
    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    before = manager.read_text().splitlines()
    try:
        file_data = manager.load_file_overrides()
        previous = copy.deepcopy(file_data)
        assign_path(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=LocalPlayConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if file_data == previous:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    manager.save(file_data)
    diff = list(
        difflib.unified_diff(
            before,
            manager.read_text().splitlines(),
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
