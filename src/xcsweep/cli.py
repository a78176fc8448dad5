"""CLI interface for xcsweep."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable

import click

from xcsweep.core.dispatch import MainQueue
from xcsweep.core.engine import CacheEngine, DeveloperFolderError, Location
from xcsweep.core.listeners import DeleteListener
from xcsweep.models.file_entry import FileEntry, Selection
from xcsweep.settings import KNOWN_KEYS, Settings
from xcsweep.utils import bytes_to_human

_SELECTION_MARKS = {
    Selection.ON: "[x]",
    Selection.OFF: "[ ]",
    Selection.MIXED: "[-]",
}


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


_FOLDER_OPTIONS = (
    click.option(
        "--developer-folder",
        type=click.Path(path_type=Path, file_okay=False),
        default=None,
        help="Developer data folder (default: ~/Library/Developer)",
    ),
    click.option(
        "--derived-data",
        type=click.Path(path_type=Path, file_okay=False),
        default=None,
        help="Additional derived data folder",
    ),
    click.option(
        "--archives",
        type=click.Path(path_type=Path, file_okay=False),
        default=None,
        help="Additional archives folder",
    ),
)


def _folder_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the folder override options shared by scanning commands."""
    for option in reversed(_FOLDER_OPTIONS):
        func = option(func)
    return func


def _build_engine(
    developer_folder: Path | None,
    derived_data: Path | None,
    archives: Path | None,
    main_queue: MainQueue,
) -> CacheEngine:
    settings = Settings()
    try:
        return CacheEngine(
            developer_folder or settings.developer_folder,
            custom_derived_data=derived_data or settings.custom_derived_data,
            custom_archives=archives or settings.custom_archives,
            main_queue=main_queue,
        )
    except DeveloperFolderError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _resolve_locations(values: tuple[str, ...]) -> list[Location]:
    if not values:
        return Location.all()
    return [Location(v) for v in dict.fromkeys(values)]


def _entry_to_dict(entry: FileEntry) -> dict[str, Any]:
    return {
        "label": entry.label,
        "selection": entry.selection.value,
        "size_bytes": entry.size,
        "selected_bytes": entry.selected_size,
        "paths": [str(p) for p in entry.paths],
        "children": [_entry_to_dict(child) for child in entry.children],
    }


def _print_tree(entry: FileEntry, depth: int = 0, max_depth: int = 2) -> None:
    mark = _SELECTION_MARKS[entry.selection]
    size = bytes_to_human(entry.size or 0)
    indent = "  " * (depth + 1)
    if depth == 0:
        label = click.style(entry.label, fg="blue", bold=True)
        size = click.style(size, fg="green", bold=True)
    else:
        label = entry.label
    click.echo(f"{indent}{mark} {label} — {size}")
    if depth < max_depth:
        for child in entry.children:
            _print_tree(child, depth + 1, max_depth)


location_argument = click.argument(
    "locations",
    nargs=-1,
    type=click.Choice([loc.value for loc in Location]),
)


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
def main(verbose: int) -> None:
    """xcsweep — reclaim disk space taken by Xcode caches."""
    _setup_logging(verbose)


# ── scan ─────────────────────────────────────────────────────────────────

@main.command()
@location_argument
@_folder_options
@click.option("--depth", default=2, show_default=True, help="How many levels of entries to show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def scan(
    locations: tuple[str, ...],
    developer_folder: Path | None,
    derived_data: Path | None,
    archives: Path | None,
    depth: int,
    as_json: bool,
) -> None:
    """Scan cache locations (preview only, never deletes)."""
    main_queue = MainQueue()
    requested = _resolve_locations(locations)

    with _build_engine(developer_folder, derived_data, archives, main_queue) as engine:
        if not as_json:
            click.echo(f"\n{click.style('🔍', bold=True)} Scanning {len(requested)} locations...\n")
        main_queue.run_until(engine.start_scan(requested))

        roots = [engine.locations[loc] for loc in requested]
        if as_json:
            data = {loc.value: _entry_to_dict(engine.locations[loc]) for loc in requested}
            click.echo(json.dumps(data, indent=2))
            return

        for root in roots:
            _print_tree(root, max_depth=depth)
            click.echo()

        total = sum(root.size or 0 for root in roots)
        selected = sum(root.selected_size for root in roots)
        click.echo(f"Total: {click.style(bytes_to_human(total), fg='green', bold=True)}")
        click.echo(f"Selected by default: {click.style(bytes_to_human(selected), fg='green', bold=True)}\n")


# ── clean ────────────────────────────────────────────────────────────────

class _ProgressPrinter(DeleteListener):
    """Prints delete progress as events arrive on the main thread."""

    def __init__(self, quiet: bool) -> None:
        self.quiet = quiet
        self.failures: list[dict[str, str]] = []

    def delete_in_progress(self, location: str, label: str, path: Path, current: int, total: int) -> None:
        if not self.quiet:
            click.echo(f"  [{current}/{total}] {location}: {label}")

    def delete_item_failed(self, error: Exception, location: str, label: str, path: Path) -> None:
        self.failures.append({"location": location, "label": label, "path": str(path), "error": str(error)})
        if not self.quiet:
            click.echo(f"  {click.style('✗', fg='red')} {path} — {error}")


@main.command()
@location_argument
@_folder_options
@click.option("--all", "select_all", is_flag=True, help="Select every entry, not only the defaults")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--dry-run", is_flag=True, help="Show what would be deleted without doing it")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def clean(
    locations: tuple[str, ...],
    developer_folder: Path | None,
    derived_data: Path | None,
    archives: Path | None,
    select_all: bool,
    yes: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Scan and delete selected cache entries."""
    main_queue = MainQueue()
    requested = _resolve_locations(locations)

    with _build_engine(developer_folder, derived_data, archives, main_queue) as engine:
        if not as_json:
            click.echo(f"\n{click.style('🔍', bold=True)} Scanning...\n")
        main_queue.run_until(engine.start_scan(requested))

        if select_all:
            for loc in requested:
                engine.locations[loc].select_with_children()
        for root in engine.locations.values():
            root.recalculate_selection()

        targets = engine.collect_selected_targets()
        if not targets:
            if as_json:
                click.echo(json.dumps({"status": "nothing_to_clean", "targets": []}))
            else:
                click.echo("Nothing selected to clean.")
            return

        if not as_json:
            for target in targets:
                click.echo(f"  {click.style('✓', fg='green')} {target.location}: {target.label}")
            click.echo(f"\nTotal: {click.style(bytes_to_human(engine.selected_size), fg='green', bold=True)}\n")

        if not (yes or dry_run or as_json):
            if not click.confirm(f"Delete {len(targets)} item(s)?", default=False):
                click.echo("Aborted.")
                return

        selected_bytes = engine.selected_size
        printer = _ProgressPrinter(quiet=as_json)
        engine.delete_listener = printer

        if not as_json:
            click.echo(f"{click.style('🧹', bold=True)} Deleting...\n")
        main_queue.run_until(engine.start_delete(dry_run=dry_run))

        if as_json:
            data = {
                "status": "dry_run" if dry_run else "cleaned",
                "selected_bytes": selected_bytes,
                "targets": [
                    {"location": t.location, "label": t.label, "path": str(t.path)} for t in targets
                ],
                "failures": printer.failures,
            }
            click.echo(json.dumps(data, indent=2))
            return

        if dry_run:
            click.echo("\n(dry run — no files were deleted)")
        elif printer.failures:
            click.echo(f"\n{len(printer.failures)} of {len(targets)} item(s) could not be deleted.")
        else:
            click.echo(f"\nFreed {click.style(bytes_to_human(selected_bytes), fg='green', bold=True)}\n")


# ── dump ─────────────────────────────────────────────────────────────────

@main.command()
@_folder_options
def dump(developer_folder: Path | None, derived_data: Path | None, archives: Path | None) -> None:
    """Print a diagnostic tree of all locations with sizes."""
    main_queue = MainQueue()
    with _build_engine(developer_folder, derived_data, archives, main_queue) as engine:
        main_queue.run_until(engine.start_scan())
        click.echo(engine.debug_representation(), nl=False)


# ── config ───────────────────────────────────────────────────────────────

@main.group()
def config() -> None:
    """Folder configuration commands."""


@config.command("show")
def config_show() -> None:
    """Show stored settings and effective folders."""
    settings = Settings()
    click.echo(f"  {click.style('Settings file:', bold=True)}  {settings.path}")
    click.echo(f"  {click.style('Developer:', bold=True)}      {settings.developer_folder}")
    click.echo(f"  {click.style('Derived data:', bold=True)}   {settings.custom_derived_data or '-'}")
    click.echo(f"  {click.style('Archives:', bold=True)}       {settings.custom_archives or '-'}")


@config.command("set")
@click.argument("key", type=click.Choice(KNOWN_KEYS))
@click.argument("value", type=click.Path(path_type=Path, file_okay=False))
def config_set(key: str, value: Path) -> None:
    """Store a folder setting."""
    Settings().set(key, str(value.expanduser()))
    click.echo(f"{key} = {value}")


@config.command("unset")
@click.argument("key", type=click.Choice(KNOWN_KEYS))
def config_unset(key: str) -> None:
    """Remove a folder setting."""
    if Settings().unset(key):
        click.echo(f"{key} removed")
    else:
        click.echo(f"{key} was not set")
