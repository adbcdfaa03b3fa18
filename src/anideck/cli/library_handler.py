"""Library command handlers."""

from __future__ import annotations

import asyncio
import logging
import sys

from rich.console import Console
from rich.table import Table

from anideck.cli.error_handler import handle_cli_errors
from anideck.cli.json_formatter import format_json_output
from anideck.cli.models import LibraryOptions
from anideck.cli.runtime import open_library_store, open_runtime
from anideck.shared.constants import CLIDefaults, CLIMessages, LibraryStatus
from anideck.shared.models import LibraryEntry

logger = logging.getLogger(__name__)

console = Console()


def _write_json(payload: bytes) -> None:
    sys.stdout.buffer.write(payload)
    sys.stdout.buffer.write(b"\n")
    sys.stdout.buffer.flush()


def _format_progress(entry: LibraryEntry) -> str:
    total = entry.total_units if entry.total_units else "?"
    return f"{entry.progress}/{total}"


@handle_cli_errors(operation="handle_library_list", command_name="library list")
def handle_library_list(options: LibraryOptions) -> int:
    """Print the library of a mode, optionally filtered by status."""
    store = open_library_store()
    try:
        entries = store.list_entries(options.mode, options.status)
        top = store.top_genre(options.mode)
    finally:
        store.close()

    if options.json_output:
        _write_json(
            format_json_output(
                success=True,
                command="library list",
                data={"entries": entries, "top_genre": top},
            ),
        )
        return CLIDefaults.EXIT_SUCCESS

    if not entries:
        console.print("[yellow]The library is empty.[/yellow]")
        return CLIDefaults.EXIT_SUCCESS

    mode = options.mode.value
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    for entry in entries:
        table.add_row(
            str(entry.mal_id),
            entry.title,
            entry.status.label(mode),
            _format_progress(entry),
        )
    console.print(table)
    if top is not None:
        console.print(f"Top genre: [bold]{top.name}[/bold] ({top.count} titles)")
    return CLIDefaults.EXIT_SUCCESS


async def _add(options: LibraryOptions) -> LibraryEntry | None:
    async with open_runtime() as runtime:
        item = await runtime.client.get_by_id(options.mode, options.mal_id)
        if item is None:
            return None
        return await asyncio.to_thread(
            runtime.store.upsert,
            item,
            options.mode,
            options.status or LibraryStatus.PLANNED,
            options.progress,
        )


@handle_cli_errors(operation="handle_library_add", command_name="library add")
def handle_library_add(options: LibraryOptions) -> int:
    """Fetch a title by id and file it under a status."""
    entry = asyncio.run(_add(options))
    if entry is None:
        console.print(
            f"[red]{CLIMessages.NOT_FOUND.format(mode=options.mode.value, mal_id=options.mal_id)}[/red]",
        )
        return CLIDefaults.EXIT_ERROR

    if options.json_output:
        _write_json(format_json_output(success=True, command="library add", data=entry))
    else:
        console.print(
            CLIMessages.ADDED.format(
                title=entry.title,
                mal_id=entry.mal_id,
                status=entry.status.label(options.mode.value),
            ),
        )
    return CLIDefaults.EXIT_SUCCESS


@handle_cli_errors(operation="handle_library_remove", command_name="library remove")
def handle_library_remove(options: LibraryOptions) -> int:
    store = open_library_store()
    try:
        removed = store.remove(options.mal_id, options.mode)
    finally:
        store.close()

    if not removed:
        console.print(f"[yellow]{CLIMessages.NOT_IN_LIBRARY.format(mal_id=options.mal_id)}[/yellow]")
        return CLIDefaults.EXIT_ERROR
    console.print(CLIMessages.REMOVED.format(mal_id=options.mal_id))
    return CLIDefaults.EXIT_SUCCESS


@handle_cli_errors(operation="handle_library_progress", command_name="library progress")
def handle_library_progress(options: LibraryOptions) -> int:
    """Move progress of an entry; reaching the total completes it."""
    store = open_library_store()
    try:
        entry = store.update_progress(options.mal_id, options.mode, options.delta)
    finally:
        store.close()

    if options.json_output:
        _write_json(format_json_output(success=True, command="library progress", data=entry))
    else:
        console.print(
            CLIMessages.PROGRESS_UPDATED.format(
                title=entry.title,
                progress=_format_progress(entry),
                status=entry.status.label(options.mode.value),
            ),
        )
    return CLIDefaults.EXIT_SUCCESS
