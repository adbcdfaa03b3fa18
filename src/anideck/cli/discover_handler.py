"""Discover, swipe and genres command handlers."""

from __future__ import annotations

import asyncio
import logging
import sys

import typer
from rich.console import Console
from rich.table import Table

from anideck.cli.error_handler import handle_cli_errors
from anideck.cli.json_formatter import format_json_output
from anideck.cli.models import DiscoverOptions
from anideck.cli.runtime import open_runtime
from anideck.services.upstream_health import UpstreamState
from anideck.shared.constants import CLIDefaults, CLIMessages, LibraryStatus, SwipeAction
from anideck.shared.models import Genre, MediaItem, MediaMode

logger = logging.getLogger(__name__)

console = Console()


def _write_json(payload: bytes) -> None:
    sys.stdout.buffer.write(payload)
    sys.stdout.buffer.write(b"\n")
    sys.stdout.buffer.flush()


def _media_table(items: list[MediaItem], mode: MediaMode) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Score", justify="right")
    table.add_column("Episodes" if mode is MediaMode.ANIME else "Chapters", justify="right")
    table.add_column("Genres", style="dim")
    for item in items:
        units = item.total_units(mode)
        table.add_row(
            str(item.mal_id),
            item.display_title,
            item.media_type or "-",
            f"{item.score:.2f}" if item.score is not None else "-",
            str(units) if units is not None else "?",
            ", ".join(g.name for g in item.genres),
        )
    return table


def _print_empty(state: UpstreamState) -> None:
    if state is UpstreamState.OFFLINE:
        console.print(f"[yellow]{CLIMessages.UPSTREAM_OFFLINE}[/yellow]")
    else:
        console.print(f"[yellow]{CLIMessages.NOTHING_FOUND}[/yellow]")


async def _discover(options: DiscoverOptions) -> tuple[list[MediaItem], UpstreamState]:
    async with open_runtime() as runtime:
        batch = await runtime.session.get_next_batch(options.to_context(), count=options.count)
        return batch, runtime.session.upstream_state


@handle_cli_errors(operation="handle_discover", command_name="discover")
def handle_discover_command(options: DiscoverOptions) -> int:
    """Draw one batch and print it."""
    batch, state = asyncio.run(_discover(options))

    if options.json_output:
        _write_json(
            format_json_output(
                success=True,
                command="discover",
                data={"items": batch, "upstream": state.value},
            ),
        )
        return CLIDefaults.EXIT_SUCCESS

    if not batch:
        _print_empty(state)
        return CLIDefaults.EXIT_SUCCESS

    console.print(_media_table(batch, options.mode))
    return CLIDefaults.EXIT_SUCCESS


def _render_card(item: MediaItem, mode: MediaMode) -> None:
    console.rule(f"[bold]{item.display_title}[/bold] [dim]#{item.mal_id}[/dim]")
    units = item.total_units(mode)
    details = [
        item.media_type or "-",
        f"score {item.score:.2f}" if item.score is not None else "unscored",
        f"{units} {'episodes' if mode is MediaMode.ANIME else 'chapters'}" if units else "",
        str(item.year) if item.year else "",
    ]
    console.print(" | ".join(d for d in details if d))
    if item.genres:
        console.print("[dim]" + ", ".join(g.name for g in item.genres) + "[/dim]")
    if item.synopsis:
        synopsis = item.synopsis if len(item.synopsis) <= 400 else item.synopsis[:397] + "..."
        console.print(synopsis, highlight=False)


async def _swipe(options: DiscoverOptions) -> tuple[int, int]:
    liked = skipped = 0
    context = options.to_context()

    async with open_runtime() as runtime:
        session = runtime.session
        while True:
            batch = await session.get_next_batch(context, count=options.count)
            if not batch:
                _print_empty(session.upstream_state)
                return liked, skipped

            for item in batch:
                _render_card(item, options.mode)
                choice = typer.prompt(CLIMessages.SWIPE_PROMPT, default="s").strip().lower()
                if choice.startswith("q"):
                    return liked, skipped
                if choice.startswith("l"):
                    await session.accept(item, LibraryStatus.PLANNED)
                    liked += 1
                    console.print(
                        CLIMessages.ADDED.format(
                            title=item.display_title,
                            mal_id=item.mal_id,
                            status=LibraryStatus.PLANNED.label(options.mode.value),
                        ),
                    )
                else:
                    session.record_swipe(item.mal_id, SwipeAction.SKIP)
                    skipped += 1

            # Keep the buffer warm while the user swipes
            session.request_more(context)


@handle_cli_errors(operation="handle_swipe", command_name="swipe")
def handle_swipe_command(options: DiscoverOptions) -> int:
    """Interactive swipe loop."""
    liked, skipped = asyncio.run(_swipe(options))
    console.print(CLIMessages.SESSION_SUMMARY.format(liked=liked, skipped=skipped))
    return CLIDefaults.EXIT_SUCCESS


async def _genres(mode: MediaMode) -> list[Genre]:
    async with open_runtime() as runtime:
        return await runtime.client.get_genres(mode)


@handle_cli_errors(operation="handle_genres", command_name="genres")
def handle_genres_command(mode: MediaMode, *, json_output: bool = False) -> int:
    """List the genres of a catalog."""
    genres = asyncio.run(_genres(mode))

    if json_output:
        _write_json(format_json_output(success=True, command="genres", data=genres))
        return CLIDefaults.EXIT_SUCCESS

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Genre")
    table.add_column("Titles", justify="right")
    for genre in genres:
        table.add_row(str(genre.mal_id), genre.name, str(genre.count) if genre.count is not None else "-")
    console.print(table)
    return CLIDefaults.EXIT_SUCCESS
