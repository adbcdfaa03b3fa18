"""
AniDeck Typer CLI Application

Command-line front end of the discovery engine: draw batches, swipe
interactively, browse genres and manage the local library.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from anideck.cli.context import CliContext, LogLevel, set_cli_context
from anideck.cli.discover_handler import (
    handle_discover_command,
    handle_genres_command,
    handle_swipe_command,
)
from anideck.cli.library_handler import (
    handle_library_add,
    handle_library_list,
    handle_library_progress,
    handle_library_remove,
)
from anideck.cli.models import DiscoverOptions, LibraryOptions
from anideck.shared.constants import (
    CLICommands,
    CLIDefaults,
    CLIHelp,
    DiscoveryDefaults,
    LibraryStatus,
)
from anideck.shared.models import MediaMode, SortOrder

__version__ = CLIDefaults.VERSION


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(CLIHelp.VERSION_TEXT.format(version=__version__))
        raise typer.Exit


app = typer.Typer(
    name=CLIHelp.APP_NAME,
    help=CLIHelp.APP_DESCRIPTION,
    rich_markup_mode=CLIHelp.APP_STYLE,
    no_args_is_help=True,
)

library_app = typer.Typer(help=CLIHelp.LIBRARY_HELP, no_args_is_help=True)
app.add_typer(library_app, name=CLICommands.LIBRARY)


def _exit_with(code: int) -> None:
    if code != CLIDefaults.EXIT_SUCCESS:
        raise typer.Exit(code)


@app.callback()
def main(
    log_level: LogLevel = typer.Option(
        LogLevel(CLIDefaults.LOG_LEVEL),
        "--log-level",
        case_sensitive=False,
        help=CLIHelp.LOG_LEVEL_HELP,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        exists=True,
        dir_okay=False,
        help=CLIHelp.CONFIG_HELP,
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Process global options before any command runs."""
    set_cli_context(CliContext(log_level=log_level, config_path=config))


@app.command(CLICommands.DISCOVER, help=CLIHelp.DISCOVER_HELP)
def discover_command(
    mode: MediaMode = typer.Option(MediaMode.ANIME, "--mode", "-m", help=CLIHelp.MODE_HELP),
    genre: List[int] = typer.Option([], "--genre", "-g", help=CLIHelp.GENRE_HELP),
    producer: List[int] = typer.Option([], "--producer", "-p", help=CLIHelp.PRODUCER_HELP),
    query: Optional[str] = typer.Option(None, "--query", "-q", help=CLIHelp.QUERY_HELP),
    order_by: Optional[str] = typer.Option(None, "--order-by", help=CLIHelp.ORDER_BY_HELP),
    sort: Optional[SortOrder] = typer.Option(None, "--sort", help=CLIHelp.SORT_HELP),
    count: int = typer.Option(
        DiscoveryDefaults.DEFAULT_BATCH_SIZE,
        "--count",
        "-n",
        min=1,
        help=CLIHelp.COUNT_HELP,
    ),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    """
    Draw a batch of never-seen titles.

    Examples:
        anideck discover --mode anime --genre 1 --count 5
        anideck discover --mode manga --query berserk --json
    """
    options = DiscoverOptions(
        mode=mode,
        genres=genre,
        producers=producer,
        query=query,
        order_by=order_by,
        sort=sort,
        count=count,
        json_output=json_output,
    )
    _exit_with(handle_discover_command(options))


@app.command(CLICommands.SWIPE, help=CLIHelp.SWIPE_HELP)
def swipe_command(
    mode: MediaMode = typer.Option(MediaMode.ANIME, "--mode", "-m", help=CLIHelp.MODE_HELP),
    genre: List[int] = typer.Option([], "--genre", "-g", help=CLIHelp.GENRE_HELP),
    producer: List[int] = typer.Option([], "--producer", "-p", help=CLIHelp.PRODUCER_HELP),
    query: Optional[str] = typer.Option(None, "--query", "-q", help=CLIHelp.QUERY_HELP),
    count: int = typer.Option(
        DiscoveryDefaults.DEFAULT_BATCH_SIZE,
        "--count",
        "-n",
        min=1,
        help=CLIHelp.COUNT_HELP,
    ),
) -> None:
    """Swipe through titles; likes are saved as planned."""
    options = DiscoverOptions(
        mode=mode,
        genres=genre,
        producers=producer,
        query=query,
        count=count,
    )
    _exit_with(handle_swipe_command(options))


@app.command(CLICommands.GENRES, help=CLIHelp.GENRES_HELP)
def genres_command(
    mode: MediaMode = typer.Option(MediaMode.ANIME, "--mode", "-m", help=CLIHelp.MODE_HELP),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    """List the genres of a catalog."""
    _exit_with(handle_genres_command(mode, json_output=json_output))


@library_app.command(CLICommands.LIST)
def library_list_command(
    mode: MediaMode = typer.Option(MediaMode.ANIME, "--mode", "-m", help=CLIHelp.MODE_HELP),
    status: Optional[LibraryStatus] = typer.Option(None, "--status", "-s", help=CLIHelp.STATUS_HELP),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    """List library entries."""
    options = LibraryOptions(mode=mode, status=status, json_output=json_output)
    _exit_with(handle_library_list(options))


@library_app.command(CLICommands.ADD)
def library_add_command(
    mal_id: int = typer.Argument(..., min=1, help="MyAnimeList id"),
    mode: MediaMode = typer.Option(MediaMode.ANIME, "--mode", "-m", help=CLIHelp.MODE_HELP),
    status: LibraryStatus = typer.Option(LibraryStatus.PLANNED, "--status", "-s", help=CLIHelp.STATUS_HELP),
    progress: int = typer.Option(0, "--progress", min=0, help="Current episode or chapter"),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    """Add a title to the library."""
    options = LibraryOptions(
        mode=mode,
        mal_id=mal_id,
        status=status,
        progress=progress,
        json_output=json_output,
    )
    _exit_with(handle_library_add(options))


@library_app.command(CLICommands.REMOVE)
def library_remove_command(
    mal_id: int = typer.Argument(..., min=1, help="MyAnimeList id"),
    mode: MediaMode = typer.Option(MediaMode.ANIME, "--mode", "-m", help=CLIHelp.MODE_HELP),
) -> None:
    """Remove a title from the library."""
    _exit_with(handle_library_remove(LibraryOptions(mode=mode, mal_id=mal_id)))


@library_app.command(CLICommands.PROGRESS)
def library_progress_command(
    mal_id: int = typer.Argument(..., min=1, help="MyAnimeList id"),
    delta: int = typer.Option(1, "--by", help="Episodes or chapters to add (negative to go back)"),
    mode: MediaMode = typer.Option(MediaMode.ANIME, "--mode", "-m", help=CLIHelp.MODE_HELP),
    json_output: bool = typer.Option(False, "--json", help=CLIHelp.JSON_HELP),
) -> None:
    """Move the progress of a library entry."""
    options = LibraryOptions(mode=mode, mal_id=mal_id, delta=delta, json_output=json_output)
    _exit_with(handle_library_progress(options))


if __name__ == "__main__":
    app()
