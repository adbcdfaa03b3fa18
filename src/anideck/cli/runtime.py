"""Wiring of the discovery stack for CLI commands.

Objects come from the application container, so every command in the
process shares one request gate and one response cache.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from anideck.cli.context import get_cli_context
from anideck.config import Settings, get_config, reload_config
from anideck.containers import container
from anideck.core import DiscoverySession
from anideck.services import JikanClient, LibraryStore
from anideck.shared.logging import setup_structured_logger

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Objects a command works with."""

    settings: Settings
    client: JikanClient
    store: LibraryStore
    session: DiscoverySession


def load_cli_settings() -> Settings:
    """Load settings honoring ``--config`` and set up logging."""
    cli_context = get_cli_context()
    settings = reload_config(cli_context.config_path) if cli_context.config_path else get_config()

    setup_structured_logger(
        level=cli_context.log_level.value,
        log_file=settings.logging.file,
        use_rich_console=settings.logging.rich_console,
    )
    return settings


def open_library_store() -> LibraryStore:
    """Load settings and open the library database."""
    load_cli_settings()
    return container.library_store()


@asynccontextmanager
async def open_runtime() -> AsyncIterator[Runtime]:
    """Open the client, store and session; close them on exit."""
    settings = load_cli_settings()
    client = container.jikan_client()
    store = container.library_store()
    session = container.discovery_session(catalog=client, store=store, health=client.health)
    try:
        yield Runtime(settings=settings, client=client, store=store, session=session)
    finally:
        await session.close()
        await client.close()
        store.close()
