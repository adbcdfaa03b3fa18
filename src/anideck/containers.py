"""Dependency Injection container for AniDeck.

The container manages:
- Settings (resolved from the loaded configuration on every call)
- The request gate, response cache and upstream health monitor (Singletons
  shared by every catalog client of the process)
- Jikan client, library store and discovery session (Factories)
"""

from __future__ import annotations

from dependency_injector import containers, providers

from anideck.config import get_config
from anideck.core import DiscoverySession
from anideck.services import (
    JikanClient,
    LibraryStore,
    RequestGate,
    ResponseCache,
    RetryPolicy,
    UpstreamHealthMonitor,
)


class Container(containers.DeclarativeContainer):
    """Dependency Injection container for AniDeck services.

    Example:
        >>> container = Container()
        >>> session = container.discovery_session()
        >>> batch = await session.get_next_batch(FilterContext(mode="anime"))
    """

    # Configuration
    config = providers.Callable(get_config)

    # Upstream access shared by every client
    request_gate = providers.Singleton(
        RequestGate,
        min_delay=providers.Callable(
            lambda config: config.api.jikan.request_delay,
            config=config,
        ),
        retry_policy=providers.Callable(
            lambda config: RetryPolicy.from_settings(config.api.jikan),
            config=config,
        ),
    )

    response_cache = providers.Singleton(
        ResponseCache,
        max_entries=providers.Callable(
            lambda config: config.cache.max_entries,
            config=config,
        ),
        enabled=providers.Callable(
            lambda config: config.cache.enabled,
            config=config,
        ),
    )

    upstream_health = providers.Singleton(UpstreamHealthMonitor)

    # Jikan client
    jikan_client = providers.Factory(
        JikanClient,
        settings=providers.Callable(lambda config: config.api.jikan, config=config),
        cache_settings=providers.Callable(lambda config: config.cache, config=config),
        gate=request_gate,
        cache=response_cache,
        health=upstream_health,
    )

    # Persistence
    library_store = providers.Factory(
        LibraryStore,
        db_path=providers.Callable(
            lambda config: config.library.resolved_db_path,
            config=config,
        ),
    )

    # Discovery engine
    discovery_session = providers.Factory(
        DiscoverySession,
        catalog=jikan_client,
        store=library_store,
        settings=providers.Callable(lambda config: config.discovery, config=config),
        health=upstream_health,
    )


container = Container()
