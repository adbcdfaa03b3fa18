"""Candidate pool manager.

Keeps a growing, deduplicated buffer of catalog items for the current
filter context and walks the upstream pagination cursor when the buffer
runs low. A pool belongs to exactly one context; switching context drops it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

from anideck.shared.constants import DiscoveryDefaults
from anideck.shared.errors import (
    AniDeckError,
    create_validation_error,
)
from anideck.shared.logging import (
    log_operation_error,
    log_operation_start,
    log_operation_success,
)
from anideck.shared.models import FilterContext, MediaItem
from anideck.shared.protocols import CatalogClientProtocol

logger = logging.getLogger(__name__)

ExclusionCheck = Callable[[int], bool]


class PoolState(str, Enum):
    """Lifecycle of a candidate pool.

    ``EMPTY`` nothing servable yet, ``FILLING`` a refill is running,
    ``READY`` servable, ``EXHAUSTED`` no more pages and nothing available.
    """

    EMPTY = "empty"
    FILLING = "filling"
    READY = "ready"
    EXHAUSTED = "exhausted"


@dataclass
class CandidatePool:
    """Fetched items of one context plus its pagination cursor."""

    context: FilterContext
    items: dict[int, MediaItem] = field(default_factory=dict)
    next_page: int = 1
    has_next_page: bool = True
    state: PoolState = PoolState.EMPTY
    served: set[int] = field(default_factory=set)
    revived: bool = False
    pages_fetched: int = 0
    failed_fetches: int = 0

    def merge(self, items: Iterable[MediaItem]) -> int:
        """Add unseen items in arrival order; return how many were new."""
        added = 0
        for item in items:
            if item.mal_id not in self.items:
                self.items[item.mal_id] = item
                added += 1
        return added

    def available(self, is_excluded: ExclusionCheck | None = None) -> list[MediaItem]:
        """Items neither served from this pool nor excluded."""
        return [
            item
            for mal_id, item in self.items.items()
            if mal_id not in self.served and not (is_excluded and is_excluded(mal_id))
        ]

    def available_count(self, is_excluded: ExclusionCheck | None = None) -> int:
        return len(self.available(is_excluded))

    def mark_served(self, ids: Iterable[int]) -> None:
        self.served.update(ids)

    def clear_served(self) -> None:
        self.served.clear()

    def refresh_state(self, min_count: int, is_excluded: ExclusionCheck | None = None) -> PoolState:
        """Recompute ``state`` from the buffer and the cursor."""
        available = self.available_count(is_excluded)
        if available >= min_count or (available > 0 and not self.has_next_page):
            self.state = PoolState.READY
        elif not self.has_next_page:
            self.state = PoolState.EXHAUSTED
        elif available > 0:
            # Refill stopped early (page ceiling or upstream failure)
            self.state = PoolState.READY
        else:
            self.state = PoolState.EMPTY
        return self.state


class CandidatePoolManager:
    """Owns the pool of the current context and refills it.

    Args:
        client: Upstream catalog
        max_pages_per_fetch: Page ceiling of one ``ensure_candidates`` call
    """

    def __init__(
        self,
        client: CatalogClientProtocol,
        max_pages_per_fetch: int = DiscoveryDefaults.MAX_PAGES_PER_FETCH,
    ) -> None:
        if max_pages_per_fetch <= 0:
            raise create_validation_error(
                f"max_pages_per_fetch must be positive, got: {max_pages_per_fetch}",
                field="max_pages_per_fetch",
                operation="candidate_pool_manager_init",
            )
        self.client = client
        self.max_pages_per_fetch = max_pages_per_fetch
        self._pool: CandidatePool | None = None
        self._in_flight: dict[str, asyncio.Event] = {}

    def get_pool(self, context: FilterContext | None = None) -> CandidatePool | None:
        """Current pool, or None if there is none for ``context``."""
        if self._pool is None:
            return None
        if context is not None and self._pool.context != context:
            return None
        return self._pool

    def is_expanding(self, context: FilterContext) -> bool:
        return context.key in self._in_flight

    def discard(self) -> None:
        """Drop the current pool."""
        if self._pool is not None:
            logger.debug("Discarding pool with %d items", len(self._pool.items))
        self._pool = None

    def _pool_for(self, context: FilterContext) -> CandidatePool:
        if self._pool is None or self._pool.context != context:
            if self._pool is not None:
                logger.debug("Filter context changed, replacing pool")
            self._pool = CandidatePool(context=context)
        return self._pool

    async def ensure_candidates(
        self,
        context: FilterContext,
        min_count: int,
        *,
        is_excluded: ExclusionCheck | None = None,
    ) -> CandidatePool:
        """Fetch pages until ``min_count`` items are available.

        Stops early when upstream has no next page, when the page ceiling
        is reached, or when a fetch fails. A failed page is not skipped;
        the next call starts from it again. A call arriving while a refill
        of the same context runs waits for it, then tops up what is missing.

        Args:
            context: Filter context of the pool
            min_count: Available items wanted
            is_excluded: Exclusion predicate applied when counting

        Returns:
            The (possibly partially) filled pool.

        Raises:
            ApplicationError: If ``min_count`` is not positive
        """
        if min_count <= 0:
            raise create_validation_error(
                f"min_count must be positive, got: {min_count}",
                field="min_count",
                operation="ensure_candidates",
            )

        key = context.key
        while key in self._in_flight:
            logger.debug("Refill already running for this context, waiting for it")
            await self._in_flight[key].wait()

        pool = self._pool_for(context)
        done = asyncio.Event()
        self._in_flight[key] = done
        log_operation_start(
            logger,
            operation="expand_pool",
            context={"next_page": pool.next_page, "min_count": min_count},
        )
        started = time.perf_counter()
        pages = 0
        try:
            while (
                pool.available_count(is_excluded) < min_count
                and pool.has_next_page
                and pages < self.max_pages_per_fetch
            ):
                pool.state = PoolState.FILLING
                page_number = pool.next_page
                try:
                    page = await self.client.list_media(context, page_number)
                except AniDeckError as e:
                    pool.failed_fetches += 1
                    log_operation_error(
                        logger,
                        e,
                        operation="expand_pool",
                        additional_context={"page": page_number},
                        level=logging.WARNING,
                    )
                    break

                pages += 1
                pool.pages_fetched += 1
                pool.merge(page.items)
                pool.has_next_page = page.has_next_page
                if page.has_next_page:
                    pool.next_page = page_number + 1
        finally:
            self._in_flight.pop(key, None)
            done.set()
            pool.refresh_state(min_count, is_excluded)

        log_operation_success(
            logger,
            operation="expand_pool",
            duration_ms=(time.perf_counter() - started) * 1000,
            result_info={
                "pages": pages,
                "pool_size": len(pool.items),
                "state": pool.state.value,
            },
        )
        return pool
