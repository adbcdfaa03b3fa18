"""Discovery session: the recommendation engine facade.

A ``DiscoverySession`` hands out batches of never-seen titles for a filter
context. It combines the exclusion oracle (library plus recent swipes) with
the candidate pool manager, samples uniformly at random from what is
available and remembers what it already served so nothing repeats within
the session.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Iterable, Sequence

from anideck.config.models.discovery_settings import DiscoverySettings
from anideck.core.candidate_pool import CandidatePool, CandidatePoolManager
from anideck.core.exclusion import ExclusionOracle
from anideck.services.upstream_health import UpstreamHealthMonitor, UpstreamState
from anideck.shared.constants import GenreLogic, LibraryStatus, SwipeAction
from anideck.shared.errors import create_validation_error
from anideck.shared.models import FilterContext, Genre, MediaItem, MediaMode
from anideck.shared.protocols import CatalogClientProtocol, LibraryStoreProtocol

logger = logging.getLogger(__name__)


class DiscoverySession:
    """Recommendation engine for one user-facing discovery run.

    Args:
        catalog: Upstream catalog client
        store: Persistent library store
        settings: Pool sizing and history settings
        health: Upstream health monitor whose state is reported to callers
        mode: Initial media mode
        rng: Random source used for sampling

    Example:
        >>> session = DiscoverySession(client, store)
        >>> batch = await session.get_next_batch(FilterContext(mode="anime"), count=10)
        >>> session.record_swipe(batch[0].mal_id, SwipeAction.SKIP)
    """

    def __init__(
        self,
        catalog: CatalogClientProtocol,
        store: LibraryStoreProtocol,
        *,
        settings: DiscoverySettings | None = None,
        health: UpstreamHealthMonitor | None = None,
        mode: MediaMode = MediaMode.ANIME,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or DiscoverySettings()
        self.catalog = catalog
        self.health = health
        self.oracle = ExclusionOracle(store, mode, self.settings.history_limit)
        self.pool_manager = CandidatePoolManager(
            catalog,
            max_pages_per_fetch=self.settings.max_pages_per_fetch,
        )
        self._rng = rng or random.Random()
        self._background: set[asyncio.Task[CandidatePool]] = set()

    @property
    def mode(self) -> MediaMode:
        return self.oracle.mode

    @property
    def upstream_state(self) -> UpstreamState:
        """NORMAL unless a health monitor reports otherwise."""
        if self.health is None:
            return UpstreamState.NORMAL
        return self.health.state

    async def _switch_mode(self, mode: MediaMode) -> None:
        if mode is not self.oracle.mode:
            logger.debug("Switching discovery mode to %s", mode.value)
            # Ids are only unique within a mode
            self.oracle.reset()
            await self.oracle.reload(mode)

    def _target(self, count: int) -> int:
        return max(count, self.settings.target_pool_size)

    async def get_next_batch(
        self,
        context: FilterContext,
        exclude_ids: Iterable[int] | None = None,
        count: int | None = None,
    ) -> list[MediaItem]:
        """Return up to ``count`` never-served, non-excluded titles.

        Args:
            context: Filter context to draw from
            exclude_ids: Extra ids the caller wants kept out of this batch
            count: Batch size (defaults to ``discovery.default_batch_size``)

        Returns:
            A uniformly random selection; fewer items, possibly none, when
            the context has run dry.

        Raises:
            ApplicationError: If ``count`` is not positive
        """
        if count is None:
            count = self.settings.default_batch_size
        if count <= 0:
            raise create_validation_error(
                f"count must be positive, got: {count}",
                field="count",
                operation="get_next_batch",
            )

        await self._switch_mode(context.mode)
        extra = frozenset(exclude_ids or ())

        def is_excluded(media_id: int) -> bool:
            return media_id in extra or self.oracle.is_excluded(media_id)

        pool = self.pool_manager.get_pool(context)
        if pool is None or pool.available_count(is_excluded) < max(count, self.settings.low_watermark):
            pool = await self.pool_manager.ensure_candidates(
                context,
                self._target(count),
                is_excluded=is_excluded,
            )

        available = pool.available(is_excluded)
        if not available and pool.items and not pool.revived and not pool.has_next_page:
            # Upstream is exhausted; let recent titles come back once
            logger.info("Candidate pool ran dry, clearing recent history")
            pool.revived = True
            self.oracle.reset()
            pool.clear_served()
            available = pool.available(is_excluded)
            pool.refresh_state(1, is_excluded)

        if not available:
            logger.info("No candidates available for this context")
            return []

        batch = self._rng.sample(available, min(count, len(available)))
        pool.mark_served(item.mal_id for item in batch)
        logger.debug("Served %d of %d available candidates", len(batch), len(available))
        return batch

    def record_swipe(self, media_id: int, action: SwipeAction | str = SwipeAction.SKIP) -> None:
        """Remember a swiped title so it does not come back soon.

        A like is expected to be persisted by the caller (see ``accept``).
        """
        action = SwipeAction(action)
        self.oracle.record_consumed(media_id)
        logger.debug("Recorded %s on %d", action.value, media_id)

    async def accept(
        self,
        item: MediaItem,
        status: LibraryStatus = LibraryStatus.PLANNED,
        progress: int = 0,
    ) -> None:
        """Persist ``item`` into the library and record a like."""
        await self.oracle.record_library_add(item, status, progress)
        self.record_swipe(item.mal_id, SwipeAction.LIKE)

    async def remove_from_library(self, media_id: int) -> bool:
        """Drop a title from the library of the current mode."""
        return await self.oracle.record_library_remove(media_id)

    async def refresh_library(self) -> None:
        """Reload library ids after the store was changed elsewhere."""
        await self.oracle.reload(self.oracle.mode)

    def reset_session(self) -> None:
        """Start a fresh run: clear recent history and drop the pool."""
        for task in list(self._background):
            task.cancel()
        self.oracle.reset()
        self.pool_manager.discard()
        logger.debug("Discovery session reset")

    def request_more(self, context: FilterContext) -> int:
        """Low-buffer trigger.

        Starts a background refill when fewer than ``low_watermark``
        candidates remain and upstream has more pages. A later
        ``get_next_batch`` for the same context waits for that refill.

        Returns:
            Number of candidates available right now.
        """
        pool = self.pool_manager.get_pool(context)
        available = pool.available_count(self.oracle.is_excluded) if pool else 0
        has_more = pool is None or pool.has_next_page

        if available < self.settings.low_watermark and has_more and not self.pool_manager.is_expanding(context):
            task = asyncio.get_running_loop().create_task(self._refill(context))
            self._background.add(task)
            task.add_done_callback(self._background_done)
        return available

    async def _refill(self, context: FilterContext) -> CandidatePool:
        await self._switch_mode(context.mode)
        return await self.pool_manager.ensure_candidates(
            context,
            self.settings.target_pool_size,
            is_excluded=self.oracle.is_excluded,
        )

    def _background_done(self, task: asyncio.Task[CandidatePool]) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Background refill failed", exc_info=task.exception())

    async def wait_for_refills(self) -> None:
        """Wait for background refills started by ``request_more``."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def get_next_recommendation(self, context: FilterContext) -> MediaItem | None:
        """Draw a single title and record it as consumed."""
        batch = await self.get_next_batch(context, count=1)
        if not batch:
            return None
        self.record_swipe(batch[0].mal_id, SwipeAction.SKIP)
        return batch[0]

    async def get_random_recommendation(
        self,
        mode: MediaMode,
        genres: Sequence[Genre],
        selected_ids: Iterable[int],
        logic: GenreLogic | str = GenreLogic.OR,
    ) -> MediaItem | None:
        """Pick one title driven by a genre selection.

        With ``OR`` one selected genre is chosen at random, unless every
        genre is selected, in which case no genre filter applies. With
        ``AND`` all selected genres must match.

        Returns:
            A title, or None if nothing is selected or nothing matches.
        """
        selected = set(selected_ids)
        active = [genre for genre in genres if genre.mal_id in selected]
        if not active:
            return None

        if GenreLogic(logic) is GenreLogic.OR:
            if len(active) == len(genres):
                genre_ids: list[int] = []
            else:
                genre_ids = [self._rng.choice(active).mal_id]
        else:
            genre_ids = [genre.mal_id for genre in active]

        context = FilterContext(mode=mode, genres=genre_ids)
        return await self.get_next_recommendation(context)

    async def close(self) -> None:
        """Cancel background refills."""
        for task in list(self._background):
            task.cancel()
        await self.wait_for_refills()
