"""Tests for the candidate pool manager."""

from __future__ import annotations

import asyncio

import pytest

from anideck.core.candidate_pool import CandidatePool, CandidatePoolManager, PoolState
from anideck.shared.errors import ApplicationError
from anideck.shared.models import FilterContext
from conftest import FakeCatalog, build_item, page_ids


class TestCandidatePool:
    """Buffer bookkeeping."""

    def test_merge_deduplicates(self) -> None:
        pool = CandidatePool(context=FilterContext())

        assert pool.merge([build_item(1), build_item(2)]) == 2
        assert pool.merge([build_item(2), build_item(3)]) == 1
        assert list(pool.items) == [1, 2, 3]

    def test_available_skips_served_and_excluded(self) -> None:
        pool = CandidatePool(context=FilterContext())
        pool.merge(build_item(i) for i in range(1, 6))
        pool.mark_served([1])

        available = pool.available(lambda media_id: media_id == 2)

        assert [item.mal_id for item in available] == [3, 4, 5]

    @pytest.mark.parametrize(
        ("item_count", "has_next_page", "expected"),
        [
            (5, True, PoolState.READY),
            (2, False, PoolState.READY),
            (2, True, PoolState.READY),
            (0, False, PoolState.EXHAUSTED),
            (0, True, PoolState.EMPTY),
        ],
    )
    def test_refresh_state(self, item_count: int, has_next_page: bool, expected: PoolState) -> None:
        pool = CandidatePool(context=FilterContext(), has_next_page=has_next_page)
        pool.merge(build_item(i) for i in range(1, item_count + 1))

        assert pool.refresh_state(5) is expected


class TestEnsureCandidates:
    """Walking the pagination cursor."""

    @pytest.mark.asyncio
    async def test_stops_once_enough_are_available(self, three_page_catalog: FakeCatalog) -> None:
        manager = CandidatePoolManager(three_page_catalog)

        pool = await manager.ensure_candidates(FilterContext(), 30)

        assert three_page_catalog.pages_requested == [1, 2]
        assert pool.next_page == 3
        assert pool.state is PoolState.READY

    @pytest.mark.asyncio
    async def test_counts_only_unexcluded_items(self, three_page_catalog: FakeCatalog) -> None:
        """Excluded ids do not count towards the minimum."""
        manager = CandidatePoolManager(three_page_catalog)

        pool = await manager.ensure_candidates(FilterContext(), 30, is_excluded=lambda i: i <= 50)

        assert three_page_catalog.pages_requested == [1, 2, 3]
        assert pool.has_next_page is False
        assert pool.available_count(lambda i: i <= 50) == 25

    @pytest.mark.asyncio
    async def test_page_ceiling(self, three_page_catalog: FakeCatalog) -> None:
        manager = CandidatePoolManager(three_page_catalog, max_pages_per_fetch=2)

        pool = await manager.ensure_candidates(FilterContext(), 100)

        assert three_page_catalog.pages_requested == [1, 2]
        assert pool.next_page == 3
        assert pool.state is PoolState.READY

    @pytest.mark.asyncio
    async def test_failed_page_is_retried_on_next_call(self) -> None:
        """A failure ends the walk without advancing the cursor."""
        # Given
        catalog = FakeCatalog([page_ids(1), page_ids(26), page_ids(51)], fail_pages={2})
        manager = CandidatePoolManager(catalog)

        # When
        pool = await manager.ensure_candidates(FilterContext(), 100)

        # Then
        assert pool.next_page == 2
        assert pool.failed_fetches == 1
        assert len(pool.items) == 25

        await manager.ensure_candidates(FilterContext(), 100)

        assert catalog.pages_requested == [1, 2, 2, 3]
        assert len(pool.items) == 75
        assert pool.has_next_page is False

    @pytest.mark.asyncio
    async def test_concurrent_refill_waits_for_running_one(self) -> None:
        """A second caller waits and sees the first refill's pages."""
        catalog = FakeCatalog([page_ids(1), page_ids(26), page_ids(51)], delay=0.01)
        manager = CandidatePoolManager(catalog)
        context = FilterContext()

        first, second = await asyncio.gather(
            manager.ensure_candidates(context, 100),
            manager.ensure_candidates(context, 100),
        )

        assert first is second
        assert catalog.pages_requested == [1, 2, 3]
        assert not manager.is_expanding(context)

    @pytest.mark.asyncio
    async def test_waiting_caller_tops_up_after_running_refill(self) -> None:
        catalog = FakeCatalog([page_ids(1), page_ids(26), page_ids(51)], delay=0.01)
        manager = CandidatePoolManager(catalog)
        context = FilterContext()

        await asyncio.gather(
            manager.ensure_candidates(context, 10),
            manager.ensure_candidates(context, 40),
        )

        assert catalog.pages_requested == [1, 2]
        assert len(manager.get_pool(context).items) == 50

    @pytest.mark.asyncio
    async def test_context_change_replaces_pool(self, three_page_catalog: FakeCatalog) -> None:
        manager = CandidatePoolManager(three_page_catalog)
        genre_context = FilterContext(genres=[1])

        old = await manager.ensure_candidates(FilterContext(), 10)
        new = await manager.ensure_candidates(genre_context, 10)

        assert old is not new
        assert manager.get_pool(FilterContext()) is None
        assert manager.get_pool(genre_context) is new
        assert new.next_page == 2

    @pytest.mark.asyncio
    async def test_exhausted_when_nothing_is_left(self) -> None:
        manager = CandidatePoolManager(FakeCatalog([page_ids(1, 5)]))

        pool = await manager.ensure_candidates(FilterContext(), 10, is_excluded=lambda _: True)

        assert pool.state is PoolState.EXHAUSTED

    @pytest.mark.asyncio
    async def test_min_count_must_be_positive(self, three_page_catalog: FakeCatalog) -> None:
        manager = CandidatePoolManager(three_page_catalog)

        with pytest.raises(ApplicationError):
            await manager.ensure_candidates(FilterContext(), 0)

    def test_page_ceiling_must_be_positive(self, three_page_catalog: FakeCatalog) -> None:
        with pytest.raises(ApplicationError):
            CandidatePoolManager(three_page_catalog, max_pages_per_fetch=0)
