"""
Pytest configuration and shared fixtures for AniDeck tests.

Provides catalog items, an in-memory fake of the Jikan catalog and an
in-memory library store so the discovery core can be tested offline.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from anideck.config import reset_config
from anideck.containers import container
from anideck.shared.constants import LibraryStatus
from anideck.shared.errors import ErrorCode, create_api_error
from anideck.shared.models import FilterContext, Genre, MediaItem, MediaMode, PageResult


def build_item(mal_id: int, *, genres: tuple[int, ...] = (), **fields: Any) -> MediaItem:
    """Create a catalog item with sensible defaults."""
    return MediaItem(
        mal_id=mal_id,
        title=fields.pop("title", f"Title {mal_id}"),
        genres=tuple(Genre(mal_id=g, name=f"Genre {g}") for g in genres),
        **fields,
    )


class FakeCatalog:
    """In-memory ``CatalogClientProtocol`` serving fixed pages.

    Args:
        pages: Item ids per page, page 1 first
        fail_pages: Page numbers whose fetches raise a network error
        fail_times: How many fetches of each failing page raise
        delay: Seconds each fetch sleeps (lets tests interleave coroutines)
    """

    def __init__(
        self,
        pages: list[list[int]],
        *,
        fail_pages: set[int] | None = None,
        fail_times: int = 1,
        delay: float = 0.0,
    ) -> None:
        self.pages = pages
        self.failures = {page: fail_times for page in fail_pages or ()}
        self.delay = delay
        self.calls: list[tuple[FilterContext, int]] = []

    async def list_media(self, context: FilterContext, page: int) -> PageResult:
        self.calls.append((context, page))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures.get(page, 0) > 0:
            self.failures[page] -= 1
            raise create_api_error(ErrorCode.API_SERVER_ERROR, "boom", f"anime?page={page}")
        ids = self.pages[page - 1] if 0 < page <= len(self.pages) else []
        return PageResult(
            items=tuple(build_item(i) for i in ids),
            has_next_page=page < len(self.pages),
            last_visible_page=len(self.pages),
            current_page=page,
        )

    async def get_by_id(self, mode: MediaMode, media_id: int) -> MediaItem | None:
        return build_item(media_id)

    @property
    def pages_requested(self) -> list[int]:
        return [page for _, page in self.calls]


class InMemoryLibraryStore:
    """Dict-backed ``LibraryStoreProtocol``."""

    def __init__(self, initial: dict[MediaMode, set[int]] | None = None) -> None:
        self.entries: dict[tuple[MediaMode, int], tuple[MediaItem, LibraryStatus, int]] = {}
        for mode, ids in (initial or {}).items():
            for media_id in ids:
                self.entries[(mode, media_id)] = (build_item(media_id), LibraryStatus.PLANNED, 0)

    def list_ids(self, mode: MediaMode) -> list[int]:
        return [media_id for (m, media_id) in self.entries if m is MediaMode(mode)]

    def upsert(
        self,
        item: MediaItem,
        mode: MediaMode,
        status: LibraryStatus,
        progress: int = 0,
    ) -> None:
        self.entries[(MediaMode(mode), item.mal_id)] = (item, status, progress)

    def remove(self, media_id: int, mode: MediaMode) -> bool:
        return self.entries.pop((MediaMode(mode), media_id), None) is not None


def page_ids(start: int, size: int = 25) -> list[int]:
    return list(range(start, start + size))


@pytest.fixture(autouse=True)
def _isolate_globals(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Keep process-wide singletons and config lookups out of the user's home."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("ANIDECK_LIBRARY__DB_PATH", str(tmp_path / "library.db"))
    reset_config()
    container.reset_singletons()
    yield
    reset_config()
    container.reset_singletons()


@pytest.fixture
def make_item() -> Callable[..., MediaItem]:
    """Factory for catalog items."""
    return build_item


@pytest.fixture
def fake_catalog_factory() -> Callable[..., FakeCatalog]:
    """Factory for ``FakeCatalog`` instances."""
    return FakeCatalog


@pytest.fixture
def three_page_catalog() -> FakeCatalog:
    """Three pages of 25 items: ids 1-25, 26-50, 51-75."""
    return FakeCatalog([page_ids(1), page_ids(26), page_ids(51)])


@pytest.fixture
def memory_store() -> InMemoryLibraryStore:
    return InMemoryLibraryStore()


@pytest.fixture
def memory_store_factory() -> Callable[..., InMemoryLibraryStore]:
    return InMemoryLibraryStore


@pytest.fixture
def anime_context() -> FilterContext:
    return FilterContext(mode=MediaMode.ANIME)


@pytest.fixture
def jikan_anime_payload() -> dict[str, Any]:
    """A single raw Jikan anime entry."""
    return {
        "mal_id": 5114,
        "url": "https://myanimelist.net/anime/5114",
        "images": {
            "jpg": {
                "image_url": "https://cdn.myanimelist.net/images/anime/1223/96541.jpg",
                "large_image_url": "https://cdn.myanimelist.net/images/anime/1223/96541l.jpg",
            },
        },
        "title": "Fullmetal Alchemist: Brotherhood",
        "title_english": "Fullmetal Alchemist: Brotherhood",
        "title_japanese": "鋼の錬金術師 FULLMETAL ALCHEMIST",
        "type": "TV",
        "episodes": 64,
        "status": "Finished Airing",
        "score": 9.1,
        "year": 2009,
        "synopsis": "Two brothers search for the Philosopher's Stone.",
        "genres": [
            {"mal_id": 1, "type": "anime", "name": "Action"},
            {"mal_id": 2, "type": "anime", "name": "Adventure"},
        ],
        "themes": [{"mal_id": 38, "type": "anime", "name": "Military"}],
        "demographics": [{"mal_id": 27, "type": "anime", "name": "Shounen"}],
        "broadcast": {"day": "Sundays"},
    }
