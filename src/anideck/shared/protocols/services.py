"""Service protocols for dependency inversion.

The discovery core depends on these protocols only, so it can be driven by
the Jikan client and SQLite store in production and by in-memory fakes in
tests.
"""

from __future__ import annotations

from typing import Protocol

from anideck.shared.constants import LibraryStatus
from anideck.shared.models import FilterContext, MediaItem, MediaMode, PageResult


class CatalogClientProtocol(Protocol):
    """Protocol for the upstream catalog API.

    Example:
        >>> from anideck.services.jikan_client import JikanClient
        >>> client: CatalogClientProtocol = JikanClient()
        >>> page = await client.list_media(FilterContext(mode="anime"), 1)
    """

    async def list_media(self, context: FilterContext, page: int) -> PageResult:
        """Fetch one page of the listing described by ``context``.

        Raises:
            AniDeckNetworkError: If the page cannot be fetched
        """

    async def get_by_id(self, mode: MediaMode, media_id: int) -> MediaItem | None:
        """Fetch a single item, or None if it does not exist."""


class LibraryStoreProtocol(Protocol):
    """Protocol for the persistent library table."""

    def list_ids(self, mode: MediaMode) -> list[int]:
        """Return the ids of every library entry of ``mode``."""

    def upsert(
        self,
        item: MediaItem,
        mode: MediaMode,
        status: LibraryStatus,
        progress: int = 0,
    ) -> None:
        """Insert or update the entry for ``item``."""

    def remove(self, media_id: int, mode: MediaMode) -> bool:
        """Delete an entry; return True if one existed."""
