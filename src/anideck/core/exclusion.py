"""Exclusion oracle.

Answers "may this title be shown?" for one media mode. A title is excluded
when it sits in the persisted library or in the bounded ring of recently
swiped ids. The ring is session state; the library changes only through
explicit add/remove calls, which are written through to the store.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from anideck.shared.constants import DiscoveryDefaults, LibraryStatus
from anideck.shared.errors import ApplicationError, ErrorCode, ErrorContext
from anideck.shared.models import MediaItem, MediaMode
from anideck.shared.protocols import LibraryStoreProtocol

logger = logging.getLogger(__name__)


class ExclusionOracle:
    """Library ids plus a FIFO history ring.

    Args:
        store: Persistent library store
        mode: Media mode whose library ids are loaded
        history_limit: Capacity of the history ring
    """

    def __init__(
        self,
        store: LibraryStoreProtocol,
        mode: MediaMode = MediaMode.ANIME,
        history_limit: int = DiscoveryDefaults.HISTORY_LIMIT,
    ) -> None:
        if history_limit <= 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"history_limit must be positive, got: {history_limit}",
                context=ErrorContext(
                    operation="exclusion_oracle_init",
                    additional_data={"history_limit": history_limit},
                ),
            )
        self.store = store
        self.history_limit = history_limit
        self._history: deque[int] = deque(maxlen=history_limit)
        self._library_ids: set[int] = set()
        self._write_lock = asyncio.Lock()
        self.mode = MediaMode(mode)
        self.load(self.mode)

    def load(self, mode: MediaMode) -> None:
        """(Re)seed library ids from the store for ``mode``."""
        self.mode = MediaMode(mode)
        self._library_ids = set(self.store.list_ids(self.mode))
        logger.debug("Loaded %d library ids for %s", len(self._library_ids), self.mode.value)

    async def reload(self, mode: MediaMode) -> None:
        """Like ``load`` but reads the store off the event loop."""
        ids = await asyncio.to_thread(self.store.list_ids, MediaMode(mode))
        self.mode = MediaMode(mode)
        self._library_ids = set(ids)
        logger.debug("Reloaded %d library ids for %s", len(self._library_ids), self.mode.value)

    @property
    def history(self) -> tuple[int, ...]:
        """Recently consumed ids, oldest first."""
        return tuple(self._history)

    @property
    def library_ids(self) -> frozenset[int]:
        return frozenset(self._library_ids)

    def is_in_library(self, media_id: int) -> bool:
        return media_id in self._library_ids

    def is_excluded(self, media_id: int) -> bool:
        """True if ``media_id`` is in the library or the history ring."""
        return media_id in self._library_ids or media_id in self._history

    def record_consumed(self, media_id: int) -> None:
        """Push ``media_id`` into the history ring, evicting the oldest.

        Eviction follows insertion order; an id already in the ring keeps
        its slot.
        """
        if media_id not in self._history:
            self._history.append(media_id)

    async def record_library_add(
        self,
        item: MediaItem,
        status: LibraryStatus = LibraryStatus.PLANNED,
        progress: int = 0,
    ) -> None:
        """Persist ``item`` into the library and exclude it from now on."""
        async with self._write_lock:
            await asyncio.to_thread(self.store.upsert, item, self.mode, LibraryStatus(status), progress)
            self._library_ids.add(item.mal_id)

    async def record_library_remove(self, media_id: int) -> bool:
        """Remove ``media_id`` from the library; True if it was there."""
        async with self._write_lock:
            removed = await asyncio.to_thread(self.store.remove, media_id, self.mode)
            self._library_ids.discard(media_id)
        return removed

    def reset(self) -> None:
        """Clear the history ring; the library is untouched."""
        self._history.clear()
