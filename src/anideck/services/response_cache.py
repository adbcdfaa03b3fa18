"""In-memory response cache with in-flight request collapsing.

The cache maps a request key to the asyncio task producing its response.
Concurrent callers asking for the same key share one task, so identical
requests cost one round trip. The cache has no TTL of its own; callers pass
``max_age`` when they want completed entries refreshed.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from anideck.shared.errors import ApplicationError, ErrorCode, ErrorContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry:
    """A resolved or in-flight response."""

    task: asyncio.Future[Any]
    created_at: float
    completed_at: float | None = field(default=None)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class ResponseCache:
    """Key to response-task cache.

    Args:
        max_entries: Cap on stored entries; only completed entries are evicted,
            oldest completion first. None means unbounded.
        enabled: When False every call invokes the producer directly
        clock: Monotonic time source
    """

    def __init__(
        self,
        max_entries: int | None = None,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is not None and max_entries <= 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"max_entries must be positive, got: {max_entries}",
                context=ErrorContext(
                    operation="response_cache_init",
                    additional_data={"max_entries": max_entries},
                ),
            )
        self.max_entries = max_entries
        self.enabled = enabled
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._failures = 0

    async def fetch_cached(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        *,
        max_age: float | None = None,
    ) -> T:
        """Return the response for ``key``, producing it at most once.

        Args:
            key: Request key (see ``make_cache_key``)
            producer: Zero-argument callable returning the response awaitable
            max_age: Refresh a completed entry older than this many seconds

        Returns:
            The (possibly shared) response.

        Raises:
            Exception: Whatever the producer raised. The failed entry is
                evicted so a later call retries.
        """
        if not self.enabled:
            return await producer()

        entry = self._entries.get(key)
        if entry is not None and self._is_stale(entry, max_age):
            logger.debug("Cache entry %s is stale, refreshing", key)
            del self._entries[key]
            entry = None

        if entry is None:
            self._misses += 1
            task = asyncio.ensure_future(producer())
            entry = CacheEntry(task=task, created_at=self._clock())
            self._entries[key] = entry
            # Registered before any awaiter so eviction happens first
            task.add_done_callback(functools.partial(self._on_done, key, entry))
        else:
            self._hits += 1

        # A cancelled caller must not cancel the shared request
        return await asyncio.shield(entry.task)

    def _on_done(self, key: str, entry: CacheEntry, task: asyncio.Future[Any]) -> None:
        if task.cancelled() or task.exception() is not None:
            self._failures += 1
            if self._entries.get(key) is entry:
                del self._entries[key]
            return

        entry.completed_at = self._clock()
        self._enforce_limit()

    def _is_stale(self, entry: CacheEntry, max_age: float | None) -> bool:
        if max_age is None or entry.completed_at is None:
            return False
        return self._clock() - entry.completed_at > max_age

    def _enforce_limit(self) -> None:
        if self.max_entries is None or len(self._entries) <= self.max_entries:
            return

        completed = sorted(
            (key for key, entry in self._entries.items() if entry.is_completed),
            key=lambda k: self._entries[k].completed_at or 0.0,
        )
        excess = len(self._entries) - self.max_entries
        for key in completed[:excess]:
            del self._entries[key]
            self._evictions += 1

    def get(self, key: str) -> Any | None:
        """Return a completed response without producing it, or None."""
        entry = self._entries.get(key)
        if entry is None or not entry.is_completed:
            return None
        return entry.task.result()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def age(self, key: str) -> float | None:
        """Seconds since ``key`` completed; None if absent or in flight."""
        entry = self._entries.get(key)
        if entry is None or entry.completed_at is None:
            return None
        return self._clock() - entry.completed_at

    def invalidate(self, key: str) -> bool:
        """Drop ``key``. In-flight awaiters still receive their result."""
        return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``; return how many."""
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        """Return hit/miss counters."""
        return {
            "entries": len(self._entries),
            "in_flight": sum(1 for e in self._entries.values() if not e.is_completed),
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "failures": self._failures,
        }
