"""Cache configuration model.

The response cache has no TTL of its own; ``reference_max_age`` is the
staleness policy the catalog client applies to genre and producer lists.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from anideck.shared.constants import CacheDefaults


class CacheSettings(BaseModel):
    """Response cache configuration."""

    enabled: bool = Field(default=True, description="Enable response caching")
    max_entries: int | None = Field(
        default=CacheDefaults.MAX_ENTRIES,
        gt=0,
        description="Maximum number of completed entries (None for unbounded)",
    )
    reference_max_age: float = Field(
        default=CacheDefaults.REFERENCE_MAX_AGE,
        gt=0,
        description="Seconds after which genre/producer lists are refetched",
    )


__all__ = ["CacheSettings"]
