"""Discovery engine and library configuration models."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from anideck.shared.constants import DiscoveryDefaults, LibraryDefaults


class DiscoverySettings(BaseModel):
    """Candidate pool sizing and session behavior."""

    target_pool_size: int = Field(
        default=DiscoveryDefaults.TARGET_POOL_SIZE,
        gt=0,
        description="Unexcluded candidates a refill aims for",
    )
    low_watermark: int = Field(
        default=DiscoveryDefaults.LOW_WATERMARK,
        ge=0,
        description="Refill when fewer candidates than this remain",
    )
    max_pages_per_fetch: int = Field(
        default=DiscoveryDefaults.MAX_PAGES_PER_FETCH,
        gt=0,
        description="Page ceiling of a single refill call",
    )
    history_limit: int = Field(
        default=DiscoveryDefaults.HISTORY_LIMIT,
        gt=0,
        description="Size of the recently-swiped history ring",
    )
    default_batch_size: int = Field(
        default=DiscoveryDefaults.DEFAULT_BATCH_SIZE,
        gt=0,
    )

    @model_validator(mode="after")
    def _check_watermark(self) -> DiscoverySettings:
        if self.low_watermark > self.target_pool_size:
            msg = "low_watermark cannot exceed target_pool_size"
            raise ValueError(msg)
        return self


class LibrarySettings(BaseModel):
    """Persistent library configuration."""

    db_path: str = Field(
        default=LibraryDefaults.DB_PATH,
        description="SQLite database file",
    )

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


__all__ = ["DiscoverySettings", "LibrarySettings"]
