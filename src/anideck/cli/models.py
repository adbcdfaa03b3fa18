"""Validated option sets of CLI commands."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from anideck.shared.constants import DiscoveryDefaults, LibraryStatus
from anideck.shared.models import FilterContext, MediaMode, SortOrder


class DiscoverOptions(BaseModel):
    """Options of ``discover`` and ``swipe``."""

    model_config = ConfigDict(frozen=True)

    mode: MediaMode = MediaMode.ANIME
    genres: list[int] = Field(default_factory=list)
    producers: list[int] = Field(default_factory=list)
    query: str | None = None
    order_by: str | None = None
    sort: SortOrder | None = None
    count: int = Field(default=DiscoveryDefaults.DEFAULT_BATCH_SIZE, gt=0)
    json_output: bool = False

    def to_context(self) -> FilterContext:
        return FilterContext(
            mode=self.mode,
            genres=self.genres,
            producers=self.producers,
            query=self.query,
            order_by=self.order_by,
            sort=self.sort,
        )


class LibraryOptions(BaseModel):
    """Options shared by ``library`` subcommands."""

    model_config = ConfigDict(frozen=True)

    mode: MediaMode = MediaMode.ANIME
    mal_id: int | None = Field(default=None, gt=0)
    status: LibraryStatus | None = None
    progress: int = Field(default=0, ge=0)
    delta: int = 1
    json_output: bool = False
