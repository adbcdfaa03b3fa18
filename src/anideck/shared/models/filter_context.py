"""Filter context model.

A ``FilterContext`` scopes a candidate pool: the media mode plus every
option that changes which titles the catalog returns. Contexts are
immutable and compare equal iff their canonical serializations match.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from anideck.shared.constants import JikanAPI

from .media import MediaMode


class CatalogEndpoint(str, Enum):
    """Listing endpoint a context draws from."""

    SEARCH = "search"
    TOP = "top"
    SEASON = "season"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class FilterContext(BaseModel):
    """(mode, options) pair scoping a candidate pool.

    Example:
        >>> a = FilterContext(mode="anime", genres=[4, 1])
        >>> b = FilterContext(mode="anime", genres=[1, 4, 4])
        >>> a == b, a.key == b.key
        (True, True)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: MediaMode = MediaMode.ANIME
    genres: tuple[int, ...] = ()
    producers: tuple[int, ...] = ()
    order_by: str | None = None
    sort: SortOrder | None = None
    query: str | None = None
    endpoint: CatalogEndpoint = CatalogEndpoint.SEARCH
    top_filter: str | None = Field(None, description="Top endpoint filter, e.g. airing")
    subtype: str | None = Field(None, description="Top endpoint type, e.g. movie")
    year: int | None = Field(None, gt=1900)
    season: str | None = None

    @field_validator("genres", "producers", mode="before")
    @classmethod
    def _normalize_ids(cls, value: Any) -> tuple[int, ...]:
        if value is None:
            return ()
        if isinstance(value, (int, str)):
            value = [value]
        return tuple(sorted({int(v) for v in value}))

    @field_validator("query", "order_by", "top_filter", "subtype", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("season")
    @classmethod
    def _validate_season(cls, value: str | None) -> str | None:
        if value is None:
            return None
        season = value.lower()
        if season not in JikanAPI.SEASONS:
            msg = f"season must be one of {', '.join(JikanAPI.SEASONS)}, got {value!r}"
            raise ValueError(msg)
        return season

    @model_validator(mode="after")
    def _validate_season_pair(self) -> FilterContext:
        if (self.year is None) != (self.season is None):
            msg = "year and season must be given together"
            raise ValueError(msg)
        if self.endpoint is CatalogEndpoint.SEASON and self.mode is not MediaMode.ANIME:
            msg = "the season endpoint only lists anime"
            raise ValueError(msg)
        return self

    @property
    def key(self) -> str:
        """Canonical serialization of the context."""
        return orjson.dumps(
            self.model_dump(mode="json"),
            option=orjson.OPT_SORT_KEYS,
        ).decode()

    def with_mode(self, mode: MediaMode | str) -> FilterContext:
        """Return a copy of this context for another mode."""
        return self.model_copy(update={"mode": MediaMode(mode)})
