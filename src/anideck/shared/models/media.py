"""Catalog item models.

Pydantic models for the Jikan API payloads consumed by the discovery
engine. Models ignore unknown fields so new upstream fields never break
validation, and are frozen: from the engine's point of view a catalog item
is an opaque value keyed by ``mal_id``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from anideck.shared.constants import JikanAPI, JikanFields


class MediaMode(str, Enum):
    """The two parallel catalogs."""

    ANIME = "anime"
    MANGA = "manga"


class Genre(BaseModel):
    """A genre, theme or demographic tag.

    Example:
        >>> Genre(mal_id=1, name="Action").name
        'Action'
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    mal_id: int = Field(..., description="MyAnimeList tag id")
    name: str = Field("", description="Tag name")
    count: int | None = Field(None, description="Number of titles with this tag")


class MediaItem(BaseModel):
    """A single anime or manga entry.

    Attributes:
        mal_id: MyAnimeList id, the unique key of an item
        title: Default (romanized) title
        title_english: English title if known
        title_japanese: Japanese title if known
        image_url: Poster image
        large_image_url: Large poster image
        episodes: Episode count (anime)
        chapters: Chapter count (manga)
        volumes: Volume count (manga)
        genres: Genre tags
        themes: Theme tags
        demographics: Demographic tags
        synopsis: Plot synopsis
        status: Airing / publishing status text
        score: MyAnimeList score
        media_type: TV, Movie, Manga, Light Novel, ...
        year: Start year
        url: MyAnimeList page
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    mal_id: int = Field(..., gt=0)
    title: str = ""
    title_english: str | None = None
    title_japanese: str | None = None
    image_url: str | None = None
    large_image_url: str | None = None
    episodes: int | None = None
    chapters: int | None = None
    volumes: int | None = None
    genres: tuple[Genre, ...] = ()
    themes: tuple[Genre, ...] = ()
    demographics: tuple[Genre, ...] = ()
    synopsis: str | None = None
    status: str | None = None
    score: float | None = None
    media_type: str | None = None
    year: int | None = None
    url: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> MediaItem:
        """Build an item from a raw Jikan ``data`` entry.

        Flattens the nested ``images.jpg`` block and maps ``type`` to
        ``media_type``.

        Raises:
            pydantic.ValidationError: If ``mal_id`` is missing or invalid
        """
        images = data.get(JikanFields.IMAGES)
        jpg = images.get(JikanFields.JPG) if isinstance(images, dict) else None
        if not isinstance(jpg, dict):
            jpg = {}
        payload = {
            **data,
            "image_url": jpg.get(JikanFields.IMAGE_URL),
            "large_image_url": jpg.get(JikanFields.LARGE_IMAGE_URL),
            "media_type": data.get(JikanFields.TYPE),
            "genres": data.get(JikanFields.GENRES) or (),
            "themes": data.get(JikanFields.THEMES) or (),
            "demographics": data.get(JikanFields.DEMOGRAPHICS) or (),
        }
        return cls.model_validate(payload)

    @property
    def tag_ids(self) -> frozenset[int]:
        """Ids of all genre, theme and demographic tags."""
        return frozenset(
            tag.mal_id for tag in (*self.genres, *self.themes, *self.demographics)
        )

    @property
    def is_kids_content(self) -> bool:
        """True if the item carries the Kids demographic tag."""
        return any(
            tag.mal_id == JikanAPI.KIDS_GENRE_ID
            or tag.name.lower() == JikanAPI.KIDS_GENRE_NAME
            for tag in (*self.genres, *self.themes, *self.demographics)
        )

    @property
    def display_title(self) -> str:
        return self.title_english or self.title or f"#{self.mal_id}"

    def total_units(self, mode: MediaMode | str) -> int | None:
        """Episodes for anime, chapters for manga."""
        return self.episodes if MediaMode(mode) is MediaMode.ANIME else self.chapters


class PageResult(BaseModel):
    """One page of a paginated catalog listing."""

    model_config = ConfigDict(frozen=True)

    items: tuple[MediaItem, ...] = ()
    has_next_page: bool = False
    last_visible_page: int = 1
    current_page: int = 1
