"""Shared data models for AniDeck."""

from .filter_context import CatalogEndpoint, FilterContext, SortOrder
from .library import LibraryEntry
from .media import Genre, MediaItem, MediaMode, PageResult

__all__ = [
    "CatalogEndpoint",
    "FilterContext",
    "Genre",
    "LibraryEntry",
    "MediaItem",
    "MediaMode",
    "PageResult",
    "SortOrder",
]
