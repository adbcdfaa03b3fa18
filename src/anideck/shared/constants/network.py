"""
Network Configuration Constants

This module contains all constants related to the Jikan catalog API,
the request gate and the response cache.
"""

from typing import ClassVar


class NetworkConfig:
    """HTTP client configuration constants."""

    # Timeout settings (seconds)
    TOTAL_TIMEOUT = 30.0
    CONNECT_TIMEOUT = 10.0

    # Retry settings
    DEFAULT_RETRIES = 3
    RETRY_DELAY = 1.0
    MAX_RETRY_DELAY = 30.0

    # Connection pool
    CONNECTION_LIMIT = 10
    CONNECTION_LIMIT_PER_HOST = 4

    # HTTP headers
    USER_AGENT = "AniDeck/0.1.0"
    ACCEPT_JSON = "application/json"

    # Status codes
    HTTP_NOT_FOUND = 404
    HTTP_TOO_MANY_REQUESTS = 429
    HTTP_SERVER_ERROR = 500


class JikanAPI:
    """Jikan v4 API constants."""

    BASE_URL = "https://api.jikan.moe/v4"

    # Jikan allows ~3 requests/second; 0.5s spacing stays well under it
    REQUEST_DELAY = 0.5
    PAGE_LIMIT = 25
    REFERENCE_LIMIT = 20
    RECOMMENDATION_LIMIT = 10

    # "Kids" demographic, stripped from every payload
    KIDS_GENRE_ID = 15
    KIDS_GENRE_NAME = "kids"

    DEFAULT_ORDER_BY = "popularity"

    # Endpoint templates
    MEDIA_LIST = "{mode}"
    MEDIA_DETAILS = "{mode}/{media_id}/full"
    MEDIA_RECOMMENDATIONS = "{mode}/{media_id}/recommendations"
    TOP_MEDIA = "top/{mode}"
    SEASON = "seasons/{year}/{season}"
    SEASON_NOW = "seasons/now"
    GENRES = "genres/{mode}"
    PRODUCERS = "producers"
    MAGAZINES = "magazines"

    SEASONS: ClassVar[tuple[str, ...]] = ("winter", "spring", "summer", "fall")


class JikanFields:
    """Field names of Jikan JSON payloads."""

    DATA = "data"
    PAGINATION = "pagination"
    HAS_NEXT_PAGE = "has_next_page"
    LAST_VISIBLE_PAGE = "last_visible_page"
    CURRENT_PAGE = "current_page"
    ENTRY = "entry"
    MAL_ID = "mal_id"
    NAME = "name"
    GENRES = "genres"
    THEMES = "themes"
    DEMOGRAPHICS = "demographics"
    EXPLICIT_GENRES = "explicit_genres"
    IMAGES = "images"
    JPG = "jpg"
    IMAGE_URL = "image_url"
    LARGE_IMAGE_URL = "large_image_url"
    TYPE = "type"
    TITLES = "titles"
    COUNT = "count"
    TITLE = "title"


class CacheDefaults:
    """Response cache defaults."""

    # Cap on completed entries; page keys are unbounded
    MAX_ENTRIES = 512
    # Genre/producer lists are refreshed after this many seconds
    REFERENCE_MAX_AGE = 6 * 60 * 60.0
