"""Tests for shared models, cache keys and errors."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from anideck.shared.cache_utils import canonical_params, make_cache_key
from anideck.shared.constants import LibraryStatus
from anideck.shared.errors import (
    AniDeckNetworkError,
    ApplicationError,
    ErrorCode,
    ErrorContext,
    RateLimitExceededError,
    create_api_error,
    is_retryable,
)
from anideck.shared.models import CatalogEndpoint, FilterContext, MediaItem, MediaMode


class TestCacheKeys:
    def test_parameter_order_does_not_matter(self) -> None:
        first = make_cache_key("anime", {"page": 1, "genres": (1, 4), "q": None})
        second = make_cache_key("/anime/", {"genres": (1, 4), "page": 1})

        assert first == second == "anime?genres=1,4&page=1"

    def test_empty_values_are_dropped(self) -> None:
        assert canonical_params({"q": "", "genres": (), "sfw": True, "Limit": 25}) == {
            "sfw": "true",
            "limit": "25",
        }
        assert make_cache_key("genres/anime") == "genres/anime"


class TestFilterContext:
    """Context identity and validation."""

    def test_equal_options_give_equal_keys(self) -> None:
        a = FilterContext(mode="anime", genres=[4, 1], query="  ")
        b = FilterContext(mode=MediaMode.ANIME, genres=[1, 4, 4])

        assert a == b
        assert a.key == b.key
        assert a.query is None

    def test_mode_is_part_of_identity(self) -> None:
        anime = FilterContext(genres=[1])

        assert anime.with_mode("manga") != anime
        assert anime.with_mode("manga").genres == (1,)

    def test_year_and_season_go_together(self) -> None:
        with pytest.raises(ValidationError):
            FilterContext(endpoint=CatalogEndpoint.SEASON, year=2024)

    def test_unknown_season(self) -> None:
        with pytest.raises(ValidationError):
            FilterContext(endpoint=CatalogEndpoint.SEASON, year=2024, season="monsoon")

    def test_season_listing_is_anime_only(self) -> None:
        with pytest.raises(ValidationError):
            FilterContext(mode="manga", endpoint=CatalogEndpoint.SEASON)

    def test_unknown_option_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FilterContext(rating="g")


class TestMediaItem:
    def test_from_api(self, jikan_anime_payload: dict[str, Any]) -> None:
        item = MediaItem.from_api(jikan_anime_payload)

        assert item.mal_id == 5114
        assert item.large_image_url.endswith("96541l.jpg")
        assert item.tag_ids == frozenset({1, 2, 38, 27})
        assert not item.is_kids_content
        assert item.total_units("manga") is None

    def test_kids_tag_by_name(self) -> None:
        item = MediaItem.from_api({"mal_id": 1, "demographics": [{"mal_id": 99, "name": "Kids"}]})

        assert item.is_kids_content

    def test_display_title_falls_back(self) -> None:
        assert MediaItem(mal_id=3).display_title == "#3"
        assert MediaItem(mal_id=3, title="Romaji", title_english="English").display_title == "English"

    def test_status_labels(self) -> None:
        assert LibraryStatus.CURRENT.label("anime") == "Watching"
        assert LibraryStatus.PLANNED.label("manga") == "Plan to Read"


class TestErrors:
    """Error hierarchy and helpers."""

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (create_api_error(ErrorCode.API_SERVER_ERROR, "boom", "anime"), True),
            (create_api_error(ErrorCode.API_TIMEOUT, "slow", "anime"), True),
            (RateLimitExceededError("429"), True),
            (create_api_error(ErrorCode.API_MEDIA_NOT_FOUND, "gone", "anime/1"), False),
            (create_api_error(ErrorCode.API_REQUEST_FAILED, "bad request", "anime"), False),
            (ApplicationError(ErrorCode.VALIDATION_ERROR, "bad"), False),
            (ValueError("plain"), False),
        ],
    )
    def test_is_retryable(self, error: BaseException, expected: bool) -> None:
        assert is_retryable(error) is expected

    def test_context_coerces_values(self) -> None:
        context = ErrorContext(
            operation="load",
            user_id="secret",
            additional_data={"path": Path("a/b"), "mode": MediaMode.MANGA, "skip": None},
        )

        assert context.safe_dict() == {
            "operation": "load",
            "additional_data": {"path": str(Path("a/b")), "mode": "manga"},
        }

    def test_context_rejects_complex_values(self) -> None:
        with pytest.raises(TypeError):
            ErrorContext(additional_data={"items": [1, 2]})

    def test_to_dict_and_str(self) -> None:
        cause = OSError("disk full")
        error = AniDeckNetworkError(
            ErrorCode.NETWORK_ERROR,
            "connection reset",
            ErrorContext(operation="api_request"),
            original_error=cause,
        )

        assert str(error) == "NETWORK_ERROR: connection reset"
        assert error.to_dict()["original_error"] == "disk full"
        assert error.to_dict()["context"]["operation"] == "api_request"
