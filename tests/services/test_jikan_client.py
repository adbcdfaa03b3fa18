"""Tests for the Jikan catalog client."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import orjson
import pytest

from anideck.config.models.api_settings import JikanSettings
from anideck.config.models.cache_settings import CacheSettings
from anideck.services.jikan_client import JikanClient
from anideck.services.request_gate import RequestGate, RetryPolicy
from anideck.services.response_cache import ResponseCache
from anideck.services.upstream_health import UpstreamHealthMonitor, UpstreamState
from anideck.shared.errors import (
    AniDeckNetworkError,
    AniDeckParsingError,
    ErrorCode,
    RateLimitExceededError,
)
from anideck.shared.models import CatalogEndpoint, FilterContext, MediaMode


async def _no_sleep(_: float) -> None:
    await asyncio.sleep(0)


def make_response(status: int = 200, body: Any = None, headers: dict[str, str] | None = None) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    raw = body if isinstance(body, bytes) else orjson.dumps(body if body is not None else {})
    response.read = AsyncMock(return_value=raw)
    return response


def make_session(*responses: MagicMock) -> MagicMock:
    session = MagicMock()
    session.closed = False
    contexts = []
    for response in responses:
        ctx = MagicMock()
        ctx.__aenter__ = AsyncMock(return_value=response)
        ctx.__aexit__ = AsyncMock(return_value=False)
        contexts.append(ctx)
    session.get = MagicMock(side_effect=contexts)
    return session


def make_client(session: MagicMock | None = None, *, retries: int = 0, **settings: Any) -> JikanClient:
    return JikanClient(
        JikanSettings(**settings),
        cache_settings=CacheSettings(),
        gate=RequestGate(
            min_delay=0.0,
            retry_policy=RetryPolicy(max_retries=retries, base_delay=0.01, max_delay=0.01),
            sleep=_no_sleep,
        ),
        cache=ResponseCache(),
        health=UpstreamHealthMonitor(),
        session=session or make_session(),
    )


def listing_payload(entries: list[dict[str, Any]], *, has_next: bool = True) -> dict[str, Any]:
    return {
        "pagination": {"has_next_page": has_next, "last_visible_page": 3, "current_page": 1},
        "data": entries,
    }


class TestListingRequests:
    """Mapping a filter context to endpoint and parameters."""

    def test_search_defaults(self) -> None:
        """Without a query the listing is ordered by popularity and kids are excluded."""
        client = make_client()

        endpoint, params = client.build_listing_request(FilterContext(mode="anime", genres=[4, 1]), 2)

        assert endpoint == "anime"
        assert params["page"] == 2
        assert params["limit"] == 25
        assert params["genres"] == (1, 4)
        assert params["order_by"] == "popularity"
        assert params["genres_exclude"] == 15

    def test_query_drops_default_order_and_manga_uses_magazines(self) -> None:
        client = make_client()

        endpoint, params = client.build_listing_request(
            FilterContext(mode="manga", query="berserk", producers=[7]),
            1,
        )

        assert endpoint == "manga"
        assert params["q"] == "berserk"
        assert params["order_by"] is None
        assert params["magazines"] == (7,)
        assert "producers" not in params

    def test_top_and_season_endpoints(self) -> None:
        client = make_client()

        top_endpoint, top_params = client.build_listing_request(
            FilterContext(mode="manga", endpoint=CatalogEndpoint.TOP, top_filter="bypopularity", subtype="novel"),
            1,
        )
        season_endpoint, _ = client.build_listing_request(
            FilterContext(endpoint=CatalogEndpoint.SEASON, year=2024, season="fall"),
            1,
        )
        now_endpoint, _ = client.build_listing_request(FilterContext(endpoint=CatalogEndpoint.SEASON), 1)

        assert top_endpoint == "top/manga"
        assert top_params["filter"] == "bypopularity"
        assert top_params["type"] == "novel"
        assert "genres_exclude" not in top_params
        assert season_endpoint == "seasons/2024/fall"
        assert now_endpoint == "seasons/now"

    def test_kids_exclusion_can_be_disabled(self) -> None:
        client = make_client(exclude_kids_content=False)

        _, params = client.build_listing_request(FilterContext(), 1)

        assert "genres_exclude" not in params


class TestListMedia:
    """Page parsing and caching."""

    @pytest.mark.asyncio
    async def test_page_is_sanitized(self, jikan_anime_payload: dict[str, Any]) -> None:
        """Invalid, duplicate and kids entries never reach the caller."""
        # Given
        kids = {"mal_id": 99, "title": "Kids Show", "demographics": [{"mal_id": 15, "name": "Kids"}]}
        payload = listing_payload(
            [jikan_anime_payload, jikan_anime_payload, None, {"title": "no id"}, kids, {"mal_id": 7, "title": "Other"}],
        )
        client = make_client()
        client._get_json = AsyncMock(return_value=payload)

        # When
        page = await client.list_media(FilterContext(), 1)

        # Then
        assert [item.mal_id for item in page.items] == [5114, 7]
        assert page.has_next_page is True
        assert page.last_visible_page == 3
        first = page.items[0]
        assert first.image_url.endswith("96541.jpg")
        assert first.media_type == "TV"
        assert first.total_units(MediaMode.ANIME) == 64

    @pytest.mark.asyncio
    async def test_identical_pages_hit_the_cache(self) -> None:
        """The second request for the same page costs nothing."""
        client = make_client()
        client._get_json = AsyncMock(return_value=listing_payload([{"mal_id": 1, "title": "A"}]))

        await client.list_media(FilterContext(genres=[1, 2]), 1)
        await client.list_media(FilterContext(genres=[2, 1]), 1)
        await client.list_media(FilterContext(genres=[1, 2]), 2)

        assert client._get_json.await_count == 2

    @pytest.mark.asyncio
    async def test_malformed_images_keep_the_entry(self) -> None:
        """A non-object images block yields an item without a poster."""
        client = make_client()
        client._get_json = AsyncMock(
            return_value=listing_payload(
                [
                    {"mal_id": 1, "title": "A", "images": ["not", "an", "object"]},
                    {"mal_id": 2, "title": "B", "images": {"jpg": "oops"}},
                ],
            ),
        )

        page = await client.list_media(FilterContext(), 1)

        assert [item.mal_id for item in page.items] == [1, 2]
        assert all(item.image_url is None for item in page.items)

    @pytest.mark.asyncio
    async def test_non_numeric_page_fields_fall_back_to_requested_page(self) -> None:
        client = make_client()
        client._get_json = AsyncMock(
            return_value={
                "pagination": {"has_next_page": True, "last_visible_page": "n/a", "current_page": None},
                "data": [{"mal_id": 1, "title": "A"}],
            },
        )

        page = await client.list_media(FilterContext(), 4)

        assert page.last_visible_page == 4
        assert page.current_page == 4
        assert page.has_next_page is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"pagination": ["bad"], "data": []},
            {"pagination": {"has_next_page": False}, "data": {"mal_id": 1}},
            {"pagination": "bad"},
        ],
    )
    async def test_malformed_listing_raises_parsing_error(self, payload: dict[str, Any]) -> None:
        """Listing shape problems surface as a typed parsing error."""
        client = make_client()
        client._get_json = AsyncMock(return_value=payload)

        with pytest.raises(AniDeckParsingError) as exc_info:
            await client.list_media(FilterContext(), 1)

        assert exc_info.value.code == ErrorCode.API_INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_malformed_listing_is_not_cached(self) -> None:
        client = make_client()
        client._get_json = AsyncMock(
            side_effect=[{"pagination": "bad", "data": []}, listing_payload([{"mal_id": 1, "title": "A"}])],
        )

        with pytest.raises(AniDeckParsingError):
            await client.list_media(FilterContext(), 1)
        page = await client.list_media(FilterContext(), 1)

        assert [item.mal_id for item in page.items] == [1]
        assert client._get_json.await_count == 2


class TestHttpErrors:
    """Status and transport error mapping."""

    @pytest.mark.asyncio
    async def test_not_found_returns_none(self) -> None:
        client = make_client(make_session(make_response(404)))

        assert await client.get_by_id(MediaMode.ANIME, 123) is None

    @pytest.mark.asyncio
    async def test_get_by_id_parses_data(self, jikan_anime_payload: dict[str, Any]) -> None:
        client = make_client(make_session(make_response(200, {"data": jikan_anime_payload})))

        item = await client.get_by_id(MediaMode.ANIME, 5114)

        assert item is not None
        assert item.title == "Fullmetal Alchemist: Brotherhood"
        client._session.get.assert_called_once()
        assert client._session.get.call_args.args[0].endswith("/anime/5114/full")

    @pytest.mark.asyncio
    async def test_rate_limit_carries_retry_after(self) -> None:
        """A 429 raises with the Retry-After hint and throttles the monitor."""
        client = make_client(make_session(make_response(429, headers={"Retry-After": "3"})))

        with pytest.raises(RateLimitExceededError) as exc_info:
            await client.list_media(FilterContext(), 1)

        assert exc_info.value.retry_after == 3.0
        assert client.upstream_state is UpstreamState.THROTTLE

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self) -> None:
        """A 500 followed by a 200 succeeds through the gate's retry policy."""
        session = make_session(
            make_response(500),
            make_response(200, listing_payload([{"mal_id": 1, "title": "A"}], has_next=False)),
        )
        client = make_client(session, retries=1)

        page = await client.list_media(FilterContext(), 1)

        assert [item.mal_id for item in page.items] == [1]
        assert session.get.call_count == 2

    @pytest.mark.asyncio
    async def test_server_error_without_retries(self) -> None:
        client = make_client(make_session(make_response(503)))

        with pytest.raises(AniDeckNetworkError) as exc_info:
            await client.list_media(FilterContext(), 1)

        assert exc_info.value.code == ErrorCode.API_SERVER_ERROR

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        client = make_client(make_session(make_response(200, b"<html>oops</html>")))

        with pytest.raises(AniDeckParsingError) as exc_info:
            await client.list_media(FilterContext(), 1)

        assert exc_info.value.code == ErrorCode.API_INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        session = MagicMock()
        session.closed = False
        session.get = MagicMock(side_effect=asyncio.TimeoutError())
        client = make_client(session)

        with pytest.raises(AniDeckNetworkError) as exc_info:
            await client.list_media(FilterContext(), 1)

        assert exc_info.value.code == ErrorCode.API_TIMEOUT

    @pytest.mark.asyncio
    async def test_offline_upstream_refuses_requests(self) -> None:
        """While OFFLINE no HTTP request is made."""
        session = make_session()
        client = make_client(session)
        client.health._go_offline()

        with pytest.raises(AniDeckNetworkError) as exc_info:
            await client.list_media(FilterContext(), 1)

        assert exc_info.value.code == ErrorCode.UPSTREAM_UNAVAILABLE
        session.get.assert_not_called()


class TestReferenceData:
    """Genres, producers and recommendations."""

    @pytest.mark.asyncio
    async def test_genres_are_deduplicated_sorted_and_kids_free(self) -> None:
        client = make_client()
        client._get_json = AsyncMock(
            return_value={
                "data": [
                    {"mal_id": 4, "name": "Comedy", "count": 7000},
                    {"mal_id": 1, "name": "Action", "count": 5000},
                    {"mal_id": 15, "name": "Kids", "count": 100},
                    {"mal_id": 1, "name": "Action", "count": 5000},
                ],
            },
        )

        genres = await client.get_genres(MediaMode.ANIME)

        assert [(g.mal_id, g.name) for g in genres] == [(1, "Action"), (4, "Comedy")]
        client._get_json.assert_awaited_once_with("genres/anime", None)

    @pytest.mark.asyncio
    async def test_manga_producers_are_magazines(self) -> None:
        client = make_client()
        client._get_json = AsyncMock(
            return_value={
                "data": [
                    {"mal_id": 83, "titles": [{"type": "Default", "title": "Shounen Jump (Weekly)"}], "count": 1200},
                ],
            },
        )

        magazines = await client.get_producers(MediaMode.MANGA)

        assert magazines[0].name == "Shounen Jump (Weekly)"
        endpoint, params = client._get_json.await_args.args
        assert endpoint == "magazines"
        assert params["order_by"] == "count"

    @pytest.mark.asyncio
    async def test_recommendations_are_capped_at_ten(self) -> None:
        client = make_client()
        client._get_json = AsyncMock(
            return_value={"data": [{"entry": {"mal_id": i, "title": f"T{i}"}, "votes": 1} for i in range(1, 15)]},
        )

        recs = await client.get_recommendations(MediaMode.ANIME, 5114)

        assert [r.mal_id for r in recs] == list(range(1, 11))
