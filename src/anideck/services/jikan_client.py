"""Jikan v4 catalog client.

This module provides the asynchronous client the discovery engine uses to
read the MyAnimeList catalog through Jikan. Every request flows through the
response cache and then the shared request gate, so cache hits cost
nothing and misses are spaced and retried uniformly.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import aiohttp
import orjson
from pydantic import ValidationError

from anideck.config.models.api_settings import JikanSettings
from anideck.config.models.cache_settings import CacheSettings
from anideck.services.request_gate import RequestGate, RetryPolicy
from anideck.services.response_cache import ResponseCache
from anideck.services.upstream_health import UpstreamHealthMonitor, UpstreamState
from anideck.shared.cache_utils import canonical_params, make_cache_key
from anideck.shared.constants import JikanAPI, JikanFields, NetworkConfig
from anideck.shared.errors import (
    AniDeckNetworkError,
    AniDeckParsingError,
    ErrorCode,
    ErrorContext,
    RateLimitExceededError,
    create_api_error,
)
from anideck.shared.logging import log_api_call
from anideck.shared.models import (
    CatalogEndpoint,
    FilterContext,
    Genre,
    MediaItem,
    MediaMode,
    PageResult,
)

logger = logging.getLogger(__name__)


def _page_number(value: Any, fallback: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return fallback


class JikanClient:
    """Asynchronous Jikan client implementing ``CatalogClientProtocol``.

    Args:
        settings: Jikan settings (defaults to the loaded configuration)
        cache_settings: Cache settings for reference-data staleness
        gate: Request gate shared by every client (a private one if omitted)
        cache: Response cache shared by every client (a private one if omitted)
        health: Upstream health monitor
        session: Pre-built aiohttp session (owned by the caller)

    Example:
        >>> async with JikanClient() as client:
        ...     page = await client.list_media(FilterContext(mode="anime"), 1)
    """

    def __init__(
        self,
        settings: JikanSettings | None = None,
        *,
        cache_settings: CacheSettings | None = None,
        gate: RequestGate | None = None,
        cache: ResponseCache | None = None,
        health: UpstreamHealthMonitor | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if settings is None or cache_settings is None:
            from anideck.config import get_config

            config = get_config()
            settings = settings or config.api.jikan
            cache_settings = cache_settings or config.cache

        self.settings = settings
        self.cache_settings = cache_settings
        self.gate = gate or RequestGate(
            min_delay=settings.request_delay,
            retry_policy=RetryPolicy.from_settings(settings),
        )
        self.cache = cache or ResponseCache(
            max_entries=cache_settings.max_entries,
            enabled=cache_settings.enabled,
        )
        self.health = health or UpstreamHealthMonitor()
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> JikanClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def upstream_state(self) -> UpstreamState:
        return self.health.state

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=NetworkConfig.CONNECTION_LIMIT,
                limit_per_host=NetworkConfig.CONNECTION_LIMIT_PER_HOST,
                ttl_dns_cache=300,
            )
            timeout = aiohttp.ClientTimeout(
                total=self.settings.timeout,
                connect=NetworkConfig.CONNECT_TIMEOUT,
            )
            headers = {
                "User-Agent": self.settings.user_agent,
                "Accept": NetworkConfig.ACCEPT_JSON,
            }
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                headers=headers,
            )
            self._owns_session = True
            logger.debug("aiohttp.ClientSession created")
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("aiohttp.ClientSession closed")
        self._session = None

    # ------------------------------------------------------------------
    # Request pipeline: cache -> gate -> HTTP
    # ------------------------------------------------------------------

    async def _request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        *,
        max_age: float | None = None,
    ) -> dict[str, Any]:
        key = make_cache_key(endpoint, params)
        return await self.cache.fetch_cached(
            key,
            lambda: self.gate.enqueue(lambda: self._get_json(endpoint, params)),
            max_age=max_age,
        )

    async def _get_json(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Perform one GET and decode its JSON body.

        Raises:
            AniDeckNetworkError: Transport failures and non-2xx statuses
            RateLimitExceededError: On HTTP 429
            AniDeckParsingError: If the body is not a JSON object
        """
        if not self.health.should_make_request():
            raise create_api_error(
                ErrorCode.UPSTREAM_UNAVAILABLE,
                "Catalog API is offline, request refused",
                endpoint,
            )

        session = await self._get_session()
        url = f"{self.settings.base_url.rstrip('/')}/{endpoint}"
        started = time.perf_counter()

        try:
            async with session.get(url, params=canonical_params(params)) as response:
                duration_ms = (time.perf_counter() - started) * 1000
                log_api_call(logger, endpoint, status_code=response.status, duration_ms=duration_ms)
                self._check_status(response, endpoint)
                body = await response.read()
        except asyncio.TimeoutError as e:
            self.health.handle_error()
            raise create_api_error(
                ErrorCode.API_TIMEOUT,
                f"Request to {endpoint} timed out",
                endpoint,
                original_error=e,
            ) from e
        except aiohttp.ClientError as e:
            self.health.handle_error()
            raise create_api_error(
                ErrorCode.NETWORK_ERROR,
                f"Connection error for {endpoint}: {e}",
                endpoint,
                original_error=e,
            ) from e

        self.health.handle_success()
        return self._decode(body, endpoint)

    def _check_status(self, response: aiohttp.ClientResponse, endpoint: str) -> None:
        status = response.status
        if status < 400:
            return

        if status == NetworkConfig.HTTP_TOO_MANY_REQUESTS:
            retry_after = self._extract_retry_after(response)
            self.health.handle_429(retry_after)
            raise RateLimitExceededError(
                f"Rate limit exceeded for {endpoint}",
                context=ErrorContext(
                    operation="api_request",
                    additional_data={"endpoint": endpoint, "retry_after": retry_after},
                ),
                retry_after=retry_after,
            )

        if status == NetworkConfig.HTTP_NOT_FOUND:
            # A well-formed answer; the service itself is healthy
            self.health.handle_success()
            raise create_api_error(
                ErrorCode.API_MEDIA_NOT_FOUND,
                f"Resource not found: {endpoint}",
                endpoint,
            )

        self.health.handle_error()
        code = (
            ErrorCode.API_SERVER_ERROR
            if status >= NetworkConfig.HTTP_SERVER_ERROR
            else ErrorCode.API_REQUEST_FAILED
        )
        raise create_api_error(code, f"HTTP {status} from {endpoint}", endpoint)

    @staticmethod
    def _extract_retry_after(response: aiohttp.ClientResponse) -> float | None:
        raw = response.headers.get("Retry-After")
        if not raw:
            return None
        try:
            return float(raw)
        except ValueError:
            logger.debug("Failed to parse Retry-After header: %s", raw)
            return None

    @staticmethod
    def _decode(body: bytes, endpoint: str) -> dict[str, Any]:
        try:
            payload = orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise AniDeckParsingError(
                ErrorCode.API_INVALID_RESPONSE,
                f"Invalid JSON from {endpoint}",
                ErrorContext(operation="decode_response", additional_data={"endpoint": endpoint}),
                original_error=e,
            ) from e
        if not isinstance(payload, dict):
            raise AniDeckParsingError(
                ErrorCode.API_INVALID_RESPONSE,
                f"Expected a JSON object from {endpoint}",
                ErrorContext(operation="decode_response", additional_data={"endpoint": endpoint}),
            )
        return payload

    # ------------------------------------------------------------------
    # Payload sanitizing
    # ------------------------------------------------------------------

    def _parse_items(self, raw_items: Any) -> list[MediaItem]:
        """Validate raw entries, drop invalid ones, dedup by id and strip kids titles."""
        if not isinstance(raw_items, list):
            return []

        items: list[MediaItem] = []
        seen: set[int] = set()
        for raw in raw_items:
            if not isinstance(raw, dict) or not raw.get(JikanFields.MAL_ID):
                continue
            try:
                item = MediaItem.from_api(raw)
            except ValidationError as e:
                logger.debug("Dropping invalid catalog entry %s: %s", raw.get(JikanFields.MAL_ID), e)
                continue
            if item.mal_id in seen:
                continue
            if self.settings.exclude_kids_content and item.is_kids_content:
                continue
            seen.add(item.mal_id)
            items.append(item)
        return items

    def _parse_page(self, payload: dict[str, Any], page: int, endpoint: str) -> PageResult:
        """Build a page result.

        Raises:
            AniDeckParsingError: If the listing or its pagination block has
                an unexpected shape
        """
        pagination = payload.get(JikanFields.PAGINATION) or {}
        data = payload.get(JikanFields.DATA)
        if not isinstance(pagination, dict) or not isinstance(data, list):
            raise AniDeckParsingError(
                ErrorCode.API_INVALID_RESPONSE,
                f"Unexpected listing shape from {endpoint}",
                ErrorContext(
                    operation="parse_page",
                    additional_data={"endpoint": endpoint, "page": page},
                ),
            )

        try:
            return PageResult(
                items=tuple(self._parse_items(data)),
                has_next_page=pagination.get(JikanFields.HAS_NEXT_PAGE) is True,
                last_visible_page=_page_number(pagination.get(JikanFields.LAST_VISIBLE_PAGE), page),
                current_page=_page_number(pagination.get(JikanFields.CURRENT_PAGE), page),
            )
        except ValidationError as e:
            raise AniDeckParsingError(
                ErrorCode.API_INVALID_RESPONSE,
                f"Invalid listing page from {endpoint}",
                ErrorContext(
                    operation="parse_page",
                    additional_data={"endpoint": endpoint, "page": page},
                ),
                original_error=e,
            ) from e

    # ------------------------------------------------------------------
    # Catalog operations
    # ------------------------------------------------------------------

    def build_listing_request(self, context: FilterContext, page: int) -> tuple[str, dict[str, Any]]:
        """Map a filter context and page to an endpoint and query parameters."""
        mode = context.mode.value
        params: dict[str, Any] = {"page": page, "limit": self.settings.page_limit}

        if context.endpoint is CatalogEndpoint.TOP:
            endpoint = JikanAPI.TOP_MEDIA.format(mode=mode)
            params["filter"] = context.top_filter
            params["type"] = context.subtype
            return endpoint, params

        if context.endpoint is CatalogEndpoint.SEASON:
            if context.year is not None and context.season is not None:
                endpoint = JikanAPI.SEASON.format(year=context.year, season=context.season)
            else:
                endpoint = JikanAPI.SEASON_NOW
            params["filter"] = context.subtype
            return endpoint, params

        endpoint = JikanAPI.MEDIA_LIST.format(mode=mode)
        producer_param = "producers" if context.mode is MediaMode.ANIME else "magazines"
        params.update(
            {
                "q": context.query,
                "genres": context.genres,
                producer_param: context.producers,
                "order_by": context.order_by
                or (None if context.query else JikanAPI.DEFAULT_ORDER_BY),
                "sort": context.sort.value if context.sort else None,
            },
        )
        if self.settings.exclude_kids_content:
            params["genres_exclude"] = JikanAPI.KIDS_GENRE_ID
        return endpoint, params

    async def list_media(self, context: FilterContext, page: int) -> PageResult:
        """Fetch one page of the listing described by ``context``."""
        endpoint, params = self.build_listing_request(context, page)
        payload = await self._request(endpoint, params)
        try:
            return self._parse_page(payload, page, endpoint)
        except AniDeckParsingError:
            # The next attempt at this page must reach upstream again
            self.cache.invalidate(make_cache_key(endpoint, params))
            raise

    async def get_by_id(self, mode: MediaMode, media_id: int) -> MediaItem | None:
        """Fetch full details of one title; None if missing or filtered out."""
        endpoint = JikanAPI.MEDIA_DETAILS.format(mode=MediaMode(mode).value, media_id=media_id)
        try:
            payload = await self._request(endpoint)
        except AniDeckNetworkError as e:
            if e.code is ErrorCode.API_MEDIA_NOT_FOUND:
                return None
            raise

        items = self._parse_items([payload.get(JikanFields.DATA)])
        return items[0] if items else None

    async def search(self, mode: MediaMode, query: str, page: int = 1) -> PageResult:
        """Free-text title search."""
        return await self.list_media(FilterContext(mode=mode, query=query), page)

    async def get_genres(self, mode: MediaMode) -> list[Genre]:
        """Genres of a catalog, deduplicated, sorted by name, kids removed."""
        endpoint = JikanAPI.GENRES.format(mode=MediaMode(mode).value)
        payload = await self._request(endpoint, max_age=self.cache_settings.reference_max_age)
        return self._parse_reference(payload, drop_kids=True)

    async def get_producers(self, mode: MediaMode) -> list[Genre]:
        """Most popular studios (anime) or magazines (manga)."""
        if MediaMode(mode) is MediaMode.ANIME:
            endpoint, order_by = JikanAPI.PRODUCERS, "favorites"
        else:
            endpoint, order_by = JikanAPI.MAGAZINES, "count"
        params = {"order_by": order_by, "sort": "desc", "limit": JikanAPI.REFERENCE_LIMIT}
        payload = await self._request(
            endpoint,
            params,
            max_age=self.cache_settings.reference_max_age,
        )
        return self._parse_reference(payload, drop_kids=False)

    async def get_recommendations(self, mode: MediaMode, media_id: int) -> list[MediaItem]:
        """Titles MyAnimeList users recommend alongside ``media_id`` (top 10)."""
        endpoint = JikanAPI.MEDIA_RECOMMENDATIONS.format(mode=MediaMode(mode).value, media_id=media_id)
        try:
            payload = await self._request(endpoint)
        except AniDeckNetworkError as e:
            if e.code is ErrorCode.API_MEDIA_NOT_FOUND:
                return []
            raise

        entries = [
            rec.get(JikanFields.ENTRY)
            for rec in payload.get(JikanFields.DATA) or []
            if isinstance(rec, dict)
        ]
        return self._parse_items(entries)[: JikanAPI.RECOMMENDATION_LIMIT]

    @staticmethod
    def _parse_reference(payload: dict[str, Any], *, drop_kids: bool) -> list[Genre]:
        result: dict[int, Genre] = {}
        for raw in payload.get(JikanFields.DATA) or []:
            if not isinstance(raw, dict) or not raw.get(JikanFields.MAL_ID):
                continue
            name = raw.get(JikanFields.NAME)
            if not name:
                titles = raw.get(JikanFields.TITLES) or []
                name = next(
                    (t.get(JikanFields.TITLE) for t in titles if isinstance(t, dict) and t.get(JikanFields.TITLE)),
                    "",
                )
            genre = Genre(mal_id=raw[JikanFields.MAL_ID], name=name, count=raw.get(JikanFields.COUNT))
            if drop_kids and (
                genre.mal_id == JikanAPI.KIDS_GENRE_ID or genre.name.lower() == JikanAPI.KIDS_GENRE_NAME
            ):
                continue
            result.setdefault(genre.mal_id, genre)
        return sorted(result.values(), key=lambda g: g.name.lower())

    def get_stats(self) -> dict[str, Any]:
        """Gate, cache and upstream health counters."""
        return {
            "gate": self.gate.stats(),
            "cache": self.cache.stats(),
            "upstream": self.health.get_stats(),
        }
