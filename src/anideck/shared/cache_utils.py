"""Cache key utilities for catalog API request normalization.

This module provides utilities for generating consistent cache keys from
catalog API request parameters. Identical requests produce identical keys
regardless of parameter order.

Example:
    >>> from anideck.shared.cache_utils import make_cache_key
    >>> make_cache_key("anime", {"page": 2, "q": None, "genres": "1,4"})
    'anime?genres=1,4&page=2'
"""

from __future__ import annotations

from typing import Any


def canonical_params(params: dict[str, Any] | None) -> dict[str, str]:
    """Normalize parameters for consistent cache key generation.

    Normalization rules:
        1. Remove None and empty string values
        2. Lowercase keys
        3. Render booleans as ``true``/``false`` (the way they go on the wire)
        4. Render sequences as comma-joined strings

    Args:
        params: Query parameters dictionary. Can be None.

    Returns:
        Normalized parameters with string values.

    Example:
        >>> canonical_params({"Page": 1, "q": "", "sfw": True})
        {'page': '1', 'sfw': 'true'}
    """
    if not params:
        return {}

    normalized: dict[str, str] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            rendered = "true" if value else "false"
        elif isinstance(value, (list, tuple, set, frozenset)):
            if not value:
                continue
            rendered = ",".join(str(v) for v in value)
        else:
            rendered = str(value)
        normalized[key.lower()] = rendered

    return normalized


def make_cache_key(endpoint: str, params: dict[str, Any] | None = None) -> str:
    """Build a deterministic cache key from an endpoint and its parameters.

    Args:
        endpoint: Endpoint path relative to the API base (e.g. "anime", "genres/manga")
        params: Query parameters

    Returns:
        ``endpoint`` alone, or ``endpoint?k1=v1&k2=v2`` with keys sorted.
    """
    endpoint = endpoint.strip("/")
    normalized = canonical_params(params)
    if not normalized:
        return endpoint

    query = "&".join(f"{key}={normalized[key]}" for key in sorted(normalized))
    return f"{endpoint}?{query}"
