"""API configuration models (Jikan).

This module contains configuration models for the upstream catalog API:
endpoint, request spacing, retry behavior and content filtering.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from anideck.shared.constants import JikanAPI, NetworkConfig


class JikanSettings(BaseModel):
    """Jikan API configuration.

    Jikan needs no API key. Its public rate limit (about 3 requests per
    second) is respected by spacing requests ``request_delay`` seconds apart.
    """

    base_url: str = Field(
        default=JikanAPI.BASE_URL,
        description="Jikan v4 base URL",
    )

    # Request settings
    timeout: float = Field(
        default=NetworkConfig.TOTAL_TIMEOUT,
        gt=0,
        description="Total request timeout in seconds",
    )
    user_agent: str = Field(default=NetworkConfig.USER_AGENT)

    # Rate limiting settings
    request_delay: float = Field(
        default=JikanAPI.REQUEST_DELAY,
        ge=0,
        description="Minimum spacing between request starts in seconds",
    )

    # Retry settings
    retry_attempts: int = Field(
        default=NetworkConfig.DEFAULT_RETRIES,
        ge=0,
        description="Number of retries after the first attempt",
    )
    retry_delay: float = Field(
        default=NetworkConfig.RETRY_DELAY,
        ge=0,
        description="Base backoff delay in seconds (doubled per attempt)",
    )
    max_retry_delay: float = Field(
        default=NetworkConfig.MAX_RETRY_DELAY,
        ge=0,
        description="Upper bound for a single backoff delay",
    )

    # Listing settings
    page_limit: int = Field(
        default=JikanAPI.PAGE_LIMIT,
        gt=0,
        le=25,
        description="Items per listing page (Jikan maximum is 25)",
    )
    exclude_kids_content: bool = Field(
        default=True,
        description="Strip titles tagged with the Kids demographic",
    )


class APISettings(BaseModel):
    """API configuration container."""

    jikan: JikanSettings = Field(
        default_factory=JikanSettings,
        description="Jikan API configuration",
    )


__all__ = [
    "APISettings",
    "JikanSettings",
]
