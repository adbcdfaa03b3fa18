"""AniDeck services: upstream access and persistence."""

from .jikan_client import JikanClient
from .library_store import LibraryStore
from .request_gate import RequestGate, RetryPolicy
from .response_cache import ResponseCache
from .upstream_health import UpstreamHealthMonitor, UpstreamState

__all__ = [
    "JikanClient",
    "LibraryStore",
    "RequestGate",
    "ResponseCache",
    "RetryPolicy",
    "UpstreamHealthMonitor",
    "UpstreamState",
]
