"""Configuration domain models."""

from .api_settings import APISettings, JikanSettings
from .app_settings import AppSettings, LoggingSettings
from .cache_settings import CacheSettings
from .discovery_settings import DiscoverySettings, LibrarySettings
from .settings import Settings

__all__ = [
    "APISettings",
    "AppSettings",
    "CacheSettings",
    "DiscoverySettings",
    "JikanSettings",
    "LibrarySettings",
    "LoggingSettings",
    "Settings",
]
