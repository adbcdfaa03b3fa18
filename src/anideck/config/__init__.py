"""AniDeck Configuration Module

This module provides unified access to configuration models and settings
management for the AniDeck application.

- Settings: Main configuration facade
- Loader functions: get_config, load_settings, reload_config, update_and_save_config
- Domain models: App, Logging, API, Cache, Discovery, Library settings
"""

from __future__ import annotations

from .models import (
    APISettings,
    AppSettings,
    CacheSettings,
    DiscoverySettings,
    JikanSettings,
    LibrarySettings,
    LoggingSettings,
)
from .models.settings import Settings

from .loader import (
    get_config,
    load_settings,
    reload_config,
    reset_config,
    update_and_save_config,
)

__all__ = [
    "APISettings",
    "AppSettings",
    "CacheSettings",
    "DiscoverySettings",
    "JikanSettings",
    "LibrarySettings",
    "LoggingSettings",
    "Settings",
    "get_config",
    "load_settings",
    "reload_config",
    "reset_config",
    "update_and_save_config",
]
