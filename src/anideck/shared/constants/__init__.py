"""
AniDeck Constants Module

This module provides centralized constants for the AniDeck application.
All magic values and configuration defaults are defined here to ensure
consistency across the codebase.
"""

from .cli import CLICommands, CLIDefaults, CLIHelp, CLIMessages
from .discovery import DiscoveryDefaults, GenreLogic, SwipeAction
from .library import LibraryDefaults, LibraryStatus
from .network import CacheDefaults, JikanAPI, JikanFields, NetworkConfig

__all__ = [
    "CLICommands",
    "CLIDefaults",
    "CLIHelp",
    "CLIMessages",
    "CacheDefaults",
    "DiscoveryDefaults",
    "GenreLogic",
    "JikanAPI",
    "JikanFields",
    "LibraryDefaults",
    "LibraryStatus",
    "NetworkConfig",
    "SwipeAction",
]
