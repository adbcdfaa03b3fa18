"""AniDeck Shared Module.

This package contains shared models, constants, error handling and logging
used across AniDeck.
"""

__all__ = ["cache_utils", "constants", "errors", "logging", "models", "protocols"]
