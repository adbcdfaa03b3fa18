"""AniDeck: swipe-style anime and manga discovery on top of the Jikan API."""

__version__ = "0.1.0"
