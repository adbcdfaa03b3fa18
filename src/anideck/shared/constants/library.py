"""
Library Constants

Status vocabulary and storage defaults of the persisted library.
"""

from enum import Enum


class LibraryStatus(str, Enum):
    """Status a title is filed under in the library."""

    CURRENT = "current"
    PLANNED = "planned"
    COMPLETED = "completed"

    def label(self, mode: str) -> str:
        """Display label for the status in the given media mode."""
        if self is LibraryStatus.CURRENT:
            return "Watching" if mode == "anime" else "Reading"
        if self is LibraryStatus.PLANNED:
            return "Plan to Watch" if mode == "anime" else "Plan to Read"
        return "Completed"


class LibraryDefaults:
    """Library storage defaults."""

    DB_PATH = "~/.anideck/library.db"
    TABLE_NAME = "library_media"
