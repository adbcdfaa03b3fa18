"""Library entry model."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from anideck.shared.constants import LibraryStatus

from .media import MediaItem, MediaMode


class LibraryEntry(BaseModel):
    """A title the user has filed under a status."""

    model_config = ConfigDict(frozen=True)

    mal_id: int
    mode: MediaMode
    status: LibraryStatus
    progress: int = Field(0, ge=0)
    title: str = ""
    image_url: str | None = None
    total_units: int | None = None
    item: MediaItem | None = None
    updated_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.status is LibraryStatus.COMPLETED
