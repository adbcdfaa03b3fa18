"""SQLite-backed persistent library.

The library is the durable half of the exclusion set: every title the user
has filed (current, planned or completed) is never recommended again in
that mode. Rows are keyed by ``(mode, mal_id)`` and keep the full catalog
item as an orjson blob so entries can be shown without a network round
trip.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import orjson
from pydantic import ValidationError

from anideck.shared.constants import LibraryDefaults, LibraryStatus
from anideck.shared.errors import (
    DomainError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
)
from anideck.shared.logging import log_operation_error, log_operation_success
from anideck.shared.models import Genre, LibraryEntry, MediaItem, MediaMode

logger = logging.getLogger(__name__)

_TABLE = LibraryDefaults.TABLE_NAME

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {_TABLE} (
    mal_id INTEGER NOT NULL,
    mode TEXT NOT NULL,
    status TEXT NOT NULL,
    progress INTEGER NOT NULL DEFAULT 0,
    title TEXT,
    image_url TEXT,
    total_units INTEGER,
    item_json BLOB,
    updated_at REAL NOT NULL,
    PRIMARY KEY (mode, mal_id)
)
"""

_COLUMNS = "mal_id, mode, status, progress, title, image_url, total_units, item_json, updated_at"


class LibraryStore:
    """Library table facade implementing ``LibraryStoreProtocol``.

    Args:
        db_path: SQLite database file, or ``":memory:"``

    Raises:
        InfrastructureError: If the database cannot be opened

    Example:
        >>> store = LibraryStore(Path("library.db"))
        >>> store.upsert(item, MediaMode.ANIME, LibraryStatus.PLANNED)
        >>> store.list_ids(MediaMode.ANIME)
        [5114]
        >>> store.close()
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = db_path if db_path == ":memory:" else Path(db_path).expanduser()
        self.conn: sqlite3.Connection | None = None
        self._initialize_db()

    def _initialize_db(self) -> None:
        context = ErrorContext(
            operation="initialize_library_db",
            additional_data={"db_path": str(self.db_path)},
        )
        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,  # writes run in a worker thread
                isolation_level=None,  # autocommit
            )
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")
            self.conn.execute(_SCHEMA)

            log_operation_success(
                logger=logger,
                operation="initialize_library_db",
                duration_ms=0,
                context=context.additional_data,
            )
        except (sqlite3.Error, OSError) as e:
            error = InfrastructureError(
                code=ErrorCode.LIBRARY_WRITE_FAILED,
                message=f"Failed to open library database: {e}",
                context=context,
                original_error=e,
            )
            log_operation_error(logger, error)
            raise error from e

    def _connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise InfrastructureError(
                code=ErrorCode.LIBRARY_READ_FAILED,
                message="Library database is closed",
                context=ErrorContext(operation="library_access"),
            )
        return self.conn

    def _execute(self, operation: str, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        code = ErrorCode.LIBRARY_READ_FAILED if sql.lstrip().upper().startswith("SELECT") else ErrorCode.LIBRARY_WRITE_FAILED
        try:
            return self._connection().execute(sql, params)
        except sqlite3.Error as e:
            error = InfrastructureError(
                code=code,
                message=f"Library {operation} failed: {e}",
                context=ErrorContext(operation=operation),
                original_error=e,
            )
            log_operation_error(logger, error)
            raise error from e

    # ------------------------------------------------------------------
    # Protocol operations
    # ------------------------------------------------------------------

    def list_ids(self, mode: MediaMode) -> list[int]:
        """Ids of every entry filed under ``mode``."""
        cursor = self._execute(
            "list_ids",
            f"SELECT mal_id FROM {_TABLE} WHERE mode = ?",  # noqa: S608
            (MediaMode(mode).value,),
        )
        return [row["mal_id"] for row in cursor.fetchall()]

    def upsert(
        self,
        item: MediaItem,
        mode: MediaMode,
        status: LibraryStatus,
        progress: int = 0,
    ) -> LibraryEntry:
        """Insert or replace the entry for ``item``.

        Progress is only kept for ``current`` entries and is clamped to the
        item's known total.
        """
        mode = MediaMode(mode)
        status = LibraryStatus(status)
        total = item.total_units(mode)

        if status is LibraryStatus.CURRENT:
            progress = max(0, progress)
            if total:
                progress = min(progress, total)
        else:
            progress = 0

        now = time.time()
        self._execute(
            "upsert",
            f"INSERT OR REPLACE INTO {_TABLE} ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
            (
                item.mal_id,
                mode.value,
                status.value,
                progress,
                item.display_title,
                item.image_url,
                total,
                orjson.dumps(item.model_dump(mode="json")),
                now,
            ),
        )
        logger.debug("Filed %s %d as %s", mode.value, item.mal_id, status.value)
        return LibraryEntry(
            mal_id=item.mal_id,
            mode=mode,
            status=status,
            progress=progress,
            title=item.display_title,
            image_url=item.image_url,
            total_units=total,
            item=item,
            updated_at=datetime.fromtimestamp(now, tz=timezone.utc),
        )

    def remove(self, media_id: int, mode: MediaMode) -> bool:
        """Delete an entry; True if one existed."""
        cursor = self._execute(
            "remove",
            f"DELETE FROM {_TABLE} WHERE mode = ? AND mal_id = ?",  # noqa: S608
            (MediaMode(mode).value, media_id),
        )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Library management
    # ------------------------------------------------------------------

    def get_entry(self, media_id: int, mode: MediaMode) -> LibraryEntry | None:
        cursor = self._execute(
            "get_entry",
            f"SELECT {_COLUMNS} FROM {_TABLE} WHERE mode = ? AND mal_id = ?",  # noqa: S608
            (MediaMode(mode).value, media_id),
        )
        row = cursor.fetchone()
        return self._row_to_entry(row) if row else None

    def get_status(self, media_id: int, mode: MediaMode) -> LibraryStatus | None:
        entry = self.get_entry(media_id, mode)
        return entry.status if entry else None

    def list_entries(
        self,
        mode: MediaMode,
        status: LibraryStatus | None = None,
    ) -> list[LibraryEntry]:
        """Entries of ``mode``, most recently updated first."""
        sql = f"SELECT {_COLUMNS} FROM {_TABLE} WHERE mode = ?"  # noqa: S608
        params: tuple[Any, ...] = (MediaMode(mode).value,)
        if status is not None:
            sql += " AND status = ?"
            params += (LibraryStatus(status).value,)
        sql += " ORDER BY updated_at DESC, mal_id"
        return [self._row_to_entry(row) for row in self._execute("list_entries", sql, params)]

    def update_progress(self, media_id: int, mode: MediaMode, delta: int) -> LibraryEntry:
        """Move progress by ``delta`` within ``[0, total]``.

        Reaching the known total files the entry as completed.

        Raises:
            DomainError: If the entry does not exist
        """
        entry = self.get_entry(media_id, mode)
        if entry is None:
            raise DomainError(
                code=ErrorCode.LIBRARY_ENTRY_NOT_FOUND,
                message=f"{MediaMode(mode).value} {media_id} is not in the library",
                context=ErrorContext(
                    operation="update_progress",
                    additional_data={"mal_id": media_id, "mode": MediaMode(mode).value},
                ),
            )

        progress = max(0, entry.progress + delta)
        status = entry.status
        if entry.total_units:
            progress = min(progress, entry.total_units)
            if progress == entry.total_units:
                status = LibraryStatus.COMPLETED

        now = time.time()
        self._execute(
            "update_progress",
            f"UPDATE {_TABLE} SET progress = ?, status = ?, updated_at = ? WHERE mode = ? AND mal_id = ?",  # noqa: S608
            (progress, status.value, now, entry.mode.value, media_id),
        )
        return entry.model_copy(
            update={
                "progress": progress,
                "status": status,
                "updated_at": datetime.fromtimestamp(now, tz=timezone.utc),
            },
        )

    def top_genre(self, mode: MediaMode) -> Genre | None:
        """Most frequent genre across the library of ``mode``.

        Ties go to the genre seen first; ``count`` holds the frequency.
        """
        counts: Counter[int] = Counter()
        names: dict[int, str] = {}
        for entry in reversed(self.list_entries(mode)):
            if entry.item is None:
                continue
            for genre in entry.item.genres:
                counts[genre.mal_id] += 1
                names.setdefault(genre.mal_id, genre.name)

        if not counts:
            return None
        genre_id, count = counts.most_common(1)[0]
        return Genre(mal_id=genre_id, name=names[genre_id], count=count)

    def _row_to_entry(self, row: sqlite3.Row) -> LibraryEntry:
        item: MediaItem | None = None
        if row["item_json"]:
            try:
                item = MediaItem.model_validate(orjson.loads(row["item_json"]))
            except (orjson.JSONDecodeError, ValidationError):
                logger.warning("Stored payload of %s %d is unreadable", row["mode"], row["mal_id"])

        return LibraryEntry(
            mal_id=row["mal_id"],
            mode=MediaMode(row["mode"]),
            status=LibraryStatus(row["status"]),
            progress=row["progress"],
            title=row["title"] or "",
            image_url=row["image_url"],
            total_units=row["total_units"],
            item=item,
            updated_at=datetime.fromtimestamp(row["updated_at"], tz=timezone.utc),
        )

    def close(self) -> None:
        """Close the database connection."""
        if self.conn is not None:
            self.conn.close()
            self.conn = None
            logger.debug("Library database closed")
