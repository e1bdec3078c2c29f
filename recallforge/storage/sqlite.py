"""SQLite storage backends.

Both backends may share one database file:

    review_items   one row per item, replaced atomically on every write
    session_log    append-only review history

Timestamps are stored as ISO-8601 text and stages in their wire form
("immediate_retry", "same_day_retry" or a day count). Any sqlite3 failure
surfaces as StorageError so the service can retry the write.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator, List, Optional, Union

from recallforge.core.exceptions import (
    DuplicateReviewItemError,
    ReviewItemNotFoundError,
    StorageError,
)
from recallforge.core.logging import get_logger
from recallforge.storage.base import ReviewItemStore, SessionRecorder
from recallforge.study.models import (
    ReviewItem,
    SessionLogEntry,
    SubjectFilter,
    SubjectPath,
    parse_stage,
    stage_to_wire,
)
from recallforge.study.scheduler import DEFAULT_UPCOMING_LIMIT, due_today, upcoming

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0

_ITEM_COLUMNS = (
    "id, subject, book, chapter, interval_stage, ease_factor, "
    "review_count, next_review_at, is_completed"
)


class _SQLiteBackend(ABC):
    """Connection handling shared by the store and the recorder."""

    def __init__(
        self, db_path: Union[str, Path], timeout: float = DEFAULT_TIMEOUT_SECONDS
    ) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success, and always close it."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open review database: {e}") from e
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StorageError(f"Review database operation failed: {e}") from e
        finally:
            conn.close()

    def _init_database(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory: {e}") from e
        with self._connect() as conn:
            self._create_schema(conn)

    @abstractmethod
    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create the tables this backend owns."""


def _row_to_item(row: tuple) -> ReviewItem:
    return ReviewItem(
        id=row[0],
        subject_path=SubjectPath(subject=row[1], book=row[2], chapter=row[3]),
        interval_stage=parse_stage(row[4]),
        ease_factor=float(row[5]),
        review_count=int(row[6]),
        next_review_at=datetime.fromisoformat(row[7]),
        is_completed=bool(row[8]),
    )


def _item_params(item: ReviewItem) -> tuple:
    return (
        item.id,
        item.subject_path.subject,
        item.subject_path.book,
        item.subject_path.chapter,
        str(stage_to_wire(item.interval_stage)),
        item.ease_factor,
        item.review_count,
        item.next_review_at.isoformat(),
        int(item.is_completed),
    )


class SQLiteReviewStore(_SQLiteBackend, ReviewItemStore):
    """Review item store persisted in a SQLite file."""

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS review_items (
                id TEXT PRIMARY KEY,
                subject TEXT NOT NULL DEFAULT '',
                book TEXT NOT NULL DEFAULT '',
                chapter TEXT NOT NULL DEFAULT '',
                interval_stage TEXT NOT NULL,
                ease_factor REAL NOT NULL DEFAULT 2.5,
                review_count INTEGER NOT NULL DEFAULT 0,
                next_review_at TEXT NOT NULL,
                is_completed INTEGER NOT NULL DEFAULT 0
            )
        """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_review_items_active
            ON review_items (is_completed, next_review_at)
        """
        )

    def get(self, item_id: str) -> ReviewItem:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM review_items WHERE id = ?", (item_id,)
            ).fetchone()
        if row is None:
            raise ReviewItemNotFoundError(item_id)
        return _row_to_item(row)

    def add(self, item: ReviewItem) -> ReviewItem:
        try:
            with self._connect() as conn:
                conn.execute(
                    f"INSERT INTO review_items ({_ITEM_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    _item_params(item),
                )
        except StorageError as e:
            if isinstance(e.__cause__, sqlite3.IntegrityError):
                raise DuplicateReviewItemError(item.id) from None
            raise
        logger.debug("Added review item", item_id=item.id)
        return item

    def put(self, item: ReviewItem) -> None:
        with self._connect() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO review_items ({_ITEM_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                _item_params(item),
            )

    def delete(self, item_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM review_items WHERE id = ?", (item_id,))
            return cursor.rowcount > 0

    def all(self) -> List[ReviewItem]:
        with self._connect() as conn:
            rows = conn.execute(f"SELECT {_ITEM_COLUMNS} FROM review_items").fetchall()
        return [_row_to_item(row) for row in rows]

    def exists(self, item_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM review_items WHERE id = ?", (item_id,)
            ).fetchone()
        return row is not None

    def count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) FROM review_items").fetchone()
        return int(row[0]) if row else 0

    def _active_items(self) -> List[ReviewItem]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM review_items WHERE is_completed = 0"
            ).fetchall()
        return [_row_to_item(row) for row in rows]

    # Timestamps may carry different UTC offsets, so ordering happens on
    # parsed datetimes rather than on the stored text.
    def query_due(
        self, now: datetime, subject_filter: Optional[SubjectFilter] = None
    ) -> List[ReviewItem]:
        return due_today(self._active_items(), now, subject_filter)

    def query_upcoming(
        self,
        now: datetime,
        limit: int = DEFAULT_UPCOMING_LIMIT,
        subject_filter: Optional[SubjectFilter] = None,
        within: Optional[timedelta] = None,
    ) -> List[ReviewItem]:
        return upcoming(self._active_items(), now, limit, subject_filter, within)


class SQLiteSessionRecorder(_SQLiteBackend, SessionRecorder):
    """Append-only session log persisted in a SQLite file."""

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS session_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                review_item_id TEXT NOT NULL,
                performance_score INTEGER NOT NULL,
                timestamp TEXT NOT NULL,
                session_type TEXT NOT NULL DEFAULT 'review',
                stage_before TEXT,
                stage_after TEXT,
                time_spent_seconds INTEGER NOT NULL DEFAULT 60
            )
        """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_session_log_item
            ON session_log (review_item_id)
        """
        )

    def append(self, entry: SessionLogEntry) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO session_log
                (review_item_id, performance_score, timestamp, session_type,
                 stage_before, stage_after, time_spent_seconds)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    entry.review_item_id,
                    entry.performance_score,
                    entry.timestamp.isoformat(),
                    entry.session_type,
                    _optional_stage(entry.stage_before),
                    _optional_stage(entry.stage_after),
                    entry.time_spent_seconds,
                ),
            )

    def entries(self, item_id: Optional[str] = None) -> List[SessionLogEntry]:
        query = (
            "SELECT review_item_id, performance_score, timestamp, session_type, "
            "stage_before, stage_after, time_spent_seconds FROM session_log"
        )
        params: tuple = ()
        if item_id is not None:
            query += " WHERE review_item_id = ?"
            params = (item_id,)
        query += " ORDER BY id"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            SessionLogEntry(
                review_item_id=row[0],
                performance_score=int(row[1]),
                timestamp=datetime.fromisoformat(row[2]),
                session_type=row[3],
                stage_before=None if row[4] is None else parse_stage(row[4]),
                stage_after=None if row[5] is None else parse_stage(row[5]),
                time_spent_seconds=int(row[6]),
            )
            for row in rows
        ]


def _optional_stage(stage) -> Optional[str]:
    if stage is None:
        return None
    return str(stage_to_wire(stage))
