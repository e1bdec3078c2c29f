"""
Base Interfaces for Storage Backends.

This module defines the two persistence seams the review service depends on,
so backends can be swapped (in-memory, SQLite, ...) without touching the
scheduling engine.

Architecture Context
--------------------

    ┌──────────────────────────────┐
    │        ReviewService         │
    │  (get → compute → put loop)  │
    └──────┬────────────────┬──────┘
           │                │
    ┌──────┴──────┐  ┌──────┴───────┐
    │ ReviewItem  │  │   Session    │
    │   Store     │  │   Recorder   │
    └──────┬──────┘  └──────┬───────┘
           │                │
      ┌────┴────┐      ┌────┴────┐
      ↓         ↓      ↓         ↓
    memory   sqlite  memory   sqlite

Interface Contract
------------------
ReviewItemStore:
- get(): Retrieve an item by id (ReviewItemNotFoundError if absent)
- add(): Insert a new item (DuplicateReviewItemError if the id exists)
- put(): Insert or replace an item
- delete(): Remove an item
- all(): Every stored item
- query_due() / query_upcoming(): Scheduling queries, ordered by
  (next_review_at, id)

SessionRecorder:
- append(): Add one immutable SessionLogEntry
- entries(): Read entries back, optionally for a single item

Writes to a store are atomic per item: a reader never observes a
half-updated ReviewItem. Backends signal infrastructure failures with
StorageError so callers can retry.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional

from recallforge.study.models import ReviewItem, SessionLogEntry, SubjectFilter
from recallforge.study.scheduler import DEFAULT_UPCOMING_LIMIT, due_today, upcoming


class ReviewItemStore(ABC):
    """Abstract persistence for review items."""

    @abstractmethod
    def get(self, item_id: str) -> ReviewItem:
        """
        Retrieve an item by id.

        Raises:
            ReviewItemNotFoundError: If no item has this id
        """
        pass

    @abstractmethod
    def add(self, item: ReviewItem) -> ReviewItem:
        """
        Insert a new item.

        Raises:
            DuplicateReviewItemError: If an item with the same id exists
        """
        pass

    @abstractmethod
    def put(self, item: ReviewItem) -> None:
        """Insert or replace an item atomically."""
        pass

    @abstractmethod
    def delete(self, item_id: str) -> bool:
        """Remove an item. Returns True if something was deleted."""
        pass

    @abstractmethod
    def all(self) -> List[ReviewItem]:
        """Return every stored item, in no particular order."""
        pass

    def exists(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self.all())

    def count(self) -> int:
        return len(self.all())

    def query_due(
        self, now: datetime, subject_filter: Optional[SubjectFilter] = None
    ) -> List[ReviewItem]:
        """Active items due at now, earliest first."""
        return due_today(self.all(), now, subject_filter)

    def query_upcoming(
        self,
        now: datetime,
        limit: int = DEFAULT_UPCOMING_LIMIT,
        subject_filter: Optional[SubjectFilter] = None,
        within: Optional[timedelta] = None,
    ) -> List[ReviewItem]:
        """Active items not yet due, earliest first, at most limit."""
        return upcoming(self.all(), now, limit, subject_filter, within)

    def close(self) -> None:
        """Release backend resources. Default is a no-op."""
        pass


class SessionRecorder(ABC):
    """Append-only log of review attempts."""

    @abstractmethod
    def append(self, entry: SessionLogEntry) -> None:
        """Persist one entry. Existing entries are never modified."""
        pass

    @abstractmethod
    def entries(self, item_id: Optional[str] = None) -> List[SessionLogEntry]:
        """Entries in append order, optionally for one item only."""
        pass

    def close(self) -> None:
        pass
