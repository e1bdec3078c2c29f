"""In-memory storage backends.

Process-local and lost on exit. Used by tests and by `backend: memory`.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from recallforge.core.exceptions import DuplicateReviewItemError, ReviewItemNotFoundError
from recallforge.core.logging import get_logger
from recallforge.storage.base import ReviewItemStore, SessionRecorder
from recallforge.study.models import ReviewItem, SessionLogEntry

logger = get_logger(__name__)


class InMemoryReviewStore(ReviewItemStore):
    """Dict-backed item store guarded by a single lock."""

    def __init__(self) -> None:
        self._items: Dict[str, ReviewItem] = {}
        self._lock = threading.Lock()

    def get(self, item_id: str) -> ReviewItem:
        with self._lock:
            try:
                return self._items[item_id]
            except KeyError:
                raise ReviewItemNotFoundError(item_id) from None

    def add(self, item: ReviewItem) -> ReviewItem:
        with self._lock:
            if item.id in self._items:
                raise DuplicateReviewItemError(item.id)
            self._items[item.id] = item
        logger.debug("Added review item", item_id=item.id)
        return item

    def put(self, item: ReviewItem) -> None:
        # Items are frozen, so replacing the reference is atomic for readers
        with self._lock:
            self._items[item.id] = item

    def delete(self, item_id: str) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None

    def all(self) -> List[ReviewItem]:
        with self._lock:
            return list(self._items.values())

    def exists(self, item_id: str) -> bool:
        with self._lock:
            return item_id in self._items

    def count(self) -> int:
        with self._lock:
            return len(self._items)


class InMemorySessionRecorder(SessionRecorder):
    """List-backed append-only session log."""

    def __init__(self) -> None:
        self._entries: List[SessionLogEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: SessionLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def entries(self, item_id: Optional[str] = None) -> List[SessionLogEntry]:
        with self._lock:
            if item_id is None:
                return list(self._entries)
            return [e for e in self._entries if e.review_item_id == item_id]
