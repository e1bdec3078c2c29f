"""Lightweight due items checker.

Shown at CLI startup so the user knows there is something to review.

Design Principles:
- Rule #1: Early returns for edge cases
- Rule #5: Storage errors are logged, never shown as a crash at startup
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional, Tuple

from recallforge.core.exceptions import StorageError
from recallforge.core.logging import get_logger

if TYPE_CHECKING:
    from recallforge.storage.base import ReviewItemStore

logger = get_logger(__name__)


def count_due_items(store: "ReviewItemStore", now: datetime) -> Tuple[int, int]:
    """Count due items.

    Args:
        store: Review item store
        now: Query cutoff

    Returns:
        Tuple of (due_count, total_count); (0, 0) if the store is unreadable
    """
    try:
        items = store.all()
    except StorageError as e:
        logger.warning("Could not count due items", error=str(e))
        return (0, 0)

    due_count = sum(1 for item in items if item.is_due(now))
    return (due_count, len(items))


def get_due_notification(store: "ReviewItemStore", now: datetime) -> Optional[str]:
    """Notification message for due items, or None if nothing is due.

    Examples:
        >>> get_due_notification(store, now)
        '5 wrong notes are due for review. Run `recallforge due`'
    """
    due_count, _ = count_due_items(store, now)

    if due_count == 0:
        return None

    if due_count == 1:
        return "1 wrong note is due for review. Run `recallforge due`"
    return f"{due_count} wrong notes are due for review. Run `recallforge due`"
