"""Review service.

Caller-facing entry point that ties the pure scheduling engine to storage.

    record_review(item_id, score)
        ├── validate score                      (no store access on bad input)
        ├── lock item_id                        (one transition at a time)
        ├── retry: get → engine → put           (StorageError only)
        ├── session tracker snapshot            (undo)
        └── append SessionLogEntry              (best effort)

Each retry attempt re-reads the stored item, so a transition is never
applied twice. A failed session log append is logged and does not roll
back the item update.

The engine always receives an explicit `now`; when the caller passes
`now=None` the service reads its clock exactly once per operation.
"""

from __future__ import annotations

import threading
import weakref
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from recallforge.core.config import Config
from recallforge.core.exceptions import (
    DuplicateReviewItemError,
    ReviewItemNotFoundError,
    StorageError,
)
from recallforge.core.logging import get_logger
from recallforge.core.retry import RetryConfig, call_with_retry
from recallforge.storage.base import ReviewItemStore, SessionRecorder
from recallforge.storage.factory import create_storage
from recallforge.study.due_check import get_due_notification
from recallforge.study.models import (
    DEFAULT_TIME_SPENT_SECONDS,
    ReviewItem,
    ReviewOutcome,
    SessionLogEntry,
    SubDayStage,
    SubjectFilter,
    SubjectPath,
    new_review_item,
)
from recallforge.study.scheduler import ReviewScheduler, validate_score
from recallforge.study.session_tracker import SessionTracker
from recallforge.study.stats import StatsAggregator, StudyStats

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Current time as a timezone-aware datetime in the local zone."""
    return datetime.now().astimezone()


class ReviewService:
    """Review operations over a store, a session log and a scheduler.

    Attributes:
        store: Review item persistence
        recorder: Append-only session log
        scheduler: The review state machine
        config: Active configuration
        tracker: In-process undo stack and session counts
    """

    def __init__(
        self,
        store: ReviewItemStore,
        recorder: SessionRecorder,
        scheduler: Optional[ReviewScheduler] = None,
        config: Optional[Config] = None,
        clock: Clock = local_now,
        tracker: Optional[SessionTracker] = None,
    ) -> None:
        self.config = config or Config()
        self.store = store
        self.recorder = recorder
        self.scheduler = scheduler or ReviewScheduler.from_config(
            self.config.scheduling
        )
        self.tracker = tracker or SessionTracker()
        self._clock = clock

        self._retry_config = RetryConfig(
            max_attempts=self.config.storage.write_attempts,
            retryable_exceptions=(StorageError,),
            fatal_exceptions=(ReviewItemNotFoundError, DuplicateReviewItemError),
        )
        # Entries vanish once no caller holds the lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(
        cls, config: Config, backend: Optional[str] = None
    ) -> "ReviewService":
        """Build a service with the storage backend named in the config."""
        store, recorder = create_storage(config, backend)
        return cls(store, recorder, config=config)

    def _now(self, now: Optional[datetime]) -> datetime:
        if now is None:
            return self._clock()
        # Naive times are read as local time so stored times stay comparable
        if now.tzinfo is None:
            return now.astimezone()
        return now

    def _item_lock(self, item_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(item_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[item_id] = lock
            return lock

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_item(
        self,
        item_id: str,
        subject_path: Optional[SubjectPath] = None,
        now: Optional[datetime] = None,
    ) -> ReviewItem:
        """Start tracking a new wrong note; it is due immediately.

        Raises:
            DuplicateReviewItemError: If the id is already tracked
        """
        item = new_review_item(
            item_id,
            self._now(now),
            subject_path=subject_path,
            ease_factor=self.config.scheduling.default_ease_factor,
        )
        call_with_retry(self.store.add, item, config=self._retry_config)
        logger.info("Tracking new review item", item_id=item_id)
        return item

    def record_review(
        self,
        item_id: str,
        performance_score: int,
        now: Optional[datetime] = None,
        time_spent_seconds: int = DEFAULT_TIME_SPENT_SECONDS,
    ) -> ReviewOutcome:
        """Record one review and persist the new schedule.

        Raises:
            InvalidScoreError: If the score is not an integer in [1, 5]
            ReviewItemNotFoundError: If the id is not tracked
            AlreadyGraduatedError: If the item has graduated
            RetryError: If the store kept failing
        """
        score = validate_score(performance_score)
        if time_spent_seconds < 0:
            raise ValueError("time_spent_seconds must be non-negative")
        now = self._now(now)

        with self._item_lock(item_id):
            previous, updated = call_with_retry(
                self._apply_review, item_id, score, now, config=self._retry_config
            )

        self.tracker.record_review(item_id, score, previous, timestamp=now)
        self._append_log(
            SessionLogEntry(
                review_item_id=item_id,
                performance_score=score,
                timestamp=now,
                stage_before=previous.interval_stage,
                stage_after=updated.interval_stage,
                time_spent_seconds=time_spent_seconds,
            )
        )

        logger.info(
            "Recorded review",
            item_id=item_id,
            score=score,
            graduated=updated.is_completed,
        )
        return ReviewOutcome(item=updated, previous_stage=previous.interval_stage)

    def _apply_review(
        self, item_id: str, score: int, now: datetime
    ) -> Tuple[ReviewItem, ReviewItem]:
        previous = self.store.get(item_id)
        updated = self.scheduler.record_review(previous, score, now)
        self.store.put(updated)
        return previous, updated

    def _append_log(self, entry: SessionLogEntry) -> None:
        try:
            self.recorder.append(entry)
        except StorageError as e:
            logger.warning(
                "Session log append failed; review was still saved",
                item_id=entry.review_item_id,
                error=str(e),
            )

    def reactivate(self, item_id: str, now: Optional[datetime] = None) -> ReviewItem:
        """Put a graduated item back into active scheduling, due now.

        Ease factor and review count are kept. Active items are returned
        unchanged.

        Raises:
            ReviewItemNotFoundError: If the id is not tracked
        """
        now = self._now(now)
        with self._item_lock(item_id):
            return call_with_retry(
                self._apply_reactivate, item_id, now, config=self._retry_config
            )

    def _apply_reactivate(self, item_id: str, now: datetime) -> ReviewItem:
        item = self.store.get(item_id)
        if item.is_active:
            return item
        revived = replace(
            item,
            is_completed=False,
            interval_stage=SubDayStage.IMMEDIATE_RETRY,
            next_review_at=now,
        )
        self.store.put(revived)
        logger.info("Reactivated review item", item_id=item_id)
        return revived

    def undo_last_review(self) -> Optional[ReviewItem]:
        """Restore the item state replaced by the most recent review.

        Only reviews recorded through this service instance can be undone.
        The session log keeps its entry.

        Returns:
            The restored item, or None if there is nothing to undo
        """
        action = self.tracker.get_last_action()
        if action is None:
            return None

        with self._item_lock(action.item_id):
            call_with_retry(self.store.put, action.prev_item, config=self._retry_config)
        # Keep the action until the restore is stored
        self.tracker.undo()
        logger.info("Undid review", item_id=action.item_id, score=action.score)
        return action.prev_item

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_item(self, item_id: str) -> ReviewItem:
        return self.store.get(item_id)

    def due_today(
        self,
        now: Optional[datetime] = None,
        subject_filter: Optional[SubjectFilter] = None,
    ) -> List[ReviewItem]:
        """Active items due at now, earliest first."""
        return self.store.query_due(self._now(now), subject_filter)

    def upcoming(
        self,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
        subject_filter: Optional[SubjectFilter] = None,
        within: Optional[timedelta] = None,
    ) -> List[ReviewItem]:
        """Active items not yet due, earliest first."""
        if limit is None:
            limit = self.config.scheduling.upcoming_limit
        return self.store.query_upcoming(self._now(now), limit, subject_filter, within)

    def statistics(self, now: Optional[datetime] = None) -> StudyStats:
        return StatsAggregator(self.store, self.recorder).get_stats(self._now(now))

    def due_notification(self, now: Optional[datetime] = None) -> Optional[str]:
        return get_due_notification(self.store, self._now(now))

    def close(self) -> None:
        self.store.close()
        self.recorder.close()

