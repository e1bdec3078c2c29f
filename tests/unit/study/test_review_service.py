"""Tests for ReviewService.

Covers:
- Adding items and recording reviews through storage
- Validation before any store access
- Retry of transient store failures without double application
- Best-effort session logging
- Reactivation and undo
- Queries using the injected clock
"""

import threading
import time
from datetime import datetime, timedelta

import pytest

from recallforge.core.config import Config
from recallforge.core.exceptions import (
    AlreadyGraduatedError,
    DuplicateReviewItemError,
    InvalidScoreError,
    RetryError,
    ReviewItemNotFoundError,
    StorageError,
)
from recallforge.storage.memory import InMemoryReviewStore, InMemorySessionRecorder
from recallforge.study.graduation import never_graduate
from recallforge.study.models import SubDayStage, SubjectFilter, SubjectPath
from recallforge.study.scheduler import ReviewScheduler
from recallforge.study.service import ReviewService


class FlakyStore(InMemoryReviewStore):
    """Store whose first N puts fail with StorageError."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.put_calls = 0

    def put(self, item) -> None:
        self.put_calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise StorageError("database is locked")
        super().put(item)


class SlowStore(InMemoryReviewStore):
    """Store that pauses between read and write to widen race windows."""

    def get(self, item_id):
        item = super().get(item_id)
        time.sleep(0.002)
        return item


class BrokenRecorder(InMemorySessionRecorder):
    def append(self, entry) -> None:
        raise StorageError("disk full")


def _fast_config() -> Config:
    config = Config()
    config.storage.backend = "memory"
    return config


# ============================================================================
# Writes
# ============================================================================


class TestAddItem:
    def test_new_item_is_due_now(self, service, now) -> None:
        item = service.add_item("n1", SubjectPath("math", "algebra", "3"))

        assert item.next_review_at == now
        assert item.interval_stage is SubDayStage.IMMEDIATE_RETRY
        assert item.review_count == 0
        assert service.get_item("n1") == item

    def test_duplicate_rejected(self, service) -> None:
        service.add_item("n1")
        with pytest.raises(DuplicateReviewItemError):
            service.add_item("n1")

    def test_default_ease_from_config(self, store, recorder, clock) -> None:
        config = _fast_config()
        config.scheduling.default_ease_factor = 2.0
        service = ReviewService(store, recorder, config=config, clock=clock)

        assert service.add_item("n1").ease_factor == 2.0


class TestRecordReview:
    def test_persists_updated_item(self, service, now) -> None:
        service.add_item("n1")

        outcome = service.record_review("n1", 3)

        assert outcome.new_stage == 1
        assert outcome.previous_stage is SubDayStage.IMMEDIATE_RETRY
        assert outcome.next_review_at == now + timedelta(days=1)
        assert outcome.new_ease_factor == pytest.approx(2.36)
        assert service.get_item("n1") == outcome.item

    def test_appends_session_log(self, service, recorder, now) -> None:
        service.add_item("n1")
        service.record_review("n1", 2, time_spent_seconds=45)

        entries = recorder.entries("n1")
        assert len(entries) == 1
        assert entries[0].performance_score == 2
        assert entries[0].timestamp == now
        assert entries[0].stage_before is SubDayStage.IMMEDIATE_RETRY
        assert entries[0].stage_after is SubDayStage.IMMEDIATE_RETRY
        assert entries[0].time_spent_seconds == 45

    def test_explicit_now_overrides_clock(self, service, now) -> None:
        service.add_item("n1")
        later = now + timedelta(hours=3)

        outcome = service.record_review("n1", 5, now=later)

        assert outcome.next_review_at == later + timedelta(days=1)

    def test_invalid_score_touches_nothing(self, service, recorder) -> None:
        item = service.add_item("n1")
        with pytest.raises(InvalidScoreError):
            service.record_review("n1", 0)

        assert service.get_item("n1") == item
        assert recorder.entries() == []
        assert not service.tracker.can_undo()

    def test_invalid_score_checked_before_lookup(self, service) -> None:
        with pytest.raises(InvalidScoreError):
            service.record_review("missing", 9)

    def test_unknown_item(self, service) -> None:
        with pytest.raises(ReviewItemNotFoundError):
            service.record_review("missing", 3)

    def test_graduated_item_rejected(self, service, recorder) -> None:
        service.add_item("n1")
        service.record_review("n1", 5)

        with pytest.raises(AlreadyGraduatedError):
            service.record_review("n1", 5)
        assert len(recorder.entries()) == 1

    def test_negative_time_spent_rejected(self, service) -> None:
        service.add_item("n1")
        with pytest.raises(ValueError):
            service.record_review("n1", 3, time_spent_seconds=-1)

    def test_custom_scheduler(self, store, recorder, clock) -> None:
        service = ReviewService(
            store,
            recorder,
            scheduler=ReviewScheduler(graduation_policy=never_graduate),
            config=_fast_config(),
            clock=clock,
        )
        service.add_item("n1")
        assert service.record_review("n1", 5).is_completed is False


class TestRetry:
    def test_transient_failure_is_retried_once_applied(self, recorder, clock) -> None:
        store = FlakyStore(failures=1)
        service = ReviewService(store, recorder, config=_fast_config(), clock=clock)
        service.add_item("n1")

        outcome = service.record_review("n1", 5)

        assert store.put_calls == 2
        assert outcome.review_count == 1
        assert outcome.new_ease_factor == pytest.approx(2.6)
        assert service.get_item("n1").review_count == 1

    def test_persistent_failure_raises_retry_error(self, recorder, clock) -> None:
        store = FlakyStore(failures=100)
        service = ReviewService(store, recorder, config=_fast_config(), clock=clock)
        service.add_item("n1")

        with pytest.raises(RetryError) as exc_info:
            service.record_review("n1", 5)

        assert isinstance(exc_info.value.last_exception, StorageError)
        assert store.put_calls == 3
        assert service.get_item("n1").review_count == 0
        assert recorder.entries() == []


class TestSessionLogFailure:
    def test_review_saved_when_log_append_fails(self, store, clock) -> None:
        service = ReviewService(
            store, BrokenRecorder(), config=_fast_config(), clock=clock
        )
        service.add_item("n1")

        outcome = service.record_review("n1", 3)

        assert service.get_item("n1") == outcome.item


class TestReactivate:
    def test_graduated_item_becomes_due(self, service, clock) -> None:
        service.add_item("n1")
        graduated = service.record_review("n1", 5).item
        clock.advance(days=3)

        revived = service.reactivate("n1")

        assert revived.is_completed is False
        assert revived.interval_stage is SubDayStage.IMMEDIATE_RETRY
        assert revived.next_review_at == clock.current
        assert revived.ease_factor == graduated.ease_factor
        assert revived.review_count == graduated.review_count
        assert [i.id for i in service.due_today()] == ["n1"]

    def test_active_item_unchanged(self, service) -> None:
        item = service.add_item("n1")
        assert service.reactivate("n1") == item

    def test_unknown_item(self, service) -> None:
        with pytest.raises(ReviewItemNotFoundError):
            service.reactivate("missing")


class TestUndo:
    def test_restores_previous_state(self, service, recorder) -> None:
        original = service.add_item("n1")
        service.record_review("n1", 5)

        restored = service.undo_last_review()

        assert restored == original
        assert service.get_item("n1") == original
        # Session log is append-only
        assert len(recorder.entries()) == 1

    def test_nothing_to_undo(self, service) -> None:
        assert service.undo_last_review() is None

    def test_undo_in_reverse_order(self, service) -> None:
        service.add_item("n1")
        first = service.record_review("n1", 3).item
        service.record_review("n1", 2)

        assert service.undo_last_review() == first
        assert service.get_item("n1") == first


# ============================================================================
# Queries
# ============================================================================


class TestQueries:
    def test_due_today_uses_clock(self, service, clock) -> None:
        service.add_item("n1")
        service.record_review("n1", 3)
        assert service.due_today() == []

        clock.advance(days=1)
        assert [i.id for i in service.due_today()] == ["n1"]

    def test_due_today_with_filter(self, service) -> None:
        service.add_item("m", SubjectPath("math", "calc", "1"))
        service.add_item("p", SubjectPath("physics", "waves", "1"))

        result = service.due_today(subject_filter=SubjectFilter(subject="math"))

        assert [i.id for i in result] == ["m"]

    def test_upcoming_default_limit_from_config(self, store, recorder, clock) -> None:
        config = _fast_config()
        config.scheduling.upcoming_limit = 2
        service = ReviewService(store, recorder, config=config, clock=clock)
        for name in ("a", "b", "c"):
            service.add_item(name)
            service.record_review(name, 3)

        assert [i.id for i in service.upcoming()] == ["a", "b"]
        assert len(service.upcoming(limit=5)) == 3

    def test_statistics(self, service) -> None:
        service.add_item("n1")
        service.add_item("n2")
        service.record_review("n1", 5)

        stats = service.statistics()

        assert stats.total_items == 2
        assert stats.graduated_items == 1
        assert stats.due_now == 1
        assert stats.total_reviews == 1

    def test_due_notification(self, service) -> None:
        assert service.due_notification() is None
        service.add_item("n1")
        assert service.due_notification().startswith("1 wrong note is due")


class TestFromConfig:
    def test_memory_backend(self, tmp_path) -> None:
        config = Config(_base_path=tmp_path)
        service = ReviewService.from_config(config, backend="memory")

        assert isinstance(service.store, InMemoryReviewStore)
        service.close()

    def test_sqlite_backend_round_trip(self, tmp_path, now) -> None:
        config = Config(_base_path=tmp_path)
        service = ReviewService.from_config(config)
        service.add_item("n1", now=now)
        service.record_review("n1", 3, now=now)
        service.close()

        reopened = ReviewService.from_config(config)
        item = reopened.get_item("n1")
        assert item.interval_stage == 1
        assert item.next_review_at == now + timedelta(days=1)
        assert len(reopened.recorder.entries()) == 1


class TestUndoFailure:
    def test_failed_restore_keeps_action(self, recorder, clock) -> None:
        store = FlakyStore(failures=0)
        service = ReviewService(store, recorder, config=_fast_config(), clock=clock)
        original = service.add_item("n1")
        graduated = service.record_review("n1", 5).item
        store.failures = 100

        with pytest.raises(RetryError):
            service.undo_last_review()

        assert service.tracker.can_undo()
        assert service.get_item("n1") == graduated

        store.failures = 0
        assert service.undo_last_review() == original
        assert service.get_item("n1") == original
        assert not service.tracker.can_undo()


class TestNaiveTimes:
    """Times without a timezone are read as local time."""

    def test_naive_now_is_stored_aware(self, service) -> None:
        item = service.add_item("n1", now=datetime(2024, 3, 10, 12, 0))
        assert item.next_review_at.tzinfo is not None

    def test_queries_work_after_naive_write(self, service) -> None:
        service.add_item("n1", now=datetime(2024, 3, 10, 12, 0))
        service.add_item("n2")

        due = service.due_today(now=datetime(2024, 3, 11, 12, 0))

        assert sorted(i.id for i in due) == ["n1", "n2"]
        assert service.upcoming(now=datetime(2024, 3, 11, 12, 0)) == []


class TestConcurrency:
    def test_concurrent_reviews_are_serialized(self, recorder, clock) -> None:
        """
        GWT:
        Given one active item and a store with a slow read
        When N threads record a review on it at the same time
        Then every review is applied once, in sequence.
        """
        workers = 8
        service = ReviewService(
            SlowStore(),
            recorder,
            scheduler=ReviewScheduler(graduation_policy=never_graduate),
            config=_fast_config(),
            clock=clock,
        )
        service.add_item("n1")
        start = threading.Barrier(workers)
        errors = []

        def review() -> None:
            start.wait()
            try:
                service.record_review("n1", 4)
            except Exception as e:  # surfaced through the errors list
                errors.append(e)

        threads = [threading.Thread(target=review) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        item = service.get_item("n1")
        assert item.review_count == workers
        assert len(recorder.entries("n1")) == workers
        # Each review climbed from the stage the one before it left
        stages_after = {e.stage_after for e in recorder.entries("n1")}
        assert len(stages_after) == workers

    def test_review_count_accumulates(self, store, recorder, clock) -> None:
        service = ReviewService(
            store,
            recorder,
            scheduler=ReviewScheduler(graduation_policy=never_graduate),
            config=_fast_config(),
            clock=clock,
        )
        service.add_item("n1")

        for expected, score in enumerate([5, 2, 3, 1, 4, 4], start=1):
            assert service.record_review("n1", score).review_count == expected


class TestItemLocks:
    def test_lock_released_after_review(self, service) -> None:
        service.add_item("n1")
        service.record_review("n1", 3)
        assert "n1" not in service._locks

    def test_unknown_id_leaves_no_lock(self, service) -> None:
        with pytest.raises(ReviewItemNotFoundError):
            service.record_review("missing", 3)
        assert "missing" not in service._locks
