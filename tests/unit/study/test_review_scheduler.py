"""Tests for the review scheduling engine.

Covers:
- The five reference transitions (new item, failure, floor, growth, due query)
- Input validation and the graduated-item guard
- Next-review timestamps for each stage kind
- due_today / upcoming ordering, filtering and limits
"""

from dataclasses import FrozenInstanceError
from datetime import datetime, time, timedelta, timezone

import pytest

from recallforge.core.config import SchedulingConfig
from recallforge.core.exceptions import AlreadyGraduatedError, InvalidScoreError
from recallforge.study.graduation import never_graduate
from recallforge.study.models import SubDayStage, SubjectFilter, SubjectPath
from recallforge.study.scheduler import (
    ReviewScheduler,
    compute_next_review_at,
    due_today,
    end_of_day,
    upcoming,
    validate_score,
)


@pytest.fixture
def scheduler() -> ReviewScheduler:
    return ReviewScheduler()


class TestReferenceTransitions:
    """End-to-end transitions on single items."""

    def test_new_item_perfect_score(self, scheduler, make_item, now) -> None:
        item = make_item()

        result = scheduler.record_review(item, 5, now)

        assert result.interval_stage == 1
        assert result.ease_factor == pytest.approx(2.6)
        assert result.review_count == 1
        assert result.next_review_at == now + timedelta(days=1)

    def test_failure_drops_to_sub_day(self, scheduler, make_item, now) -> None:
        """Score 2 costs 0.32 ease: 2.0 → 1.68."""
        item = make_item(interval_stage=7, ease_factor=2.0)

        result = scheduler.record_review(item, 2, now)

        assert result.interval_stage is SubDayStage.IMMEDIATE_RETRY
        assert result.next_review_at == now + timedelta(minutes=20)
        assert result.ease_factor == pytest.approx(1.68)
        assert result.is_completed is False

    def test_failure_from_top_stage_clamps_ease(self, scheduler, make_item, now) -> None:
        item = make_item(interval_stage=30, ease_factor=1.3)

        result = scheduler.record_review(item, 1, now)

        assert result.interval_stage is SubDayStage.IMMEDIATE_RETRY
        assert result.ease_factor == 1.3

    def test_top_stage_grows_by_thirty_days(self, scheduler, make_item, now) -> None:
        """Score 4 is ease-neutral: 2.8 stays 2.8."""
        item = make_item(interval_stage=30, ease_factor=2.8)

        result = scheduler.record_review(item, 4, now)

        assert result.interval_stage == 60
        assert result.ease_factor == pytest.approx(2.8)
        assert result.next_review_at == now + timedelta(days=60)

    def test_due_today_excludes_future_and_completed(self, make_item, now) -> None:
        yesterday = now - timedelta(days=1)
        tomorrow = now + timedelta(days=1)
        item_a = make_item("a", next_review_at=yesterday)
        item_b = make_item("b", next_review_at=tomorrow)
        item_c = make_item("c", next_review_at=yesterday, is_completed=True)

        assert due_today([item_a, item_b, item_c], now) == [item_a]


class TestRecordReview:
    """State machine behaviour of record_review."""

    def test_input_item_is_not_modified(self, scheduler, make_item, now) -> None:
        item = make_item()
        scheduler.record_review(item, 3, now)

        assert item.review_count == 0
        assert item.interval_stage is SubDayStage.IMMEDIATE_RETRY
        with pytest.raises(FrozenInstanceError):
            item.review_count = 5  # type: ignore[misc]

    def test_identity_and_subject_preserved(self, scheduler, make_item, now) -> None:
        item = make_item("q-17", subject_path=SubjectPath("bio", "cells", "2"))
        result = scheduler.record_review(item, 3, now)

        assert result.id == "q-17"
        assert result.subject_path == SubjectPath("bio", "cells", "2")

    @pytest.mark.parametrize("score,completed", [(1, False), (2, False), (3, False), (4, True), (5, True)])
    def test_default_graduation(self, scheduler, make_item, now, score, completed) -> None:
        result = scheduler.record_review(make_item(), score, now)
        assert result.is_completed is completed

    def test_injected_policy(self, make_item, now) -> None:
        scheduler = ReviewScheduler(graduation_policy=never_graduate)
        result = scheduler.record_review(make_item(), 5, now)
        assert result.is_completed is False

    def test_graduated_item_rejected(self, scheduler, make_item, now) -> None:
        item = make_item(is_completed=True)
        with pytest.raises(AlreadyGraduatedError) as exc_info:
            scheduler.record_review(item, 5, now)
        assert exc_info.value.item_id == item.id

    @pytest.mark.parametrize("score", [0, 6, -1, 100, 3.0, "3", None, True, False])
    def test_invalid_score_rejected(self, scheduler, make_item, now, score) -> None:
        with pytest.raises(InvalidScoreError):
            scheduler.record_review(make_item(), score, now)

    def test_invalid_score_checked_before_graduation(self, scheduler, make_item, now) -> None:
        with pytest.raises(InvalidScoreError):
            scheduler.record_review(make_item(is_completed=True), 9, now)

    def test_deterministic(self, scheduler, make_item, now) -> None:
        item = make_item(interval_stage=3, ease_factor=2.2)
        assert scheduler.record_review(item, 3, now) == scheduler.record_review(
            item, 3, now
        )

    def test_review_count_increments_on_failure(self, scheduler, make_item, now) -> None:
        item = make_item(review_count=4, interval_stage=14)
        assert scheduler.record_review(item, 1, now).review_count == 5


class TestNextReviewAt:
    """Timestamp for each stage kind."""

    def test_day_stage_keeps_time_of_day(self, now) -> None:
        at = datetime(2024, 3, 10, 15, 42, 7, tzinfo=timezone.utc)
        assert compute_next_review_at(7, at) == datetime(
            2024, 3, 17, 15, 42, 7, tzinfo=timezone.utc
        )

    def test_immediate_retry(self, now) -> None:
        assert compute_next_review_at(SubDayStage.IMMEDIATE_RETRY, now) == now + timedelta(
            minutes=20
        )

    def test_same_day_retry_is_end_of_day(self, now) -> None:
        result = compute_next_review_at(SubDayStage.SAME_DAY_RETRY, now)
        assert result == datetime.combine(now.date(), time.max, tzinfo=timezone.utc)
        assert result > now

    def test_same_day_retry_at_last_instant_falls_back(self) -> None:
        last = datetime.combine(datetime(2024, 3, 10).date(), time.max, tzinfo=timezone.utc)
        result = compute_next_review_at(SubDayStage.SAME_DAY_RETRY, last)
        assert result == last + timedelta(minutes=20)

    def test_zero_day_stage_rejected(self, now) -> None:
        with pytest.raises(ValueError):
            compute_next_review_at(0, now)

    def test_configured_retry_delay(self, make_item, now) -> None:
        scheduler = ReviewScheduler(immediate_retry=timedelta(minutes=5))
        result = scheduler.record_review(make_item(), 1, now)
        assert result.next_review_at == now + timedelta(minutes=5)

    def test_non_positive_retry_delay_rejected(self) -> None:
        with pytest.raises(ValueError):
            ReviewScheduler(immediate_retry=timedelta(0))


class TestFromConfig:
    def test_builds_from_scheduling_section(self, make_item, now) -> None:
        config = SchedulingConfig(
            immediate_retry_minutes=10,
            failure_stage="same_day_retry",
            graduation_threshold=None,
        )
        scheduler = ReviewScheduler.from_config(config)

        failed = scheduler.record_review(make_item(), 1, now)
        passed = scheduler.record_review(make_item(), 5, now)

        assert failed.interval_stage is SubDayStage.SAME_DAY_RETRY
        assert passed.is_completed is False
        assert scheduler.immediate_retry == timedelta(minutes=10)


class TestValidateScore:
    @pytest.mark.parametrize("score", [1, 2, 3, 4, 5])
    def test_accepts_range(self, score: int) -> None:
        assert validate_score(score) == score

    def test_error_carries_score(self) -> None:
        with pytest.raises(InvalidScoreError) as exc_info:
            validate_score(7)
        assert exc_info.value.score == 7


class TestEndOfDay:
    def test_keeps_timezone(self) -> None:
        tz = timezone(timedelta(hours=9))
        at = datetime(2024, 3, 10, 8, 0, tzinfo=tz)
        result = end_of_day(at)
        assert result.tzinfo is tz
        assert (result.hour, result.minute, result.second) == (23, 59, 59)


class TestDueToday:
    """due_today ordering and filtering."""

    def test_sorted_by_due_time_then_id(self, make_item, now) -> None:
        early = now - timedelta(hours=5)
        items = [
            make_item("c", next_review_at=now),
            make_item("b", next_review_at=early),
            make_item("a", next_review_at=early),
        ]
        assert [i.id for i in due_today(items, now)] == ["a", "b", "c"]

    def test_due_at_exact_instant(self, make_item, now) -> None:
        assert due_today([make_item(next_review_at=now)], now)

    def test_empty_input(self, now) -> None:
        assert due_today([], now) == []

    def test_subject_filter(self, make_item, now) -> None:
        items = [
            make_item("m", subject_path=SubjectPath("math", "algebra", "1")),
            make_item("p", subject_path=SubjectPath("physics", "optics", "1")),
        ]
        result = due_today(items, now, SubjectFilter(subject="physics"))
        assert [i.id for i in result] == ["p"]

    def test_filter_on_chapter_only(self, make_item, now) -> None:
        items = [
            make_item("a", subject_path=SubjectPath("math", "algebra", "1")),
            make_item("b", subject_path=SubjectPath("math", "algebra", "2")),
        ]
        result = due_today(items, now, SubjectFilter(chapter="2"))
        assert [i.id for i in result] == ["b"]


class TestUpcoming:
    """upcoming ordering, limits and horizon."""

    def test_excludes_due_and_completed(self, make_item, now) -> None:
        items = [
            make_item("due", next_review_at=now),
            make_item("later", next_review_at=now + timedelta(days=1)),
            make_item("done", next_review_at=now + timedelta(days=1), is_completed=True),
        ]
        assert [i.id for i in upcoming(items, now)] == ["later"]

    def test_default_limit_is_ten(self, make_item, now) -> None:
        items = [make_item(f"n{i:02d}", next_review_at=now + timedelta(hours=i + 1)) for i in range(15)]
        result = upcoming(items, now)
        assert len(result) == 10
        assert result[0].id == "n00"

    def test_limit_zero(self, make_item, now) -> None:
        items = [make_item(next_review_at=now + timedelta(days=1))]
        assert upcoming(items, now, limit=0) == []

    def test_negative_limit_rejected(self, now) -> None:
        with pytest.raises(ValueError):
            upcoming([], now, limit=-1)

    def test_within_horizon(self, make_item, now) -> None:
        items = [
            make_item("soon", next_review_at=now + timedelta(days=3)),
            make_item("far", next_review_at=now + timedelta(days=30)),
        ]
        result = upcoming(items, now, within=timedelta(days=7))
        assert [i.id for i in result] == ["soon"]

    def test_due_and_upcoming_partition_active_items(self, make_item, now) -> None:
        items = [
            make_item(f"i{k}", next_review_at=now + timedelta(hours=k - 3))
            for k in range(7)
        ]
        due_ids = {i.id for i in due_today(items, now)}
        upcoming_ids = {i.id for i in upcoming(items, now, limit=100)}
        assert due_ids.isdisjoint(upcoming_ids)
        assert due_ids | upcoming_ids == {i.id for i in items}
