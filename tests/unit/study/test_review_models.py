"""Tests for the review data model."""

from datetime import timedelta

import pytest

from recallforge.study.models import (
    ReviewItem,
    ReviewOutcome,
    SessionLogEntry,
    SubDayStage,
    SubjectFilter,
    SubjectPath,
    format_stage,
    new_review_item,
    parse_stage,
    stage_days,
    stage_to_wire,
    validate_stage,
)


class TestStages:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("immediate_retry", SubDayStage.IMMEDIATE_RETRY),
            (" Same_Day_Retry ", SubDayStage.SAME_DAY_RETRY),
            ("14", 14),
            (30, 30),
            (SubDayStage.IMMEDIATE_RETRY, SubDayStage.IMMEDIATE_RETRY),
        ],
    )
    def test_parse_stage(self, value, expected) -> None:
        assert parse_stage(value) == expected

    @pytest.mark.parametrize("value", ["tomorrow", -1, 1.5, True, None])
    def test_parse_stage_rejects(self, value) -> None:
        with pytest.raises(ValueError):
            parse_stage(value)

    def test_wire_form(self) -> None:
        assert stage_to_wire(SubDayStage.SAME_DAY_RETRY) == "same_day_retry"
        assert stage_to_wire(60) == 60

    def test_stage_days(self) -> None:
        assert stage_days(SubDayStage.IMMEDIATE_RETRY) == 0
        assert stage_days(14) == 14

    def test_format_stage(self) -> None:
        assert format_stage(SubDayStage.IMMEDIATE_RETRY) == "retry soon"
        assert format_stage(SubDayStage.SAME_DAY_RETRY) == "later today"
        assert format_stage(7) == "7d"

    def test_validate_stage_rejects_negative(self) -> None:
        with pytest.raises(ValueError):
            validate_stage(-3)


class TestSubjectPath:
    def test_str_skips_empty_parts(self) -> None:
        assert str(SubjectPath("math", "algebra", "3")) == "math > algebra > 3"
        assert str(SubjectPath("math")) == "math"

    def test_from_dict_handles_none(self) -> None:
        assert SubjectPath.from_dict(None) == SubjectPath()
        assert SubjectPath.from_dict({"subject": "bio", "book": None}) == SubjectPath("bio")


class TestSubjectFilter:
    def test_unset_fields_match_anything(self) -> None:
        path = SubjectPath("math", "algebra", "3")
        assert SubjectFilter().matches(path)
        assert SubjectFilter().is_empty
        assert SubjectFilter(subject="math", chapter="3").matches(path)
        assert not SubjectFilter(book="geometry").matches(path)


class TestReviewItem:
    def test_rejects_empty_id(self, now) -> None:
        with pytest.raises(ValueError):
            ReviewItem(id="", next_review_at=now)

    def test_rejects_ease_below_floor(self, make_item) -> None:
        with pytest.raises(ValueError):
            make_item(ease_factor=1.2)

    def test_rejects_negative_review_count(self, make_item) -> None:
        with pytest.raises(ValueError):
            make_item(review_count=-1)

    def test_is_due(self, make_item, now) -> None:
        assert make_item(next_review_at=now).is_due(now)
        assert not make_item(next_review_at=now + timedelta(seconds=1)).is_due(now)
        assert not make_item(is_completed=True).is_due(now)

    def test_dict_round_trip(self, make_item) -> None:
        item = make_item(interval_stage=14, ease_factor=2.1, review_count=3)
        data = item.to_dict()

        assert data["interval_stage"] == 14
        assert ReviewItem.from_dict(data) == item

    def test_from_dict_defaults(self, now) -> None:
        item = ReviewItem.from_dict({"id": "x", "next_review_at": now.isoformat()})

        assert item.interval_stage is SubDayStage.IMMEDIATE_RETRY
        assert item.ease_factor == 2.5
        assert item.subject_path == SubjectPath()

    def test_new_review_item(self, now) -> None:
        item = new_review_item("x", now, SubjectPath("bio"))

        assert item.next_review_at == now
        assert item.interval_stage is SubDayStage.IMMEDIATE_RETRY
        assert item.review_count == 0
        assert item.is_active


class TestSessionLogEntry:
    @pytest.mark.parametrize("score,correct", [(2, False), (3, True), (5, True)])
    def test_is_correct(self, now, score, correct) -> None:
        entry = SessionLogEntry("x", score, now)
        assert entry.is_correct is correct

    def test_to_dict(self, now) -> None:
        entry = SessionLogEntry(
            "x", 4, now, stage_before=SubDayStage.IMMEDIATE_RETRY, stage_after=1
        )
        data = entry.to_dict()

        assert data["stage_before"] == "immediate_retry"
        assert data["stage_after"] == 1
        assert data["session_type"] == "review"
        assert data["time_spent_seconds"] == 60


class TestReviewOutcome:
    def test_exposes_item_fields(self, make_item) -> None:
        item = make_item(interval_stage=3, ease_factor=2.6, review_count=2)
        outcome = ReviewOutcome(item=item, previous_stage=1)

        assert outcome.new_stage == 3
        assert outcome.new_ease_factor == 2.6
        assert outcome.review_count == 2
        assert outcome.to_dict()["item_id"] == item.id
