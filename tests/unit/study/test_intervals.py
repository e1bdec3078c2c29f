"""Tests for the interval stage ladder.

Covers:
- Climbing the ladder on passing scores
- Dropping to a sub-day stage on failing scores
- Growth past the last rung
- Off-ladder stage values
"""

import pytest

from recallforge.study.intervals import (
    MASTERED_INCREMENT_DAYS,
    PASSING_SCORE,
    STAGE_LADDER,
    next_interval_stage,
)
from recallforge.study.models import SubDayStage


class TestConstants:
    """Ladder constants."""

    def test_ladder(self) -> None:
        assert STAGE_LADDER == (1, 3, 7, 14, 30)

    def test_mastered_increment(self) -> None:
        assert MASTERED_INCREMENT_DAYS == 30

    def test_passing_score(self) -> None:
        assert PASSING_SCORE == 3


class TestPassingScores:
    """Scores of 3 and above climb one rung."""

    @pytest.mark.parametrize("score", [3, 4, 5])
    @pytest.mark.parametrize(
        "current,expected",
        [
            (SubDayStage.IMMEDIATE_RETRY, 1),
            (SubDayStage.SAME_DAY_RETRY, 1),
            (0, 1),
            (1, 3),
            (3, 7),
            (7, 14),
            (14, 30),
            (30, 60),
            (60, 90),
            (90, 120),
        ],
    )
    def test_climbs_ladder(self, current, expected, score: int) -> None:
        assert next_interval_stage(current, score) == expected

    @pytest.mark.parametrize("current,expected", [(2, 7), (5, 14), (10, 30)])
    def test_off_ladder_value_uses_next_rung_up(self, current: int, expected: int) -> None:
        """2 sits between rungs 1 and 3, so it is treated as 3."""
        assert next_interval_stage(current, 4) == expected

    @pytest.mark.parametrize("current", [15, 20, 29])
    def test_between_last_two_rungs_adds_increment(self, current: int) -> None:
        assert next_interval_stage(current, 5) == current + 30

    def test_result_never_shrinks_on_pass(self) -> None:
        stage = SubDayStage.IMMEDIATE_RETRY
        previous = 0
        for _ in range(10):
            stage = next_interval_stage(stage, 3)
            assert stage > previous
            previous = stage


class TestFailingScores:
    """Scores below 3 always drop to the failure stage."""

    @pytest.mark.parametrize("score", [1, 2])
    @pytest.mark.parametrize(
        "current", [SubDayStage.IMMEDIATE_RETRY, 0, 1, 3, 7, 14, 30, 60, 365]
    )
    def test_resets_to_immediate_retry(self, current, score: int) -> None:
        assert next_interval_stage(current, score) is SubDayStage.IMMEDIATE_RETRY

    def test_failure_stage_is_configurable(self) -> None:
        result = next_interval_stage(30, 1, failure_stage=SubDayStage.SAME_DAY_RETRY)
        assert result is SubDayStage.SAME_DAY_RETRY
