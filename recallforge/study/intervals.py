"""Interval policy: the Ebbinghaus stage ladder.

Maps the current interval stage and a performance score to the next stage.

    sub-day → 1 → 3 → 7 → 14 → 30 → 60 → 90 → ...

A score below 3 always drops the item back to a sub-day stage, whatever
stage it had reached. A score of 3 or more climbs one rung; past the last
rung the interval keeps growing by a fixed 30 days.
"""

from __future__ import annotations

from typing import Tuple

from recallforge.study.models import IntervalStage, SubDayStage, is_sub_day

# Ebbinghaus stage ladder in days
STAGE_LADDER: Tuple[int, ...] = (1, 3, 7, 14, 30)
MASTERED_INCREMENT_DAYS: int = 30
PASSING_SCORE: int = 3


def next_interval_stage(
    current_stage: IntervalStage,
    performance_score: int,
    failure_stage: SubDayStage = SubDayStage.IMMEDIATE_RETRY,
) -> IntervalStage:
    """Compute the stage granted after a review.

    Args:
        current_stage: Stage before the review (sub-day sentinel or days)
        performance_score: Recall rating 1-5; 3 and above is a pass
        failure_stage: Sub-day stage to fall back to on a failed review

    Returns:
        The new stage

    Examples:
        >>> next_interval_stage(SubDayStage.IMMEDIATE_RETRY, 3)
        1
        >>> next_interval_stage(7, 4)
        14
        >>> next_interval_stage(30, 5)
        60
        >>> next_interval_stage(30, 2)
        <SubDayStage.IMMEDIATE_RETRY: 'immediate_retry'>
    """
    if performance_score < PASSING_SCORE:
        return failure_stage

    if is_sub_day(current_stage) or current_stage == 0:
        return STAGE_LADDER[0]

    index = _rung_index(current_stage)
    if index == len(STAGE_LADDER) - 1:
        return current_stage + MASTERED_INCREMENT_DAYS

    return STAGE_LADDER[index + 1]


def _rung_index(days: int) -> int:
    """Index of the first rung at or above days.

    Off-ladder values (e.g. 2 or 10) are treated as the next rung up;
    anything past the last rung maps to the last rung.
    """
    for index, rung in enumerate(STAGE_LADDER):
        if days <= rung:
            return index
    return len(STAGE_LADDER) - 1
