"""Review scheduling engine.

Combines the interval policy and the ease factor policy into a single
review transition, and answers the due/upcoming queries.

Everything here is deterministic: no I/O, no randomness and no wall-clock
reads. The caller passes `now` explicitly to every operation, so the same
arguments always give the same answer.

Transition (record_review):
    1. score must be an int in [1, 5]             (InvalidScoreError)
    2. graduated items are terminal               (AlreadyGraduatedError)
    3. stage  ← next_interval_stage(stage, score)
    4. ease   ← next_ease_factor(ease, score)
    5. next_review_at from the new stage and now
    6. is_completed ← graduation_policy(score)
    7. review_count + 1

Next review timestamps:
    IMMEDIATE_RETRY  now + 20 minutes (configurable)
    SAME_DAY_RETRY   end of now's calendar day
    N days           now + N days, same time of day (no midnight rounding)
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING, Iterable, List, Optional

from recallforge.core.exceptions import AlreadyGraduatedError, InvalidScoreError
from recallforge.core.logging import ReviewLogger
from recallforge.study.ease import next_ease_factor
from recallforge.study.graduation import (
    GraduationPolicy,
    default_graduation_policy,
    policy_from_threshold,
)
from recallforge.study.intervals import next_interval_stage
from recallforge.study.models import (
    IntervalStage,
    ReviewItem,
    SubDayStage,
    SubjectFilter,
    is_due_at,
)

if TYPE_CHECKING:
    from recallforge.core.config import SchedulingConfig

MIN_SCORE: int = 1
MAX_SCORE: int = 5
IMMEDIATE_RETRY_MINUTES: int = 20
DEFAULT_UPCOMING_LIMIT: int = 10


def validate_score(performance_score: object) -> int:
    """Return the score if it is an integer in [1, 5].

    Raises:
        InvalidScoreError: For out-of-range or non-integer scores (bools included)
    """
    if isinstance(performance_score, bool) or not isinstance(performance_score, int):
        raise InvalidScoreError(performance_score)
    if not MIN_SCORE <= performance_score <= MAX_SCORE:
        raise InvalidScoreError(performance_score)
    return performance_score


def end_of_day(now: datetime) -> datetime:
    """Last representable instant of now's calendar day, in now's timezone."""
    return datetime.combine(now.date(), time.max, tzinfo=now.tzinfo)


def compute_next_review_at(
    stage: IntervalStage,
    now: datetime,
    immediate_retry: timedelta = timedelta(minutes=IMMEDIATE_RETRY_MINUTES),
) -> datetime:
    """Timestamp at which an item granted `stage` at `now` is next due.

    The result is always strictly after now.

    Raises:
        ValueError: For a zero-day stage, which has no future due time
    """
    if stage is SubDayStage.IMMEDIATE_RETRY:
        return now + immediate_retry
    if stage is SubDayStage.SAME_DAY_RETRY:
        cutoff = end_of_day(now)
        # Recorded in the final instant of the day
        if cutoff <= now:
            return now + immediate_retry
        return cutoff
    if stage <= 0:
        raise ValueError(f"cannot schedule a {stage}-day interval")
    return now + timedelta(days=stage)


def _schedule_order(item: ReviewItem) -> tuple:
    return (item.next_review_at, item.id)


def filter_by_subject(
    items: Iterable[ReviewItem], subject_filter: Optional[SubjectFilter]
) -> List[ReviewItem]:
    """Keep items whose subject path matches the filter (all items if None)."""
    if subject_filter is None or subject_filter.is_empty:
        return list(items)
    return [item for item in items if subject_filter.matches(item.subject_path)]


def due_today(
    items: Iterable[ReviewItem],
    now: datetime,
    subject_filter: Optional[SubjectFilter] = None,
) -> List[ReviewItem]:
    """Active items due at `now`, earliest first (ties broken by id).

    The input order is ignored; results are always re-sorted.
    """
    due = [
        item
        for item in filter_by_subject(items, subject_filter)
        if item.is_active and is_due_at(item.next_review_at, now)
    ]
    return sorted(due, key=_schedule_order)


def upcoming(
    items: Iterable[ReviewItem],
    now: datetime,
    limit: int = DEFAULT_UPCOMING_LIMIT,
    subject_filter: Optional[SubjectFilter] = None,
    within: Optional[timedelta] = None,
) -> List[ReviewItem]:
    """Up to `limit` active items not yet due at `now`, earliest first.

    Args:
        items: Candidate items in any order
        now: Query cutoff
        limit: Maximum number of items returned
        subject_filter: Optional subject/book/chapter constraint
        within: Optional look-ahead horizon; items due later are skipped
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")

    horizon = now + within if within is not None else None
    pending = []
    for item in filter_by_subject(items, subject_filter):
        if not item.is_active or is_due_at(item.next_review_at, now):
            continue
        if horizon is not None and item.next_review_at > horizon:
            continue
        pending.append(item)

    return sorted(pending, key=_schedule_order)[:limit]


class ReviewScheduler:
    """The review state machine.

    Attributes:
        graduation_policy: Decides from a score whether the item graduates
        failure_stage: Sub-day stage assigned on a failed review
        immediate_retry: Delay used for the immediate sub-day stage
    """

    def __init__(
        self,
        graduation_policy: GraduationPolicy = default_graduation_policy,
        failure_stage: SubDayStage = SubDayStage.IMMEDIATE_RETRY,
        immediate_retry: timedelta = timedelta(minutes=IMMEDIATE_RETRY_MINUTES),
    ) -> None:
        if immediate_retry <= timedelta(0):
            raise ValueError("immediate_retry must be a positive duration")
        self.graduation_policy = graduation_policy
        self.failure_stage = failure_stage
        self.immediate_retry = immediate_retry

    @classmethod
    def from_config(cls, scheduling: "SchedulingConfig") -> "ReviewScheduler":
        """Build a scheduler from the `scheduling` config section."""
        return cls(
            graduation_policy=policy_from_threshold(scheduling.graduation_threshold),
            failure_stage=SubDayStage(scheduling.failure_stage),
            immediate_retry=timedelta(minutes=scheduling.immediate_retry_minutes),
        )

    def record_review(
        self, item: ReviewItem, performance_score: int, now: datetime
    ) -> ReviewItem:
        """Apply one review to an item and return the updated copy.

        The input item is not modified.

        Raises:
            InvalidScoreError: If the score is not an integer in [1, 5]
            AlreadyGraduatedError: If the item has already graduated
        """
        rlog = ReviewLogger(item.id)
        try:
            score = validate_score(performance_score)
        except InvalidScoreError:
            rlog.rejected("invalid score", score=performance_score)
            raise
        if item.is_completed:
            rlog.rejected("already graduated")
            raise AlreadyGraduatedError(item.id)

        new_stage = next_interval_stage(item.interval_stage, score, self.failure_stage)
        new_ease = next_ease_factor(item.ease_factor, score)

        updated = replace(
            item,
            interval_stage=new_stage,
            ease_factor=new_ease,
            next_review_at=compute_next_review_at(new_stage, now, self.immediate_retry),
            is_completed=bool(self.graduation_policy(score)),
            review_count=item.review_count + 1,
        )
        rlog.transition(
            item.interval_stage, new_stage, item.ease_factor, new_ease, score
        )
        return updated

    def due_today(
        self,
        items: Iterable[ReviewItem],
        now: datetime,
        subject_filter: Optional[SubjectFilter] = None,
    ) -> List[ReviewItem]:
        """See module-level due_today()."""
        return due_today(items, now, subject_filter)

    def upcoming(
        self,
        items: Iterable[ReviewItem],
        now: datetime,
        limit: int = DEFAULT_UPCOMING_LIMIT,
        subject_filter: Optional[SubjectFilter] = None,
        within: Optional[timedelta] = None,
    ) -> List[ReviewItem]:
        """See module-level upcoming()."""
        return upcoming(items, now, limit, subject_filter, within)
