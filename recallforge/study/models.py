"""Review scheduling data model.

Defines the review item that the scheduling engine transitions, the
interval stage type, and the append-only session log entry.

An interval stage is either a sub-day sentinel or a whole number of days:

    SubDayStage.IMMEDIATE_RETRY   review again a few minutes after recording
    SubDayStage.SAME_DAY_RETRY    review again at the end of the same day
    1, 3, 7, 14, 30, 60, ...      review again after that many days

On the wire a stage is the sentinel's string value or an integer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

DEFAULT_EASE_FACTOR: float = 2.5
MIN_EASE_FACTOR: float = 1.3
DEFAULT_TIME_SPENT_SECONDS: int = 60


class SubDayStage(str, Enum):
    """Sentinel stages shorter than one day."""

    IMMEDIATE_RETRY = "immediate_retry"
    SAME_DAY_RETRY = "same_day_retry"

    def __str__(self) -> str:
        return self.value


IntervalStage = Union[SubDayStage, int]


def is_sub_day(stage: IntervalStage) -> bool:
    """Check whether a stage is one of the sub-day sentinels."""
    return isinstance(stage, SubDayStage)


def stage_days(stage: IntervalStage) -> int:
    """Express a stage in whole days, counting sub-day stages as 0."""
    if is_sub_day(stage):
        return 0
    return int(stage)


def validate_stage(stage: Any) -> IntervalStage:
    """Return stage unchanged if valid, else raise ValueError."""
    if isinstance(stage, SubDayStage):
        return stage
    if isinstance(stage, bool) or not isinstance(stage, int):
        raise ValueError(f"interval stage must be a SubDayStage or int, got {stage!r}")
    if stage < 0:
        raise ValueError(f"interval stage days must be non-negative, got {stage}")
    return stage


def parse_stage(value: Any) -> IntervalStage:
    """Parse a stage from its wire form.

    Accepts a SubDayStage, its string value, an int, or a digit string.

    Raises:
        ValueError: If value is not a recognizable stage
    """
    if isinstance(value, SubDayStage):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text.isdigit():
            return validate_stage(int(text))
        try:
            return SubDayStage(text)
        except ValueError:
            raise ValueError(f"unknown interval stage: {value!r}") from None
    return validate_stage(value)


def stage_to_wire(stage: IntervalStage) -> Union[str, int]:
    """Serialize a stage: sentinel name or integer days."""
    if is_sub_day(stage):
        return stage.value
    return int(stage)


def format_stage(stage: IntervalStage) -> str:
    """Human-readable stage label."""
    if stage is SubDayStage.IMMEDIATE_RETRY:
        return "retry soon"
    if stage is SubDayStage.SAME_DAY_RETRY:
        return "later today"
    return f"{stage}d"


def is_due_at(next_review_at: datetime, now: datetime) -> bool:
    """The single due predicate: an item is due once now reaches its timestamp."""
    return now >= next_review_at


@dataclass(frozen=True)
class SubjectPath:
    """Provenance of a wrong note: subject > book > chapter.

    Not used by the scheduling math.
    """

    subject: str = ""
    book: str = ""
    chapter: str = ""

    def __str__(self) -> str:
        return " > ".join(part for part in (self.subject, self.book, self.chapter) if part)

    def to_dict(self) -> Dict[str, str]:
        return {"subject": self.subject, "book": self.book, "chapter": self.chapter}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SubjectPath":
        data = data or {}
        return cls(
            subject=data.get("subject") or "",
            book=data.get("book") or "",
            chapter=data.get("chapter") or "",
        )


@dataclass(frozen=True)
class SubjectFilter:
    """Optional subject/book/chapter constraints; unset fields match anything."""

    subject: Optional[str] = None
    book: Optional[str] = None
    chapter: Optional[str] = None

    def matches(self, path: SubjectPath) -> bool:
        if self.subject is not None and path.subject != self.subject:
            return False
        if self.book is not None and path.book != self.book:
            return False
        if self.chapter is not None and path.chapter != self.chapter:
            return False
        return True

    @property
    def is_empty(self) -> bool:
        return self.subject is None and self.book is None and self.chapter is None


@dataclass(frozen=True)
class ReviewItem:
    """One trackable mistake under active review.

    Attributes:
        id: Opaque unique identifier
        next_review_at: When the item is next due
        subject_path: Provenance (subject, book, chapter)
        interval_stage: Last granted interval (sub-day sentinel or days)
        ease_factor: Difficulty multiplier, never below 1.3
        review_count: Number of recorded reviews
        is_completed: True once the item has graduated
    """

    id: str
    next_review_at: datetime
    subject_path: SubjectPath = field(default_factory=SubjectPath)
    interval_stage: IntervalStage = SubDayStage.IMMEDIATE_RETRY
    ease_factor: float = DEFAULT_EASE_FACTOR
    review_count: int = 0
    is_completed: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("review item id must not be empty")
        validate_stage(self.interval_stage)
        if self.ease_factor < MIN_EASE_FACTOR:
            raise ValueError(
                f"ease factor must be at least {MIN_EASE_FACTOR}, got {self.ease_factor}"
            )
        if self.review_count < 0:
            raise ValueError(f"review count must be non-negative, got {self.review_count}")

    @property
    def is_active(self) -> bool:
        return not self.is_completed

    def is_due(self, now: datetime) -> bool:
        """Active and past its review timestamp."""
        return self.is_active and is_due_at(self.next_review_at, now)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "id": self.id,
            "subject_path": self.subject_path.to_dict(),
            "interval_stage": stage_to_wire(self.interval_stage),
            "ease_factor": self.ease_factor,
            "review_count": self.review_count,
            "next_review_at": self.next_review_at.isoformat(),
            "is_completed": self.is_completed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewItem":
        """Deserialize from the dict produced by to_dict()."""
        next_review_at = data["next_review_at"]
        if isinstance(next_review_at, str):
            next_review_at = datetime.fromisoformat(next_review_at)
        return cls(
            id=data["id"],
            next_review_at=next_review_at,
            subject_path=SubjectPath.from_dict(data.get("subject_path")),
            interval_stage=parse_stage(
                data.get("interval_stage", SubDayStage.IMMEDIATE_RETRY)
            ),
            ease_factor=float(data.get("ease_factor", DEFAULT_EASE_FACTOR)),
            review_count=int(data.get("review_count", 0)),
            is_completed=bool(data.get("is_completed", False)),
        )


def new_review_item(
    item_id: str,
    now: datetime,
    subject_path: Optional[SubjectPath] = None,
    ease_factor: float = DEFAULT_EASE_FACTOR,
) -> ReviewItem:
    """Create the initial review record for a newly logged wrong note.

    The item starts at the immediate sub-day stage and is due right away.
    """
    return ReviewItem(
        id=item_id,
        next_review_at=now,
        subject_path=subject_path or SubjectPath(),
        interval_stage=SubDayStage.IMMEDIATE_RETRY,
        ease_factor=ease_factor,
        review_count=0,
        is_completed=False,
    )


@dataclass(frozen=True)
class SessionLogEntry:
    """Immutable record of one review attempt, kept for analytics."""

    review_item_id: str
    performance_score: int
    timestamp: datetime
    session_type: str = "review"
    stage_before: Optional[IntervalStage] = None
    stage_after: Optional[IntervalStage] = None
    time_spent_seconds: int = DEFAULT_TIME_SPENT_SECONDS

    @property
    def is_correct(self) -> bool:
        """Scores of 3 and above count as recalled."""
        return self.performance_score >= 3

    def to_dict(self) -> Dict[str, Any]:
        return {
            "review_item_id": self.review_item_id,
            "performance_score": self.performance_score,
            "timestamp": self.timestamp.isoformat(),
            "session_type": self.session_type,
            "stage_before": None
            if self.stage_before is None
            else stage_to_wire(self.stage_before),
            "stage_after": None
            if self.stage_after is None
            else stage_to_wire(self.stage_after),
            "time_spent_seconds": self.time_spent_seconds,
        }


@dataclass(frozen=True)
class ReviewOutcome:
    """Caller-facing result of recording a review."""

    item: ReviewItem
    previous_stage: IntervalStage

    @property
    def next_review_at(self) -> datetime:
        return self.item.next_review_at

    @property
    def new_ease_factor(self) -> float:
        return self.item.ease_factor

    @property
    def new_stage(self) -> IntervalStage:
        return self.item.interval_stage

    @property
    def is_completed(self) -> bool:
        return self.item.is_completed

    @property
    def review_count(self) -> int:
        return self.item.review_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item.id,
            "next_review_at": self.next_review_at.isoformat(),
            "new_ease_factor": self.new_ease_factor,
            "new_stage": stage_to_wire(self.new_stage),
            "is_completed": self.is_completed,
            "review_count": self.review_count,
        }
