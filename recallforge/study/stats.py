"""Study statistics aggregator.

Summarizes review progress for the stats dashboard:
- Items tracked, active, graduated and due
- Stage distribution and average ease
- Reviews, accuracy, time spent and streak from the session log
- Per-subject breakdown
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from recallforge.core.logging import get_logger
from recallforge.study.models import (
    DEFAULT_EASE_FACTOR,
    ReviewItem,
    SessionLogEntry,
    stage_to_wire,
)

if TYPE_CHECKING:
    from recallforge.storage.base import ReviewItemStore, SessionRecorder

logger = get_logger(__name__)

# Streak lookback
MAX_STREAK_DAYS = 365


@dataclass
class SubjectStats:
    """Statistics for a single subject.

    Attributes:
        name: Subject name ("" for unfiled notes)
        total_items: Items in this subject
        due_items: Items due now
        graduated_items: Items that have graduated
        average_ease: Average ease factor
        total_reviews: Reviews recorded for the subject's items
        last_reviewed: Most recent review timestamp
    """

    name: str
    total_items: int = 0
    due_items: int = 0
    graduated_items: int = 0
    average_ease: float = DEFAULT_EASE_FACTOR
    total_reviews: int = 0
    last_reviewed: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "total_items": self.total_items,
            "due_items": self.due_items,
            "graduated_items": self.graduated_items,
            "average_ease": self.average_ease,
            "total_reviews": self.total_reviews,
            "last_reviewed": self.last_reviewed.isoformat()
            if self.last_reviewed
            else None,
        }


@dataclass
class StudyStats:
    """Aggregate study statistics.

    Attributes:
        total_items: Items tracked
        active_items: Items still scheduled
        graduated_items: Items that have graduated
        due_now: Active items due at the query time
        average_ease: Average ease factor over all items
        total_reviews: Entries in the session log
        reviewed_today: Reviews recorded on the query day
        time_today_minutes: Time spent on the query day (minutes)
        accuracy: Percentage of reviews scored 3 or above
        streak_days: Consecutive days with at least one review
        stage_distribution: Active item count by interval stage
        subjects: Per-subject statistics
    """

    total_items: int = 0
    active_items: int = 0
    graduated_items: int = 0
    due_now: int = 0
    average_ease: float = DEFAULT_EASE_FACTOR
    total_reviews: int = 0
    reviewed_today: int = 0
    time_today_minutes: float = 0.0
    accuracy: float = 0.0
    streak_days: int = 0
    stage_distribution: Dict[str, int] = field(default_factory=dict)
    subjects: List[SubjectStats] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_items": self.total_items,
            "active_items": self.active_items,
            "graduated_items": self.graduated_items,
            "due_now": self.due_now,
            "average_ease": self.average_ease,
            "total_reviews": self.total_reviews,
            "reviewed_today": self.reviewed_today,
            "time_today_minutes": self.time_today_minutes,
            "accuracy": self.accuracy,
            "streak_days": self.streak_days,
            "stage_distribution": dict(self.stage_distribution),
            "subjects": [s.to_dict() for s in self.subjects],
        }


def _average_ease(items: List[ReviewItem]) -> float:
    if not items:
        return DEFAULT_EASE_FACTOR
    return round(sum(item.ease_factor for item in items) / len(items), 2)


def _accuracy(entries: List[SessionLogEntry]) -> float:
    if not entries:
        return 0.0
    correct = sum(1 for entry in entries if entry.is_correct)
    return round(correct / len(entries) * 100, 1)


def calculate_streak(review_dates: Iterable[date], today: date) -> int:
    """Count consecutive review days ending today.

    A streak still counts if the last review was yesterday; the day is
    not over yet.
    """
    days = set(review_dates)
    if not days:
        return 0

    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days and streak < MAX_STREAK_DAYS:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def stage_distribution(items: Iterable[ReviewItem]) -> Dict[str, int]:
    """Count active items by stage, keyed by the stage's wire form."""
    counts = Counter(
        str(stage_to_wire(item.interval_stage)) for item in items if item.is_active
    )
    return dict(counts)


class StatsAggregator:
    """Aggregates study statistics from the item store and session log."""

    def __init__(self, store: "ReviewItemStore", recorder: "SessionRecorder") -> None:
        self.store = store
        self.recorder = recorder

    def get_stats(self, now: datetime) -> StudyStats:
        """Compute every metric as of `now`."""
        items = self.store.all()
        entries = self.recorder.entries()
        return build_stats(items, entries, now)


def build_stats(
    items: List[ReviewItem], entries: List[SessionLogEntry], now: datetime
) -> StudyStats:
    """Pure aggregation over already-loaded items and log entries."""
    today = now.date()
    today_entries = [e for e in entries if e.timestamp.date() == today]

    stats = StudyStats(
        total_items=len(items),
        active_items=sum(1 for item in items if item.is_active),
        graduated_items=sum(1 for item in items if item.is_completed),
        due_now=sum(1 for item in items if item.is_due(now)),
        average_ease=_average_ease(items),
        total_reviews=len(entries),
        reviewed_today=len(today_entries),
        time_today_minutes=round(
            sum(e.time_spent_seconds for e in today_entries) / 60.0, 1
        ),
        accuracy=_accuracy(entries),
        streak_days=calculate_streak((e.timestamp.date() for e in entries), today),
        stage_distribution=stage_distribution(items),
        subjects=_subject_stats(items, entries, now),
    )
    logger.debug(
        "Computed study stats", items=stats.total_items, reviews=stats.total_reviews
    )
    return stats


def _subject_stats(
    items: List[ReviewItem], entries: List[SessionLogEntry], now: datetime
) -> List[SubjectStats]:
    by_subject: Dict[str, List[ReviewItem]] = defaultdict(list)
    for item in items:
        by_subject[item.subject_path.subject].append(item)

    subject_of = {item.id: item.subject_path.subject for item in items}
    entries_by_subject: Dict[str, List[SessionLogEntry]] = defaultdict(list)
    for entry in entries:
        subject = subject_of.get(entry.review_item_id)
        if subject is not None:
            entries_by_subject[subject].append(entry)

    result = []
    for name in sorted(by_subject):
        group = by_subject[name]
        logged = entries_by_subject.get(name, [])
        result.append(
            SubjectStats(
                name=name,
                total_items=len(group),
                due_items=sum(1 for item in group if item.is_due(now)),
                graduated_items=sum(1 for item in group if item.is_completed),
                average_ease=_average_ease(group),
                total_reviews=len(logged),
                last_reviewed=max((e.timestamp for e in logged), default=None),
            )
        )
    return result
