"""Request and response schemas for the review API.

Rule #7: Every request body is validated by pydantic before it reaches
the service.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import AwareDatetime, BaseModel, Field, StrictInt

from recallforge.study.models import (
    DEFAULT_TIME_SPENT_SECONDS,
    ReviewItem,
    ReviewOutcome,
    SubDayStage,
    SubjectPath,
)
from recallforge.study.stats import StudyStats

# "immediate_retry" / "same_day_retry" or a day count
StageField = Union[SubDayStage, int]


class SubjectPathModel(BaseModel):
    """Subject > book > chapter provenance."""

    subject: str = ""
    book: str = ""
    chapter: str = ""

    def to_domain(self) -> SubjectPath:
        return SubjectPath(subject=self.subject, book=self.book, chapter=self.chapter)


class CreateItemRequest(BaseModel):
    """Start tracking a wrong note."""

    id: str = Field(..., min_length=1, description="Opaque item identifier")
    subject_path: SubjectPathModel = Field(default_factory=SubjectPathModel)
    now: Optional[AwareDatetime] = Field(
        default=None, description="Creation time; server clock if omitted"
    )


class RecordReviewRequest(BaseModel):
    """One review of an item."""

    # Strict so "3" or true are rejected rather than coerced
    score: StrictInt = Field(..., description="Performance score 1-5")
    now: Optional[AwareDatetime] = Field(
        default=None, description="Review time; server clock if omitted"
    )
    time_spent_seconds: int = Field(default=DEFAULT_TIME_SPENT_SECONDS, ge=0)


class ReactivateRequest(BaseModel):
    now: Optional[AwareDatetime] = None


class ReviewItemResponse(BaseModel):
    """A review item as stored."""

    id: str
    subject_path: SubjectPathModel
    interval_stage: StageField
    ease_factor: float
    review_count: int
    next_review_at: datetime
    is_completed: bool

    @classmethod
    def from_item(cls, item: ReviewItem) -> "ReviewItemResponse":
        return cls(
            id=item.id,
            subject_path=SubjectPathModel(**item.subject_path.to_dict()),
            interval_stage=item.interval_stage,
            ease_factor=item.ease_factor,
            review_count=item.review_count,
            next_review_at=item.next_review_at,
            is_completed=item.is_completed,
        )


class ReviewOutcomeResponse(BaseModel):
    """Result of recording a review."""

    item_id: str
    next_review_at: datetime
    new_ease_factor: float
    new_stage: StageField
    previous_stage: StageField
    is_completed: bool
    review_count: int

    @classmethod
    def from_outcome(cls, outcome: ReviewOutcome) -> "ReviewOutcomeResponse":
        return cls(
            item_id=outcome.item.id,
            next_review_at=outcome.next_review_at,
            new_ease_factor=outcome.new_ease_factor,
            new_stage=outcome.new_stage,
            previous_stage=outcome.previous_stage,
            is_completed=outcome.is_completed,
            review_count=outcome.review_count,
        )


class ItemListResponse(BaseModel):
    """Ordered list of review items."""

    items: List[ReviewItemResponse]
    count: int

    @classmethod
    def from_items(cls, items: List[ReviewItem]) -> "ItemListResponse":
        return cls(
            items=[ReviewItemResponse.from_item(item) for item in items],
            count=len(items),
        )


class SubjectStatsModel(BaseModel):
    name: str
    total_items: int
    due_items: int
    graduated_items: int
    average_ease: float
    total_reviews: int
    last_reviewed: Optional[datetime] = None


class StudyStatsResponse(BaseModel):
    """Aggregate study statistics."""

    total_items: int
    active_items: int
    graduated_items: int
    due_now: int
    average_ease: float
    total_reviews: int
    reviewed_today: int
    time_today_minutes: float
    accuracy: float
    streak_days: int
    stage_distribution: Dict[str, int]
    subjects: List[SubjectStatsModel]

    @classmethod
    def from_stats(cls, stats: StudyStats) -> "StudyStatsResponse":
        data = stats.to_dict()
        data["subjects"] = [
            SubjectStatsModel(
                name=s.name,
                total_items=s.total_items,
                due_items=s.due_items,
                graduated_items=s.graduated_items,
                average_ease=s.average_ease,
                total_reviews=s.total_reviews,
                last_reviewed=s.last_reviewed,
            )
            for s in stats.subjects
        ]
        return cls(**data)


class ErrorResponse(BaseModel):
    """Error body shared by every non-2xx response."""

    error_code: str
    message: str
    why_it_happened: str = ""
    how_to_fix: List[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = Field(..., description="healthy or unhealthy")
    version: str
    timestamp: str
    storage_backend: str = ""
    error: Optional[str] = None
