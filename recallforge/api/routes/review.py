"""
Review API Router.

Endpoints:
- POST /v1/reviews/items                     Track a new wrong note
- GET  /v1/reviews/items/{item_id}           Fetch one item
- POST /v1/reviews/items/{item_id}/record    Record a review
- POST /v1/reviews/items/{item_id}/reactivate  Reactivate a graduated item
- GET  /v1/reviews/due                       Items due now
- GET  /v1/reviews/upcoming                  Items due later
- GET  /v1/reviews/stats                     Study statistics

Domain errors are raised as-is and mapped to HTTP status codes by the
handlers registered in recallforge.api.main.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from recallforge.api.models import (
    CreateItemRequest,
    ItemListResponse,
    ReactivateRequest,
    RecordReviewRequest,
    ReviewItemResponse,
    ReviewOutcomeResponse,
    StudyStatsResponse,
)
from recallforge.study.models import SubjectFilter
from recallforge.study.service import ReviewService

router = APIRouter(prefix="/v1/reviews", tags=["reviews"])

# Ten years; larger horizons overflow datetime arithmetic
MAX_WITHIN_DAYS = 3650


class _ServiceHolder:
    """Process-wide service built from recallforge.yaml on first use.

    Rule #6: Encapsulates singleton state in smallest scope.
    """

    _instance: Optional[ReviewService] = None
    _lock = threading.Lock()

    @classmethod
    def get(cls) -> ReviewService:
        with cls._lock:
            if cls._instance is None:
                from recallforge.core.config_loaders import load_config

                cls._instance = ReviewService.from_config(load_config())
            return cls._instance

    @classmethod
    def set(cls, service: Optional[ReviewService]) -> None:
        with cls._lock:
            cls._instance = service


def get_service() -> ReviewService:
    """FastAPI dependency; override in tests via app.dependency_overrides."""
    return _ServiceHolder.get()


def set_service(service: Optional[ReviewService]) -> None:
    """Install the service used by the API (None resets to lazy loading)."""
    _ServiceHolder.set(service)


def _subject_filter(
    subject: Optional[str] = Query(default=None),
    book: Optional[str] = Query(default=None),
    chapter: Optional[str] = Query(default=None),
) -> Optional[SubjectFilter]:
    subject_filter = SubjectFilter(subject=subject, book=book, chapter=chapter)
    return None if subject_filter.is_empty else subject_filter


@router.post(
    "/items",
    response_model=ReviewItemResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_item(
    request: CreateItemRequest, service: ReviewService = Depends(get_service)
) -> ReviewItemResponse:
    """Start tracking a wrong note. It is due immediately."""
    item = service.add_item(
        request.id, subject_path=request.subject_path.to_domain(), now=request.now
    )
    return ReviewItemResponse.from_item(item)


@router.get("/items/{item_id}", response_model=ReviewItemResponse)
def get_item(
    item_id: str, service: ReviewService = Depends(get_service)
) -> ReviewItemResponse:
    return ReviewItemResponse.from_item(service.get_item(item_id))


@router.post("/items/{item_id}/record", response_model=ReviewOutcomeResponse)
def record_review(
    item_id: str,
    request: RecordReviewRequest,
    service: ReviewService = Depends(get_service),
) -> ReviewOutcomeResponse:
    """
    Record one review and return the new schedule.

    422 for an invalid score, 409 if the item has graduated, 404 if the
    item does not exist.
    """
    outcome = service.record_review(
        item_id,
        request.score,
        now=request.now,
        time_spent_seconds=request.time_spent_seconds,
    )
    return ReviewOutcomeResponse.from_outcome(outcome)


@router.post("/items/{item_id}/reactivate", response_model=ReviewItemResponse)
def reactivate_item(
    item_id: str,
    request: Optional[ReactivateRequest] = None,
    service: ReviewService = Depends(get_service),
) -> ReviewItemResponse:
    now = request.now if request is not None else None
    return ReviewItemResponse.from_item(service.reactivate(item_id, now=now))


@router.get("/due", response_model=ItemListResponse)
def list_due(
    now: Optional[datetime] = Query(default=None),
    subject_filter: Optional[SubjectFilter] = Depends(_subject_filter),
    service: ReviewService = Depends(get_service),
) -> ItemListResponse:
    """Active items due at `now`, earliest first."""
    return ItemListResponse.from_items(service.due_today(now, subject_filter))


@router.get("/upcoming", response_model=ItemListResponse)
def list_upcoming(
    now: Optional[datetime] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=0, le=1000),
    within_days: Optional[float] = Query(default=None, ge=0, le=MAX_WITHIN_DAYS),
    subject_filter: Optional[SubjectFilter] = Depends(_subject_filter),
    service: ReviewService = Depends(get_service),
) -> ItemListResponse:
    """Active items not yet due, earliest first."""
    within = timedelta(days=within_days) if within_days is not None else None
    items = service.upcoming(
        now, limit=limit, subject_filter=subject_filter, within=within
    )
    return ItemListResponse.from_items(items)


@router.get("/stats", response_model=StudyStatsResponse)
def get_stats(
    now: Optional[datetime] = Query(default=None),
    service: ReviewService = Depends(get_service),
) -> StudyStatsResponse:
    return StudyStatsResponse.from_stats(service.statistics(now))
