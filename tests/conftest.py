"""
Shared pytest fixtures and configuration for RecallForge tests.

This file is automatically discovered by pytest and provides fixtures
that can be used across all test files.

Fixture Organization
--------------------
- **now**: Fixed timezone-aware reference time
- **make_item**: ReviewItem builder with sensible defaults
- **store / recorder**: In-memory storage backends
- **service**: ReviewService over in-memory storage with a frozen clock
- **project_dir**: Temporary project directory with recallforge.yaml
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

from recallforge.core.config import Config
from recallforge.storage.memory import InMemoryReviewStore, InMemorySessionRecorder
from recallforge.study.models import ReviewItem, SubDayStage, SubjectPath
from recallforge.study.service import ReviewService

# Sunday 2024-03-10 09:00 UTC
REFERENCE_TIME = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)


# ============================================================================
# Time Fixtures
# ============================================================================


@pytest.fixture
def now() -> datetime:
    """Fixed reference time used as `now` across tests."""
    return REFERENCE_TIME


# ============================================================================
# Domain Builders
# ============================================================================


@pytest.fixture
def make_item(now: datetime) -> Callable[..., ReviewItem]:
    """Build ReviewItems with defaults overridable per test.

    Example:
        def test_due(make_item):
            item = make_item("a", interval_stage=7)
    """

    def _make(item_id: str = "note-1", **overrides) -> ReviewItem:
        fields = {
            "id": item_id,
            "next_review_at": now,
            "subject_path": SubjectPath("math", "algebra", "ch1"),
            "interval_stage": SubDayStage.IMMEDIATE_RETRY,
            "ease_factor": 2.5,
            "review_count": 0,
            "is_completed": False,
        }
        fields.update(overrides)
        return ReviewItem(**fields)

    return _make


# ============================================================================
# Storage and Service Fixtures
# ============================================================================


@pytest.fixture
def store() -> InMemoryReviewStore:
    return InMemoryReviewStore()


@pytest.fixture
def recorder() -> InMemorySessionRecorder:
    return InMemorySessionRecorder()


class FrozenClock:
    """Clock that returns a settable time."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock(now: datetime) -> FrozenClock:
    return FrozenClock(now)


@pytest.fixture
def service(
    store: InMemoryReviewStore,
    recorder: InMemorySessionRecorder,
    clock: FrozenClock,
) -> ReviewService:
    """ReviewService over in-memory storage with default configuration."""
    config = Config()
    config.storage.backend = "memory"
    return ReviewService(store, recorder, config=config, clock=clock)


# ============================================================================
# Project Fixtures
# ============================================================================


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Temporary project directory with a SQLite-backed recallforge.yaml."""
    (tmp_path / "recallforge.yaml").write_text(
        "project:\n"
        "  name: test-notes\n"
        "storage:\n"
        "  backend: sqlite\n"
        "logging:\n"
        "  level: WARNING\n",
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture(autouse=True)
def _clear_recallforge_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep RECALLFORGE_* variables from the developer's shell out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("RECALLFORGE_"):
            monkeypatch.delenv(key, raising=False)
