"""Review scheduling for wrong notes.

The pure engine (models, interval and ease policies, graduation, the
scheduler) is exported here. The storage-backed ReviewService lives in
recallforge.study.service.
"""

from recallforge.study.ease import ease_adjustment, next_ease_factor
from recallforge.study.graduation import (
    GraduationPolicy,
    default_graduation_policy,
    never_graduate,
    policy_from_threshold,
    score_at_least,
)
from recallforge.study.intervals import STAGE_LADDER, next_interval_stage
from recallforge.study.models import (
    IntervalStage,
    ReviewItem,
    ReviewOutcome,
    SessionLogEntry,
    SubDayStage,
    SubjectFilter,
    SubjectPath,
    new_review_item,
)
from recallforge.study.scheduler import (
    ReviewScheduler,
    due_today,
    end_of_day,
    upcoming,
    validate_score,
)
from recallforge.study.session_tracker import ReviewAction, SessionTracker

__all__ = [
    "GraduationPolicy",
    "IntervalStage",
    "ReviewAction",
    "ReviewItem",
    "ReviewOutcome",
    "ReviewScheduler",
    "STAGE_LADDER",
    "SessionLogEntry",
    "SessionTracker",
    "SubDayStage",
    "SubjectFilter",
    "SubjectPath",
    "default_graduation_policy",
    "due_today",
    "ease_adjustment",
    "end_of_day",
    "never_graduate",
    "new_review_item",
    "next_ease_factor",
    "next_interval_stage",
    "policy_from_threshold",
    "score_at_least",
    "upcoming",
    "validate_score",
]
