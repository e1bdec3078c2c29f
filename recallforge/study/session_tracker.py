"""Session tracker with undo stack for review sessions.

Keeps, for the current process only, the snapshot each review replaced so
that a mis-tapped score can be taken back. Rating counts and accuracy are
tracked alongside. Nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from recallforge.study.models import ReviewItem


@dataclass(frozen=True)
class ReviewAction:
    """A single review that can be undone.

    Attributes:
        item_id: ID of the reviewed item
        score: Performance score given (1-5)
        timestamp: When the review was recorded
        prev_item: Item state before this review
    """

    item_id: str
    score: int
    timestamp: datetime
    prev_item: ReviewItem


class SessionTracker:
    """Tracks a review session with undo capability.

    Attributes:
        start_time: When the session started
        actions: Undoable review actions, oldest first
        max_undo: Maximum number of undoable actions
    """

    DEFAULT_MAX_UNDO = 50

    def __init__(self, max_undo: int = DEFAULT_MAX_UNDO) -> None:
        if max_undo < 1:
            raise ValueError(f"max_undo must be positive, got {max_undo}")
        self.start_time = datetime.now()
        self.actions: List[ReviewAction] = []
        self.max_undo = max_undo
        self._rating_counts: Dict[int, int] = {}

    def record_review(
        self,
        item_id: str,
        score: int,
        prev_item: ReviewItem,
        timestamp: Optional[datetime] = None,
    ) -> ReviewAction:
        """Push a review onto the undo stack and count its score."""
        action = ReviewAction(
            item_id=item_id,
            score=score,
            timestamp=timestamp or datetime.now(),
            prev_item=prev_item,
        )
        self.actions.append(action)
        self._rating_counts[score] = self._rating_counts.get(score, 0) + 1

        # Oldest actions fall off; session counts keep them
        if len(self.actions) > self.max_undo:
            self.actions.pop(0)

        return action

    def undo(self) -> Optional[ReviewAction]:
        """Pop the most recent review, or None if there is nothing to undo."""
        if not self.actions:
            return None

        action = self.actions.pop()
        remaining = self._rating_counts.get(action.score, 0) - 1
        if remaining > 0:
            self._rating_counts[action.score] = remaining
        else:
            self._rating_counts.pop(action.score, None)

        return action

    def can_undo(self) -> bool:
        return len(self.actions) > 0

    def get_last_action(self) -> Optional[ReviewAction]:
        """Most recent action without removing it."""
        if not self.actions:
            return None
        return self.actions[-1]

    @property
    def items_reviewed(self) -> int:
        return sum(self._rating_counts.values())

    @property
    def rating_counts(self) -> Dict[int, int]:
        return self._rating_counts.copy()

    @property
    def correct_count(self) -> int:
        """Count of scores >= 3."""
        return sum(count for score, count in self._rating_counts.items() if score >= 3)

    @property
    def accuracy(self) -> float:
        """Percentage of reviews scored 3 or above."""
        total = self.items_reviewed
        if total == 0:
            return 0.0
        return (self.correct_count / total) * 100

    def get_session_stats(self) -> Dict[str, Any]:
        return {
            "start_time": self.start_time.isoformat(),
            "items_reviewed": self.items_reviewed,
            "correct_count": self.correct_count,
            "accuracy": round(self.accuracy, 1),
            "rating_breakdown": self.rating_counts,
            "undo_available": self.can_undo(),
            "undo_stack_size": len(self.actions),
        }

    def reset(self) -> None:
        """Start a fresh session."""
        self.start_time = datetime.now()
        self.actions.clear()
        self._rating_counts.clear()
