"""Ease factor policy (SuperMemo-2 adjustment).

EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at 1.3.

    q = 5  →  +0.10
    q = 4  →  +0.00
    q = 3  →  -0.14
    q = 2  →  -0.32
    q = 1  →  -0.54

Applied on every review, failed or not. There is no ceiling.
"""

from __future__ import annotations

from recallforge.study.models import MIN_EASE_FACTOR


def ease_adjustment(performance_score: int) -> float:
    """Unclamped change in ease factor for a score."""
    diff = 5 - performance_score
    return 0.1 - diff * (0.08 + diff * 0.02)


def next_ease_factor(current_ease: float, performance_score: int) -> float:
    """Calculate the ease factor after a review.

    Args:
        current_ease: Ease factor before the review
        performance_score: Recall rating 1-5

    Returns:
        New ease factor, never below 1.3
    """
    return max(MIN_EASE_FACTOR, current_ease + ease_adjustment(performance_score))
