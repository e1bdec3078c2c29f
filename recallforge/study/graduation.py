"""Graduation policies.

A graduation policy decides, from the score of a single review, whether the
item is now mastered and leaves active scheduling. It is injected into the
scheduler so the decision can vary independently of the interval math.
"""

from __future__ import annotations

from typing import Callable, Optional

GraduationPolicy = Callable[[int], bool]

DEFAULT_GRADUATION_THRESHOLD = 4


def score_at_least(threshold: int) -> GraduationPolicy:
    """Graduate on any review scored at or above threshold."""
    if not 1 <= threshold <= 5:
        raise ValueError(f"graduation threshold must be in [1, 5], got {threshold}")

    def policy(score: int) -> bool:
        return score >= threshold

    policy.__name__ = f"score_at_least_{threshold}"
    return policy


def never_graduate(score: int) -> bool:
    """Keep every item in active scheduling forever."""
    return False


default_graduation_policy: GraduationPolicy = score_at_least(
    DEFAULT_GRADUATION_THRESHOLD
)


def policy_from_threshold(threshold: Optional[int]) -> GraduationPolicy:
    """Build a policy from a config value; None disables graduation."""
    if threshold is None:
        return never_graduate
    return score_at_least(threshold)
