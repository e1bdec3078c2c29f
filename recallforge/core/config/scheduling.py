"""
Scheduling configuration.

Tunables for the review scheduling engine. The stage ladder and the ease
formula coefficients are fixed and deliberately not configurable.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class SchedulingConfig:
    """Review scheduling configuration."""

    immediate_retry_minutes: int = 20
    failure_stage: str = "immediate_retry"  # immediate_retry, same_day_retry
    graduation_threshold: Optional[int] = 4  # None disables graduation
    default_ease_factor: float = 2.5
    upcoming_limit: int = 10
