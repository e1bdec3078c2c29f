"""RecallForge - Spaced repetition scheduling for wrong-note review.

This package schedules when each tracked mistake should be reviewed again,
using an Ebbinghaus stage ladder and a SuperMemo-style ease factor.
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
