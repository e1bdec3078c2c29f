"""
Centralized Exception Hierarchy for RecallForge.

All exceptions inherit from RecallForgeError for easy catching.

Each exception includes:
- user_message: Human-readable description of what went wrong
- why_it_happened: Explanation of the root cause
- how_to_fix: Actionable steps to resolve the issue
- error_code: Unique identifier for documentation lookup (e.g., "RF-SCHED-001")

Usage
-----
    from recallforge.core.exceptions import (
        RecallForgeError,
        InvalidScoreError,
        AlreadyGraduatedError,
    )

    try:
        scheduler.record_review(item, score, now)
    except AlreadyGraduatedError as e:
        logger.warning(f"Item retired: {e}")
    except RecallForgeError as e:
        logger.error(f"RecallForge error: {e}")

Exception Hierarchy
-------------------
    RecallForgeError (base)
    ├── ValidationError
    │   ├── InvalidScoreError
    │   └── ConfigValidationError
    ├── SchedulingError
    │   └── AlreadyGraduatedError
    ├── StorageError
    │   ├── ReviewItemNotFoundError
    │   └── DuplicateReviewItemError
    └── RetryError

Boundary errors (invalid score, graduated item) are programming-contract
errors: callers must correct the input rather than retry the same call.
"""

from typing import Any, List, Optional
import builtins
import re


def sanitize_path(path: str) -> str:
    """Sanitize a file path for display in error messages.

    Args:
        path: Original file path

    Returns:
        Sanitized path with the user's home directory masked
    """
    if not path:
        return path

    patterns = [
        (r"[A-Za-z]:\\Users\\[^\\]+", r"<user-home>"),
        (r"/(?:home|Users)/[^/]+", r"<user-home>"),
    ]

    result = path
    for pattern, replacement in patterns:
        result = re.sub(pattern, replacement, result)

    return result


def sanitize_message(message: str) -> str:
    """Sanitize an error message to avoid leaking sensitive info.

    Masks credentials embedded in URLs and home directory paths.

    Args:
        message: Original error message

    Returns:
        Sanitized message with sensitive info replaced
    """
    if not message:
        return message

    result = re.sub(r"://[^:/\s]+:[^@\s]+@", "://<user>:<pass>@", message)
    result = re.sub(
        r"/(?:home|Users)/[^\s\"']+", lambda m: sanitize_path(m.group(0)), result
    )
    return result


def get_root_cause(exc: BaseException) -> BaseException:
    """Extract the root cause from a chain of exceptions.

    Follows nested __cause__ and __context__ attributes to find
    the original error that started the chain.

    Args:
        exc: Exception to analyze

    Returns:
        Root cause exception (may be the same as input)
    """
    seen = set()
    current = exc

    while current is not None:
        if id(current) in seen:
            break
        seen.add(id(current))

        # Prefer explicit cause over implicit context
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__context__ is not None:
            current = current.__context__
        else:
            break

    return current


class RecallForgeError(Exception):
    """
    Base exception for all RecallForge errors.

    Includes helpful error information:
    - error_code: Unique code for documentation lookup (e.g., "RF-ERR-001")
    - why_it_happened: Explanation of the root cause
    - how_to_fix: List of actionable suggestions
    """

    # Default error info - subclasses should override
    error_code: str = "RF-ERR-000"
    why_it_happened: str = "An unexpected error occurred"
    how_to_fix: List[str] = ["Check the error message for details"]

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        """Initialize RecallForgeError with helpful information.

        Args:
            message: Human-readable error message
            error_code: Unique identifier (e.g., "RF-STOR-001")
            why_it_happened: Explanation of root cause
            how_to_fix: List of actionable fix suggestions
        """
        super().__init__(sanitize_message(message))

        if error_code is not None:
            self.error_code = error_code
        if why_it_happened is not None:
            self.why_it_happened = why_it_happened
        if how_to_fix is not None:
            self.how_to_fix = how_to_fix

    @property
    def user_message(self) -> str:
        """Get the user-friendly error message."""
        return str(self)

    def get_root_cause(self) -> BaseException:
        """Get the root cause of this exception chain."""
        return get_root_cause(self)


# ============================================================================
# Validation Exceptions
# ============================================================================


class ValidationError(RecallForgeError):
    """
    Raised when validation fails.

    This can occur when:
    - Configuration is invalid
    - Input data doesn't meet requirements
    """

    error_code = "RF-VAL-000"
    why_it_happened = "Validation failed for input data or configuration"
    how_to_fix = [
        "Check the error message for specific validation failures",
        "Review the expected format or value constraints",
    ]


class InvalidScoreError(ValidationError):
    """
    Raised when a performance score is outside [1, 5] or not an integer.

    Attributes
    ----------
    score : any
        The rejected score value
    """

    error_code = "RF-VAL-001"
    why_it_happened = (
        "Performance scores are whole-number confidence ratings from 1 "
        "(total failure) to 5 (perfect recall)"
    )
    how_to_fix = [
        "Pass an integer between 1 and 5",
        "Do not retry the same call without correcting the score",
    ]

    def __init__(self, score: Any) -> None:
        super().__init__(
            f"Performance score must be an integer in [1, 5], got {score!r}"
        )
        self.score = score


class ConfigValidationError(ValidationError):
    """
    Raised when configuration validation fails.

    Attributes
    ----------
    field : str
        The configuration field that failed validation
    value : any
        The invalid value
    """

    error_code = "RF-VAL-002"
    why_it_happened = (
        "A configuration value is invalid. "
        "The recallforge.yaml file may have incorrect settings"
    )
    how_to_fix = [
        "Check recallforge.yaml for syntax errors",
        "Verify the value type matches what's expected",
        "Remove the setting to fall back to its default",
    ]

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


# ============================================================================
# Scheduling Exceptions
# ============================================================================


class SchedulingError(RecallForgeError):
    """Base exception for review state-machine violations."""

    error_code = "RF-SCHED-000"
    why_it_happened = "The requested review transition is not allowed"
    how_to_fix = ["Check the item's current state before reviewing it"]


class AlreadyGraduatedError(SchedulingError):
    """
    Raised when a review is recorded for a graduated item.

    Graduated items are terminal until explicitly reactivated.

    Attributes
    ----------
    item_id : str
        The graduated item's identifier
    """

    error_code = "RF-SCHED-001"
    why_it_happened = (
        "The item has graduated (mastered) and is no longer scheduled. "
        "Recording a review for it usually means a stale list was shown"
    )
    how_to_fix = [
        "Refresh the due list before reviewing",
        "Reactivate the item first: recallforge reactivate <item-id>",
    ]

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Review item {item_id!r} has already graduated")
        self.item_id = item_id


# ============================================================================
# Storage Exceptions
# ============================================================================


class StorageError(RecallForgeError):
    """
    Raised when storage operations fail.

    This can occur when:
    - Database connection fails
    - Write operation fails
    """

    error_code = "RF-STOR-000"
    why_it_happened = (
        "A storage operation failed. The database may be locked by another "
        "process, or the disk may be full"
    )
    how_to_fix = [
        "Ensure no other RecallForge processes are writing the same database",
        "Check disk space and file permissions of the data directory",
        "Retry the review; it is recomputed from the last saved state",
    ]


class ReviewItemNotFoundError(StorageError):
    """Raised when a review item id is not present in the store."""

    error_code = "RF-STOR-001"
    why_it_happened = "No review item with this id exists in the store"
    how_to_fix = [
        "List due items with: recallforge due",
        "Create the item first with: recallforge add <item-id>",
    ]

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Review item {item_id!r} not found")
        self.item_id = item_id


class DuplicateReviewItemError(StorageError):
    """Raised when creating an item whose id already exists."""

    error_code = "RF-STOR-002"
    why_it_happened = "A review item with this id is already being tracked"
    how_to_fix = [
        "Use a different id for the new wrong note",
        "Reactivate the existing item instead of creating it again",
    ]

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Review item {item_id!r} already exists")
        self.item_id = item_id


# ============================================================================
# Infrastructure Exceptions
# ============================================================================


class RetryError(RecallForgeError):
    """
    Raised when all retry attempts are exhausted.

    Attributes
    ----------
    last_exception : Exception
        The exception raised by the final attempt
    attempts : int
        Number of attempts made
    """

    error_code = "RF-INFRA-001"
    why_it_happened = "The operation kept failing after several attempts"
    how_to_fix = [
        "Check the underlying error shown below",
        "Verify the review database is reachable and writable",
    ]

    def __init__(self, message: str, last_exception: Exception, attempts: int) -> None:
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts
        self.__cause__ = last_exception


# ============================================================================
# Error Info Lookup
# ============================================================================


# Mapping from standard exceptions to helpful error info
STANDARD_ERROR_INFO: dict[type, dict[str, Any]] = {
    builtins.FileNotFoundError: {
        "error_code": "RF-FILE-001",
        "why_it_happened": "The specified file or directory could not be found",
        "how_to_fix": [
            "Check that the file path is correct",
            "Ensure you have read permissions for the file",
        ],
    },
    builtins.PermissionError: {
        "error_code": "RF-FILE-002",
        "why_it_happened": "You don't have permission to access this file or directory",
        "how_to_fix": [
            "Check file permissions: ls -la <file>",
            "Ensure you own the file or have read/write access",
        ],
    },
    KeyError: {
        "error_code": "RF-CFG-001",
        "why_it_happened": "A required configuration key is missing",
        "how_to_fix": [
            "Check your recallforge.yaml configuration file",
        ],
    },
    ValueError: {
        "error_code": "RF-VAL-003",
        "why_it_happened": "An invalid value was provided",
        "how_to_fix": [
            "Check the error message for the expected value format",
            "Verify your input matches the required type",
        ],
    },
    OSError: {
        "error_code": "RF-SYS-001",
        "why_it_happened": "A system-level error occurred",
        "how_to_fix": [
            "Check disk space and permissions",
            "Review system logs for more details",
        ],
    },
}


def get_error_info(exc: BaseException) -> dict[str, Any]:
    """Get helpful error information for any exception.

    Looks up the exception type in STANDARD_ERROR_INFO or extracts
    info from RecallForgeError subclasses.

    Args:
        exc: Exception to get info for

    Returns:
        Dict with error_code, why_it_happened, how_to_fix
    """
    if isinstance(exc, RecallForgeError):
        return {
            "error_code": exc.error_code,
            "why_it_happened": exc.why_it_happened,
            "how_to_fix": exc.how_to_fix,
        }

    exc_type = type(exc)
    if exc_type in STANDARD_ERROR_INFO:
        return STANDARD_ERROR_INFO[exc_type]

    for parent_type, info in STANDARD_ERROR_INFO.items():
        if isinstance(exc, parent_type):
            return info

    return {
        "error_code": "RF-ERR-999",
        "why_it_happened": "An unexpected error occurred",
        "how_to_fix": [
            "Check the error message for details",
            "Re-run with --verbose to see the full traceback",
        ],
    }
