"""
Custom exceptions for the Coursework platform.
"""

from typing import Optional, Any, Dict


class CourseworkError(Exception):
    """Base exception for all Coursework-related errors."""

    default_code = "COURSEWORK_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}


class ValidationError(CourseworkError):
    """Raised when input data is malformed."""
    default_code = "VALIDATION_FAILED"


class InvalidGradeRangeError(ValidationError):
    """Raised when a grade falls outside the inclusive 0-100 range."""
    default_code = "INVALID_GRADE_RANGE"


class DueDateNotFutureError(ValidationError):
    """Raised when a due date is not strictly in the future."""
    default_code = "DUE_DATE_NOT_FUTURE"


class InvalidStateError(CourseworkError):
    """Raised when an entity is in the wrong state for the operation."""
    default_code = "INVALID_STATE"


class AlreadyArchivedError(InvalidStateError):
    """Raised when archiving a course that is already archived."""
    default_code = "ALREADY_ARCHIVED"


class AlreadyStartedError(InvalidStateError):
    """Raised when re-invoking a one-way start latch."""
    default_code = "ALREADY_STARTED"


class CourseArchivedError(InvalidStateError):
    """Raised when mutating an archived course."""
    default_code = "COURSE_ARCHIVED"


class GradingStartedError(InvalidStateError):
    """Raised when mutating an assignment or submission after grading started."""
    default_code = "GRADING_STARTED"


class CannotUpdateQuizError(InvalidStateError):
    """Raised when editing a quiz past its due date or once it has submissions."""
    default_code = "CANNOT_UPDATE_QUIZ"


class MustArchiveFirstError(InvalidStateError):
    """Raised when deleting a course that is still active."""
    default_code = "MUST_ARCHIVE_FIRST"


class NotSubmittedError(InvalidStateError):
    """Raised when grading a submission that is not in the submitted state."""
    default_code = "NOT_SUBMITTED"


class NotGradedError(InvalidStateError):
    """Raised when re-grading a submission that was never graded."""
    default_code = "NOT_GRADED"


class PastDueDateError(InvalidStateError):
    """Raised when an operation is attempted after the due date."""
    default_code = "PAST_DUE_DATE"


class TimeExpiredError(InvalidStateError):
    """Raised when manually submitting a quiz after its time limit."""
    default_code = "TIME_EXPIRED"


class NotInProgressError(InvalidStateError):
    """Raised when a quiz attempt is not in progress."""
    default_code = "NOT_IN_PROGRESS"


class CannotAutoSubmitBeforeExpiryError(InvalidStateError):
    """Raised when auto-submitting a quiz whose time has not run out."""
    default_code = "CANNOT_AUTO_SUBMIT_BEFORE_EXPIRY"


class ForbiddenError(CourseworkError):
    """Raised when the authorization policy denies an operation."""
    default_code = "FORBIDDEN"


class ConcurrencyError(CourseworkError):
    """Raised when concurrency control fails."""
    default_code = "CONCURRENCY_ERROR"


class VersionConflictError(ConcurrencyError):
    """Raised when an optimistic-lock version does not match."""
    default_code = "VERSION_CONFLICT"


class ResourceNotFoundError(CourseworkError):
    """Raised when a requested resource is not found."""
    default_code = "NOT_FOUND"


class DuplicateEntityError(CourseworkError):
    """Raised when attempting to create a duplicate entity."""
    default_code = "DUPLICATE"


class CourseCodeGenerationError(CourseworkError):
    """Raised when no unique course code could be generated."""
    default_code = "COURSE_CODE_GENERATION_FAILED"


class ConfigurationError(CourseworkError):
    """Raised when configuration is invalid."""
    default_code = "CONFIGURATION_ERROR"
