"""
Core module containing the domain entities, value objects and authorization policy.
"""

from .assignments import *
from .authorization import *
from .clock import *
from .entities import *
from .enums import *
from .exceptions import *
from .interfaces import *
from .quizzes import *
from .value_objects import *

__all__ = [
    # Entities
    "AbstractEntity",
    "User",
    "Course",
    "Enrollment",
    "Material",
    "Assignment",
    "AssignmentSubmission",
    "Quiz",
    "QuizSubmission",

    # Questions and answers
    "MCQQuestion",
    "EssayQuestion",
    "Question",
    "QuizAnswer",
    "question_from_dict",
    "validate_question",

    # Value objects
    "Grade",
    "CourseCode",
    "validate_grade",

    # Authorization
    "AuthorizationPolicy",
    "AuthorizationContext",
    "Principal",
    "ResourceRef",

    # Interfaces
    "Repository",
    "CourseCodeChecker",

    # Clock
    "Clock",
    "utc_now",

    # Exceptions
    "CourseworkError",
    "ValidationError",
    "InvalidGradeRangeError",
    "DueDateNotFutureError",
    "InvalidStateError",
    "AlreadyArchivedError",
    "AlreadyStartedError",
    "CourseArchivedError",
    "GradingStartedError",
    "CannotUpdateQuizError",
    "InvalidQuizUpdateError",
    "MustArchiveFirstError",
    "NotSubmittedError",
    "NotGradedError",
    "PastDueDateError",
    "TimeExpiredError",
    "NotInProgressError",
    "CannotAutoSubmitBeforeExpiryError",
    "ForbiddenError",
    "ConcurrencyError",
    "VersionConflictError",
    "ResourceNotFoundError",
    "DuplicateEntityError",
    "CourseCodeGenerationError",
    "ConfigurationError",

    # Enums
    "Role",
    "CourseStatus",
    "MaterialType",
    "SubmissionType",
    "AssignmentSubmissionStatus",
    "QuestionType",
    "QuizSubmissionStatus",
    "MIN_GRADE",
    "MAX_GRADE",
    "PASSING_GRADE",
]
