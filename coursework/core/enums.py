"""
Enumerations and constants for the Coursework platform.
"""

from enum import Enum


class Role(Enum):
    """Roles a user can hold."""
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"


class CourseStatus(Enum):
    """Lifecycle status of a course."""
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class MaterialType(Enum):
    """Kinds of course material."""
    FILE = "FILE"
    TEXT = "TEXT"
    VIDEO_LINK = "VIDEO_LINK"


class SubmissionType(Enum):
    """What an assignment accepts as a submission."""
    FILE = "FILE"
    TEXT = "TEXT"
    BOTH = "BOTH"


class AssignmentSubmissionStatus(Enum):
    """Status of a student's assignment submission."""
    NOT_SUBMITTED = "NOT_SUBMITTED"
    SUBMITTED = "SUBMITTED"
    GRADED = "GRADED"


class QuestionType(Enum):
    """Discriminator for quiz questions."""
    MCQ = "MCQ"
    ESSAY = "ESSAY"


class QuizSubmissionStatus(Enum):
    """Status of a timed quiz attempt."""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"


# Inclusive grade bounds
MIN_GRADE = 0
MAX_GRADE = 100

PASSING_GRADE = 60

ALLOWED_VIDEO_HOSTS = ("youtube.com", "youtu.be", "vimeo.com")
