"""
Persistence module for in-memory data storage.
"""

from .repositories import (
    InMemoryRepository, UserRepository, CourseRepository, EnrollmentRepository,
    MaterialRepository, AssignmentRepository, SubmissionRepository, QuizRepository,
    QuizSubmissionRepository
)

__all__ = [
    "InMemoryRepository",
    "UserRepository",
    "CourseRepository",
    "EnrollmentRepository",
    "MaterialRepository",
    "AssignmentRepository",
    "SubmissionRepository",
    "QuizRepository",
    "QuizSubmissionRepository",
]
