"""
In-memory repository implementations.

Entities are copied on the way in and on the way out, so a caller only ever
changes stored state through ``save`` or ``update``.
"""

import copy
import threading
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from ..core.assignments import Assignment, AssignmentSubmission
from ..core.entities import AbstractEntity, Course, Enrollment, Material, User
from ..core.enums import QuizSubmissionStatus
from ..core.exceptions import DuplicateEntityError, ResourceNotFoundError, VersionConflictError
from ..core.interfaces import CourseCodeChecker, Repository
from ..core.quizzes import Quiz, QuizSubmission

T = TypeVar('T', bound=AbstractEntity)


class InMemoryRepository(Repository[T], Generic[T]):
    """Thread-safe dictionary-backed repository."""

    def __init__(self, entity_type: str):
        self._entity_type = entity_type
        self._entities: Dict[str, T] = {}
        self._lock = threading.RLock()

    @property
    def entity_type(self) -> str:
        return self._entity_type

    def save(self, entity: T) -> T:
        """Insert or replace an entity."""
        with self._lock:
            self._entities[entity.id] = copy.deepcopy(entity)
            return entity

    def find_by_id(self, entity_id: str) -> Optional[T]:
        with self._lock:
            entity = self._entities.get(entity_id)
            return copy.deepcopy(entity) if entity is not None else None

    def find_all(self, filters: Optional[Dict[str, Any]] = None) -> List[T]:
        """Find all entities whose attributes equal ``filters``, oldest first."""
        return self._select(lambda entity: all(
            getattr(entity, key, None) == value for key, value in (filters or {}).items()
        ))

    def delete(self, entity_id: str) -> bool:
        with self._lock:
            return self._entities.pop(entity_id, None) is not None

    def delete_where(self, predicate: Callable[[T], bool]) -> int:
        """Delete every entity matching ``predicate`` and return how many went."""
        with self._lock:
            doomed = [entity_id for entity_id, entity in self._entities.items() if predicate(entity)]
            for entity_id in doomed:
                del self._entities[entity_id]
            return len(doomed)

    def exists(self, entity_id: str) -> bool:
        with self._lock:
            return entity_id in self._entities

    def count(self) -> int:
        with self._lock:
            return len(self._entities)

    def _select(self, predicate: Callable[[T], bool]) -> List[T]:
        with self._lock:
            matches = [copy.deepcopy(entity) for entity in self._entities.values() if predicate(entity)]
        return sorted(matches, key=lambda entity: entity.created_at)

    def _first(self, predicate: Callable[[T], bool]) -> Optional[T]:
        matches = self._select(predicate)
        return matches[0] if matches else None


class UserRepository(InMemoryRepository[User]):
    """Repository for users."""

    def __init__(self):
        super().__init__("user")

    def find_by_email(self, email: str) -> Optional[User]:
        return self._first(lambda user: user.email.lower() == email.lower())


class CourseRepository(InMemoryRepository[Course], CourseCodeChecker):
    """Repository for courses. Also answers course-code uniqueness."""

    def __init__(self):
        super().__init__("course")

    def find_by_teacher_id(self, teacher_id: str) -> List[Course]:
        return self._select(lambda course: course.teacher_id == teacher_id)

    def find_by_course_code(self, code: str) -> Optional[Course]:
        return self._first(lambda course: course.course_code == code.upper())

    def is_unique(self, code: str) -> bool:
        return self.find_by_course_code(code) is None


class EnrollmentRepository(InMemoryRepository[Enrollment]):
    """Repository for enrollments. At most one per (course_id, student_id)."""

    def __init__(self):
        super().__init__("enrollment")

    def save(self, entity: Enrollment) -> Enrollment:
        with self._lock:
            for existing in self._entities.values():
                if existing.id != entity.id and existing.matches(entity.course_id, entity.student_id):
                    raise DuplicateEntityError(
                        "Student is already enrolled in this course",
                        details={'course_id': entity.course_id, 'student_id': entity.student_id}
                    )
            return super().save(entity)

    def find_by_course_id(self, course_id: str) -> List[Enrollment]:
        return self._select(lambda enrollment: enrollment.course_id == course_id)

    def find_by_student_id(self, student_id: str) -> List[Enrollment]:
        return self._select(lambda enrollment: enrollment.student_id == student_id)

    def exists_for_course_and_student(self, course_id: str, student_id: str) -> bool:
        with self._lock:
            return any(enrollment.matches(course_id, student_id) for enrollment in self._entities.values())


class MaterialRepository(InMemoryRepository[Material]):
    """Repository for course materials."""

    def __init__(self):
        super().__init__("material")

    def find_by_course_id(self, course_id: str) -> List[Material]:
        return self._select(lambda material: material.course_id == course_id)


class AssignmentRepository(InMemoryRepository[Assignment]):
    """Repository for assignments."""

    def __init__(self):
        super().__init__("assignment")

    def find_by_course_id(self, course_id: str) -> List[Assignment]:
        return self._select(lambda assignment: assignment.course_id == course_id)


class SubmissionRepository(InMemoryRepository[AssignmentSubmission]):
    """Repository for assignment submissions with an optimistic-locking update."""

    def __init__(self):
        super().__init__("assignment_submission")

    def update(self, submission: AssignmentSubmission, expected_version: int) -> AssignmentSubmission:
        """Replace the stored submission if its version still equals ``expected_version``.

        Raises:
            ResourceNotFoundError: If the submission was never saved.
            VersionConflictError: If another writer got there first.
        """
        with self._lock:
            stored = self._entities.get(submission.id)
            if stored is None:
                raise ResourceNotFoundError(f"Submission {submission.id} not found")
            if stored.version != expected_version:
                raise VersionConflictError(
                    "Submission has been modified by another user. Please refresh and try again",
                    details={'expected_version': expected_version, 'actual_version': stored.version}
                )
            self._entities[submission.id] = copy.deepcopy(submission)
            return submission

    def find_by_assignment_id(self, assignment_id: str) -> List[AssignmentSubmission]:
        return self._select(lambda submission: submission.assignment_id == assignment_id)

    def find_by_student_id(self, student_id: str) -> List[AssignmentSubmission]:
        return self._select(lambda submission: submission.student_id == student_id)

    def find_by_assignment_and_student(self, assignment_id: str,
                                       student_id: str) -> Optional[AssignmentSubmission]:
        return self._first(lambda submission: submission.assignment_id == assignment_id
                           and submission.student_id == student_id)


class QuizRepository(InMemoryRepository[Quiz]):
    """Repository for quizzes."""

    def __init__(self):
        super().__init__("quiz")

    def find_by_course_id(self, course_id: str) -> List[Quiz]:
        return self._select(lambda quiz: quiz.course_id == course_id)


class QuizSubmissionRepository(InMemoryRepository[QuizSubmission]):
    """Repository for quiz submissions. At most one per (quiz_id, student_id)."""

    def __init__(self):
        super().__init__("quiz_submission")

    def save(self, entity: QuizSubmission) -> QuizSubmission:
        with self._lock:
            for existing in self._entities.values():
                if (existing.id != entity.id and existing.quiz_id == entity.quiz_id
                        and existing.student_id == entity.student_id):
                    raise DuplicateEntityError(
                        "Student already has a submission for this quiz",
                        details={'quiz_id': entity.quiz_id, 'student_id': entity.student_id}
                    )
            return super().save(entity)

    def find_by_quiz_id(self, quiz_id: str) -> List[QuizSubmission]:
        return self._select(lambda submission: submission.quiz_id == quiz_id)

    def find_by_quiz_and_student(self, quiz_id: str, student_id: str) -> Optional[QuizSubmission]:
        return self._first(lambda submission: submission.quiz_id == quiz_id
                           and submission.student_id == student_id)

    def find_in_progress(self) -> List[QuizSubmission]:
        return self._select(lambda submission: submission.status is QuizSubmissionStatus.IN_PROGRESS)

    def has_submissions(self, quiz_id: str) -> bool:
        """True once any student has started or submitted the quiz."""
        with self._lock:
            return any(submission.quiz_id == quiz_id
                       and submission.status is not QuizSubmissionStatus.NOT_STARTED
                       for submission in self._entities.values())
