"""
Shared plumbing for application services.

Every service method follows the same sequence: load the acting user and the
owning course, ask the authorization policy, then call entity methods and
persist the result while holding the aggregate lock.
"""

import logging
from typing import Optional

from ..core.authorization import AuthorizationContext, AuthorizationPolicy, Principal, ResourceRef
from ..core.clock import Clock, utc_now
from ..core.entities import Course
from ..core.exceptions import CourseArchivedError, ForbiddenError, ResourceNotFoundError
from ..persistence.repositories import CourseRepository, EnrollmentRepository, UserRepository
from .lock_manager import LockManager

logger = logging.getLogger(__name__)


class ApplicationService:
    """Base class holding the collaborators every service needs."""

    def __init__(self, users: UserRepository, courses: CourseRepository,
                 enrollments: EnrollmentRepository, policy: Optional[AuthorizationPolicy] = None,
                 locks: Optional[LockManager] = None, clock: Optional[Clock] = None):
        self._users = users
        self._courses = courses
        self._enrollments = enrollments
        self._policy = policy or AuthorizationPolicy()
        self._locks = locks or LockManager()
        self._clock = clock or utc_now

    def _load_user(self, user_id: str) -> Principal:
        user = self._users.find_by_id(user_id)
        if user is None:
            raise ResourceNotFoundError("User not found", details={'user_id': user_id})
        return Principal.of(user)

    def _load_course(self, course_id: str) -> Course:
        course = self._courses.find_by_id(course_id)
        if course is None:
            raise ResourceNotFoundError("Course not found", details={'course_id': course_id})
        return course

    @staticmethod
    def _ensure_active(course: Course) -> None:
        if not course.is_active():
            raise CourseArchivedError("Cannot modify content of an archived course",
                                      details={'course_id': course.id})

    def _context(self, user: Principal, course: ResourceRef) -> AuthorizationContext:
        return AuthorizationContext(
            is_enrolled=self._enrollments.exists_for_course_and_student(course.id, user.id),
            is_owner=course.owner_teacher_id == user.id,
        )

    def _authorize(self, allowed: bool, action: str, user: Principal, resource_id: str) -> None:
        if not allowed:
            logger.warning("Denied %s for user %s on %s", action, user.id, resource_id)
            raise ForbiddenError(
                f"You do not have permission to {action}",
                details={'user_id': user.id, 'resource_id': resource_id}
            )
