"""
Enrollment service.
"""

import logging
from typing import Iterable, List

from ..core.authorization import AuthorizationContext, ResourceRef
from ..core.entities import Enrollment
from ..core.exceptions import CourseArchivedError, DuplicateEntityError, ForbiddenError, ResourceNotFoundError
from .base import ApplicationService

logger = logging.getLogger(__name__)


class EnrollmentService(ApplicationService):
    """Registers students in courses by course code."""

    def enroll(self, actor_id: str, course_code: str) -> Enrollment:
        """Enroll the acting student in the course identified by ``course_code``.

        Raises:
            ForbiddenError: If the actor is not a student.
            ResourceNotFoundError: If no course has this code.
            CourseArchivedError: If the course is archived.
            DuplicateEntityError: If the student is already enrolled.
        """
        user = self._load_user(actor_id)
        if not user.is_student():
            logger.warning("Denied enrollment for non-student %s", user.id)
            raise ForbiddenError("Only students can enroll in courses", details={'user_id': user.id})

        course = self._courses.find_by_course_code(course_code)
        if course is None:
            raise ResourceNotFoundError("Invalid course code", details={'course_code': course_code})

        with self._locks.lock(course.id):
            course = self._load_course(course.id)
            if not course.is_active():
                raise CourseArchivedError("Cannot enroll in archived course", details={'course_id': course.id})
            is_enrolled = self._enrollments.exists_for_course_and_student(course.id, user.id)
            if is_enrolled:
                raise DuplicateEntityError("Student is already enrolled in this course",
                                           details={'course_id': course.id, 'student_id': user.id})
            ref = ResourceRef.of(course)
            self._authorize(
                self._policy.can_enroll_in_course(user, ref, AuthorizationContext(is_enrolled=is_enrolled)),
                "enroll in this course", user, course.id
            )
            enrollment = Enrollment(course.id, user.id, clock=self._clock)
            self._enrollments.save(enrollment)

        logger.info("Student %s enrolled in course %s", user.id, course.id)
        return enrollment

    def is_enrolled(self, course_id: str, student_id: str) -> bool:
        return self._enrollments.exists_for_course_and_student(course_id, student_id)

    def list_enrollments(self, actor_id: str, course_id: str) -> List[Enrollment]:
        """Enrollments of a course; only its owning teacher may list them."""
        user = self._load_user(actor_id)
        course = self._load_course(course_id)
        self._authorize(self._policy.can_view_enrollments(user, ResourceRef.of(course)),
                        "list enrollments", user, course_id)
        return self._enrollments.find_by_course_id(course_id)

    def unenroll_students(self, actor_id: str, course_id: str, student_ids: Iterable[str]) -> int:
        """Remove several students from an active course and return how many were removed."""
        user = self._load_user(actor_id)
        student_ids = set(student_ids)
        with self._locks.lock(course_id):
            course = self._load_course(course_id)
            self._ensure_active(course)
            self._authorize(self._policy.can_modify_course(user, ResourceRef.of(course)),
                            "manage enrollments", user, course_id)
            removed = self._enrollments.delete_where(
                lambda enrollment: enrollment.course_id == course_id and enrollment.student_id in student_ids
            )
        logger.info("Removed %d enrollments from course %s", removed, course_id)
        return removed
