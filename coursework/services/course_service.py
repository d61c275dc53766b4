"""
Course lifecycle service.
"""

import logging
from typing import List, Optional

from ..core.authorization import ResourceRef
from ..core.entities import Course
from ..core.exceptions import AlreadyArchivedError, ValidationError
from ..persistence.repositories import (
    AssignmentRepository, MaterialRepository, QuizRepository, QuizSubmissionRepository,
    SubmissionRepository
)
from .base import ApplicationService
from .course_code_generator import CourseCodeGenerator

logger = logging.getLogger(__name__)


class CourseService(ApplicationService):
    """Creates, edits, archives and deletes courses."""

    def __init__(self, users, courses, enrollments, materials: MaterialRepository,
                 assignments: AssignmentRepository, submissions: SubmissionRepository,
                 quizzes: QuizRepository, quiz_submissions: QuizSubmissionRepository,
                 code_generator: Optional[CourseCodeGenerator] = None, **kwargs):
        super().__init__(users, courses, enrollments, **kwargs)
        self._materials = materials
        self._assignments = assignments
        self._submissions = submissions
        self._quizzes = quizzes
        self._quiz_submissions = quiz_submissions
        self._code_generator = code_generator or CourseCodeGenerator(courses)

    def create_course(self, actor_id: str, name: str, description: str) -> Course:
        user = self._load_user(actor_id)
        self._authorize(self._policy.can_create_course(user), "create courses", user, "course")

        code = self._code_generator.generate()
        course = Course.create(name, description, code.value, user.id, clock=self._clock)
        self._courses.save(course)
        logger.info("Course %s (%s) created by %s", course.id, course.course_code, user.id)
        return course

    def get_course(self, actor_id: str, course_id: str) -> Course:
        user = self._load_user(actor_id)
        course = self._load_course(course_id)
        ref = ResourceRef.of(course)
        self._authorize(self._policy.can_access_course(user, ref, self._context(user, ref)),
                        "access this course", user, course_id)
        return course

    def list_courses(self, actor_id: str) -> List[Course]:
        """Courses a teacher owns, or the courses a student is enrolled in."""
        user = self._load_user(actor_id)
        if user.is_teacher():
            return self._courses.find_by_teacher_id(user.id)
        course_ids = [enrollment.course_id for enrollment in self._enrollments.find_by_student_id(user.id)]
        return [course for course in (self._courses.find_by_id(cid) for cid in course_ids) if course]

    def update_course(self, actor_id: str, course_id: str, name: Optional[str] = None,
                      description: Optional[str] = None) -> Course:
        user = self._load_user(actor_id)
        with self._locks.lock(course_id):
            course = self._load_course(course_id)
            self._ensure_active(course)
            self._authorize(self._policy.can_modify_course(user, ResourceRef.of(course)),
                            "modify this course", user, course_id)
            if name is None and description is None:
                raise ValidationError("Nothing to update")
            if name is not None:
                course.update_name(name)
            if description is not None:
                course.update_description(description)
            self._courses.save(course)
        logger.info("Course %s updated by %s", course_id, user.id)
        return course

    def archive_course(self, actor_id: str, course_id: str) -> Course:
        user = self._load_user(actor_id)
        with self._locks.lock(course_id):
            course = self._load_course(course_id)
            if course.is_archived():
                raise AlreadyArchivedError("Course is already archived", details={'course_id': course_id})
            self._authorize(self._policy.can_archive_course(user, ResourceRef.of(course)),
                            "archive this course", user, course_id)
            course.archive()
            self._courses.save(course)
        logger.info("Course %s archived by %s", course_id, user.id)
        return course

    def delete_course(self, actor_id: str, course_id: str) -> None:
        """Delete an archived course together with everything it owns."""
        user = self._load_user(actor_id)
        with self._locks.lock(course_id):
            course = self._load_course(course_id)
            self._authorize(self._policy.can_delete_course(user, ResourceRef.of(course)),
                            "delete this course", user, course_id)
            course.validate_can_delete()

            assignment_ids = {assignment.id for assignment in self._assignments.find_by_course_id(course_id)}
            quiz_ids = {quiz.id for quiz in self._quizzes.find_by_course_id(course_id)}
            child_ids = assignment_ids | quiz_ids
            child_ids.update(m.id for m in self._materials.find_by_course_id(course_id))
            for assignment_id in assignment_ids:
                child_ids.update(s.id for s in self._submissions.find_by_assignment_id(assignment_id))
            removed = {
                'submissions': self._submissions.delete_where(lambda s: s.assignment_id in assignment_ids),
                'quiz_submissions': self._quiz_submissions.delete_where(lambda s: s.quiz_id in quiz_ids),
                'assignments': self._assignments.delete_where(lambda a: a.course_id == course_id),
                'quizzes': self._quizzes.delete_where(lambda q: q.course_id == course_id),
                'materials': self._materials.delete_where(lambda m: m.course_id == course_id),
                'enrollments': self._enrollments.delete_where(lambda e: e.course_id == course_id),
            }
            self._courses.delete(course_id)
        self._locks.forget(course_id, *child_ids)
        logger.info("Course %s deleted by %s (%s)", course_id, user.id,
                    ", ".join(f"{count} {kind}" for kind, count in removed.items()))
