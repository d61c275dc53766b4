"""
Assignment, submission and grading service.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from ..core.assignments import Assignment, AssignmentSubmission
from ..core.authorization import Principal, ResourceRef
from ..core.entities import Course
from ..core.enums import SubmissionType
from ..core.exceptions import GradingStartedError, ResourceNotFoundError, ValidationError
from ..core.value_objects import validate_grade
from ..persistence.repositories import AssignmentRepository, SubmissionRepository
from .base import ApplicationService

logger = logging.getLogger(__name__)


class AssignmentService(ApplicationService):
    """Runs assignment authoring, student submission and teacher grading."""

    def __init__(self, users, courses, enrollments, assignments: AssignmentRepository,
                 submissions: SubmissionRepository, **kwargs):
        super().__init__(users, courses, enrollments, **kwargs)
        self._assignments = assignments
        self._submissions = submissions

    def _load_assignment(self, assignment_id: str) -> Assignment:
        assignment = self._assignments.find_by_id(assignment_id)
        if assignment is None:
            raise ResourceNotFoundError("Assignment not found", details={'assignment_id': assignment_id})
        return assignment

    def _load_submission(self, submission_id: str) -> AssignmentSubmission:
        submission = self._submissions.find_by_id(submission_id)
        if submission is None:
            raise ResourceNotFoundError("Submission not found", details={'submission_id': submission_id})
        return submission

    def _course_id_of(self, assignment_id: str) -> str:
        return self._load_assignment(assignment_id).course_id

    def _authorize_manage(self, user: Principal, course: Course) -> None:
        self._ensure_active(course)
        self._authorize(self._policy.can_manage_assignments(user, ResourceRef.of(course)),
                        "manage assignments", user, course.id)

    def _authorize_grading(self, user: Principal, course: Course) -> None:
        self._authorize(self._policy.can_grade_submissions(user, ResourceRef.of(course)),
                        "grade submissions", user, course.id)
        self._ensure_active(course)

    # Authoring

    def create_assignment(self, actor_id: str, course_id: str, title: str, description: str,
                          due_date: datetime, submission_type: SubmissionType = SubmissionType.BOTH,
                          accepted_file_formats: Optional[Iterable[str]] = None) -> Assignment:
        user = self._load_user(actor_id)
        with self._locks.lock(course_id):
            course = self._load_course(course_id)
            self._authorize_manage(user, course)
            assignment = Assignment.create(course_id, title, description, due_date, submission_type,
                                           accepted_file_formats, clock=self._clock)
            self._assignments.save(assignment)
        logger.info("Assignment %s created in course %s", assignment.id, course_id)
        return assignment

    def update_assignment(self, actor_id: str, assignment_id: str, title: Optional[str] = None,
                          description: Optional[str] = None,
                          due_date: Optional[datetime] = None) -> Assignment:
        user = self._load_user(actor_id)
        with self._locks.lock_all(self._course_id_of(assignment_id), assignment_id):
            assignment = self._load_assignment(assignment_id)
            self._authorize_manage(user, self._load_course(assignment.course_id))
            if title is None and description is None and due_date is None:
                raise ValidationError("Nothing to update")
            if title is not None:
                assignment.update_title(title)
            if description is not None:
                assignment.update_description(description)
            if due_date is not None:
                assignment.update_due_date(due_date)
            self._assignments.save(assignment)
        logger.info("Assignment %s updated by %s", assignment_id, user.id)
        return assignment

    def start_grading(self, actor_id: str, assignment_id: str) -> Assignment:
        """Close an assignment for submissions. Fails if grading already started."""
        user = self._load_user(actor_id)
        with self._locks.lock_all(self._course_id_of(assignment_id), assignment_id):
            assignment = self._load_assignment(assignment_id)
            self._authorize_grading(user, self._load_course(assignment.course_id))
            assignment.start_grading()
            self._assignments.save(assignment)
        logger.info("Grading started for assignment %s", assignment_id)
        return assignment

    def delete_assignment(self, actor_id: str, assignment_id: str) -> int:
        """Delete an assignment and its submissions. Returns the number of submissions removed."""
        user = self._load_user(actor_id)
        with self._locks.lock_all(self._course_id_of(assignment_id), assignment_id):
            assignment = self._load_assignment(assignment_id)
            self._authorize_manage(user, self._load_course(assignment.course_id))
            submission_ids = [s.id for s in self._submissions.find_by_assignment_id(assignment_id)]
            removed = self._submissions.delete_where(lambda s: s.assignment_id == assignment_id)
            self._assignments.delete(assignment_id)
        self._locks.forget(assignment_id, *submission_ids)
        logger.info("Assignment %s deleted by %s with %d submissions", assignment_id, user.id, removed)
        return removed

    def list_assignments(self, actor_id: str, course_id: str) -> List[Assignment]:
        user = self._load_user(actor_id)
        course = self._load_course(course_id)
        ref = ResourceRef.of(course)
        self._authorize(self._policy.can_view_assignments(user, ref, self._context(user, ref)),
                        "view assignments", user, course_id)
        return self._assignments.find_by_course_id(course_id)

    # Submission

    def submit(self, actor_id: str, assignment_id: str, content: Optional[str] = None,
               file_path: Optional[str] = None, file_name: Optional[str] = None) -> AssignmentSubmission:
        """Submit or resubmit the acting student's work.

        Late work is accepted and flagged until grading starts.
        """
        user = self._load_user(actor_id)
        with self._locks.lock_all(self._course_id_of(assignment_id), assignment_id):
            assignment = self._load_assignment(assignment_id)
            course = self._load_course(assignment.course_id)
            ref = ResourceRef.of(course)
            self._authorize(self._policy.can_submit_assignment(user, ref, self._context(user, ref)),
                            "submit this assignment", user, assignment_id)
            self._ensure_active(course)
            if not assignment.can_accept_submissions():
                raise GradingStartedError("Assignment is closed for submissions. Grading has started",
                                          details={'assignment_id': assignment_id})
            assignment.validate_submission_payload(content, file_name)
            is_late = assignment.is_submission_late()

            submission = self._submissions.find_by_assignment_and_student(assignment_id, user.id)
            if submission is None:
                submission = AssignmentSubmission.create(assignment_id, user.id, clock=self._clock)
                submission.update_content(content, file_path, file_name)
                submission.submit(is_late)
                self._submissions.save(submission)
                logger.info("Submission %s created for assignment %s%s", submission.id, assignment_id,
                            " (late)" if is_late else "")
            else:
                read_version = submission.version
                submission.update_content(content, file_path, file_name)
                submission.resubmit(is_late)
                self._submissions.update(submission, expected_version=read_version)
                logger.info("Submission %s resubmitted (version %d)", submission.id, submission.version)
        return submission

    def get_submission(self, actor_id: str, submission_id: str) -> AssignmentSubmission:
        user = self._load_user(actor_id)
        submission = self._load_submission(submission_id)
        course = self._load_course(self._load_assignment(submission.assignment_id).course_id)
        self._authorize(self._policy.can_view_submission(user, submission.student_id, ResourceRef.of(course)),
                        "view this submission", user, submission_id)
        return submission

    def list_submissions(self, actor_id: str, assignment_id: str) -> List[AssignmentSubmission]:
        user = self._load_user(actor_id)
        assignment = self._load_assignment(assignment_id)
        course = self._load_course(assignment.course_id)
        self._authorize(self._policy.can_grade_submissions(user, ResourceRef.of(course)),
                        "view submissions", user, assignment_id)
        return self._submissions.find_by_assignment_id(assignment_id)

    # Grading

    def _grading_lock_ids(self, submission_id: str) -> Tuple[str, str, str]:
        """Course, submission and assignment IDs, in the order they are locked."""
        assignment_id = self._load_submission(submission_id).assignment_id
        return self._course_id_of(assignment_id), submission_id, assignment_id

    def _grading_targets(self, user: Principal,
                         submission_id: str) -> Tuple[Assignment, AssignmentSubmission]:
        submission = self._load_submission(submission_id)
        assignment = self._load_assignment(submission.assignment_id)
        self._authorize_grading(user, self._load_course(assignment.course_id))
        return assignment, submission

    def grade_submission(self, actor_id: str, submission_id: str, grade: int,
                         feedback: Optional[str] = None,
                         expected_version: Optional[int] = None) -> AssignmentSubmission:
        """Grade a submission, or re-grade it if it is already graded.

        The first grade on an assignment engages its grading lock.

        Raises:
            VersionConflictError: If ``expected_version`` is stale, or if a
                concurrent writer saved the submission first.
        """
        user = self._load_user(actor_id)
        with self._locks.lock_all(*self._grading_lock_ids(submission_id)):
            assignment, submission = self._grading_targets(user, submission_id)
            validate_grade(grade)
            if not assignment.has_grading_started():
                assignment.start_grading()
                self._assignments.save(assignment)
                logger.info("Grading started for assignment %s", assignment.id)

            read_version = submission.version
            if submission.is_graded():
                submission.update_grade(grade, feedback, expected_version)
            else:
                submission.assign_grade(grade, feedback, expected_version)
            self._submissions.update(submission, expected_version=read_version)
        logger.info("Submission %s graded %s by %s", submission_id, grade, user.id)
        return submission

    def update_grade(self, actor_id: str, submission_id: str, grade: int,
                     feedback: Optional[str] = None,
                     expected_version: Optional[int] = None) -> AssignmentSubmission:
        """Change the grade of an already graded submission."""
        user = self._load_user(actor_id)
        with self._locks.lock_all(*self._grading_lock_ids(submission_id)):
            _, submission = self._grading_targets(user, submission_id)
            read_version = submission.version
            submission.update_grade(grade, feedback, expected_version)
            self._submissions.update(submission, expected_version=read_version)
        logger.info("Grade of submission %s changed to %s by %s", submission_id, grade, user.id)
        return submission
