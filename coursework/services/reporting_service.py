"""
Progress and grade reporting.

Reports are read-only views assembled from assignments, quizzes and the
submissions stored against them. Quiz attempts carry no grade, so only
graded assignment submissions count towards averages.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..core.assignments import Assignment, AssignmentSubmission
from ..core.authorization import ResourceRef
from ..core.entities import User
from ..core.enums import AssignmentSubmissionStatus, QuizSubmissionStatus
from ..core.exceptions import ResourceNotFoundError
from ..core.quizzes import Quiz, QuizSubmission
from ..persistence.repositories import (
    AssignmentRepository, QuizRepository, QuizSubmissionRepository, SubmissionRepository
)
from .base import ApplicationService

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ("Student Name", "Student Email", "Item Type", "Item Name", "Grade",
                  "Submission Date", "Status")
SUMMARY_COLUMNS = ("Student Name", "Student Email", "Average Grade", "Graded Items", "Total Items")


@dataclass
class ProgressItem:
    """One assignment or quiz as seen by a single student."""
    item_id: str
    item_type: str
    title: str
    due_date: datetime
    status: str
    grade: Optional[int] = None
    feedback: Optional[str] = None
    is_late: bool = False
    is_overdue: bool = False
    submitted_at: Optional[datetime] = None


@dataclass
class StudentProgress:
    course_id: str
    course_name: str
    student_id: str
    student_name: str
    assignments: List[ProgressItem] = field(default_factory=list)
    quizzes: List[ProgressItem] = field(default_factory=list)
    average_grade: Optional[float] = None
    total_graded_items: int = 0
    total_items: int = 0


@dataclass
class GradeExportRow:
    student_name: str
    student_email: str
    item_type: str
    item_name: str
    grade: str
    submission_date: str
    status: str


@dataclass
class StudentGradeSummary:
    student_id: str
    student_name: str
    student_email: str
    average_grade: Optional[float]
    total_graded_items: int
    total_items: int


@dataclass
class GradeExport:
    """Every enrolled student's standing on every item of a course."""
    course_id: str
    course_name: str
    exported_at: datetime
    rows: List[GradeExportRow] = field(default_factory=list)
    summaries: List[StudentGradeSummary] = field(default_factory=list)

    def to_csv(self) -> str:
        """Item rows, a blank line, then one summary row per student."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(EXPORT_COLUMNS)
        for row in self.rows:
            writer.writerow([row.student_name, row.student_email, row.item_type, row.item_name,
                             row.grade, row.submission_date, row.status])
        buffer.write("\n")
        writer.writerow(SUMMARY_COLUMNS)
        for summary in self.summaries:
            average = "N/A" if summary.average_grade is None else f"{summary.average_grade:.2f}"
            writer.writerow([summary.student_name, summary.student_email, average,
                             summary.total_graded_items, summary.total_items])
        return buffer.getvalue()


def _average(grades: List[int]) -> Optional[float]:
    return sum(grades) / len(grades) if grades else None


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


class ReportingService(ApplicationService):
    """Builds student progress reports and course grade exports."""

    def __init__(self, users, courses, enrollments, assignments: AssignmentRepository,
                 submissions: SubmissionRepository, quizzes: QuizRepository,
                 quiz_submissions: QuizSubmissionRepository, **kwargs):
        super().__init__(users, courses, enrollments, **kwargs)
        self._assignments = assignments
        self._submissions = submissions
        self._quizzes = quizzes
        self._quiz_submissions = quiz_submissions

    def _load_student(self, student_id: str) -> User:
        student = self._users.find_by_id(student_id)
        if student is None:
            raise ResourceNotFoundError("User not found", details={'user_id': student_id})
        return student

    # Progress

    def _assignment_item(self, assignment: Assignment,
                         submission: Optional[AssignmentSubmission]) -> ProgressItem:
        item = ProgressItem(item_id=assignment.id, item_type="assignment", title=assignment.title,
                            due_date=assignment.due_date,
                            status=AssignmentSubmissionStatus.NOT_SUBMITTED.value)
        if submission is None:
            item.is_overdue = assignment.is_past_due_date()
            return item
        item.status = submission.status.value
        item.grade = submission.grade if submission.is_graded() else None
        item.feedback = submission.feedback
        item.is_late = submission.is_late
        item.submitted_at = submission.submitted_at
        return item

    def _quiz_item(self, quiz: Quiz, submission: Optional[QuizSubmission]) -> ProgressItem:
        item = ProgressItem(item_id=quiz.id, item_type="quiz", title=quiz.title, due_date=quiz.due_date,
                            status=QuizSubmissionStatus.NOT_STARTED.value)
        if submission is None:
            item.is_overdue = quiz.is_past_due_date()
            return item
        item.status = submission.status.value
        item.submitted_at = submission.submitted_at
        return item

    def student_progress(self, actor_id: str, course_id: str,
                         student_id: Optional[str] = None) -> StudentProgress:
        """Progress of one student in a course.

        Students see their own progress; the owning teacher may pass any
        enrolled ``student_id``.
        """
        user = self._load_user(actor_id)
        course = self._load_course(course_id)
        ref = ResourceRef.of(course)
        student_id = student_id or user.id
        self._authorize(self._policy.can_view_progress(user, ref, self._context(user, ref))
                        and self._policy.can_view_submission(user, student_id, ref),
                        "view progress", user, course_id)
        student = self._load_student(student_id)
        if not self._enrollments.exists_for_course_and_student(course_id, student_id):
            raise ResourceNotFoundError("Student is not enrolled in this course",
                                        details={'course_id': course_id, 'student_id': student_id})

        progress = StudentProgress(course_id=course.id, course_name=course.name,
                                   student_id=student.id, student_name=student.name)
        for assignment in self._assignments.find_by_course_id(course_id):
            submission = self._submissions.find_by_assignment_and_student(assignment.id, student_id)
            progress.assignments.append(self._assignment_item(assignment, submission))
        for quiz in self._quizzes.find_by_course_id(course_id):
            submission = self._quiz_submissions.find_by_quiz_and_student(quiz.id, student_id)
            progress.quizzes.append(self._quiz_item(quiz, submission))

        grades = [item.grade for item in progress.assignments if item.grade is not None]
        progress.average_grade = _average(grades)
        progress.total_graded_items = len(grades)
        progress.total_items = len(progress.assignments) + len(progress.quizzes)
        return progress

    # Export

    @staticmethod
    def _assignment_row(student: User, assignment: Assignment,
                        submission: Optional[AssignmentSubmission]) -> GradeExportRow:
        row = GradeExportRow(student.name, student.email, "Assignment", assignment.title,
                             "Not Submitted", "", "Not Submitted")
        if submission is None or not submission.is_submitted():
            return row
        row.submission_date = _iso(submission.submitted_at)
        if submission.is_graded():
            row.grade = str(submission.grade)
            row.status = "Late" if submission.is_late else "Graded"
        else:
            row.grade = "Pending"
            row.status = "Late" if submission.is_late else "Submitted"
        return row

    @staticmethod
    def _quiz_row(student: User, quiz: Quiz, submission: Optional[QuizSubmission]) -> GradeExportRow:
        row = GradeExportRow(student.name, student.email, "Quiz", quiz.title,
                             "Not Submitted", "", "Not Submitted")
        if submission is None:
            return row
        if submission.is_submitted():
            row.grade = "Pending"
            row.status = "Submitted"
            row.submission_date = _iso(submission.submitted_at)
        elif submission.is_in_progress():
            row.status = "In Progress"
        return row

    def export_grades(self, actor_id: str, course_id: str) -> GradeExport:
        """Grades of every enrolled student on every assignment and quiz of a course."""
        user = self._load_user(actor_id)
        course = self._load_course(course_id)
        self._authorize(self._policy.can_export_grades(user, ResourceRef.of(course)),
                        "export grades", user, course_id)

        assignments = self._assignments.find_by_course_id(course_id)
        quizzes = self._quizzes.find_by_course_id(course_id)
        export = GradeExport(course_id=course.id, course_name=course.name, exported_at=self._clock())
        for enrollment in self._enrollments.find_by_course_id(course_id):
            student = self._users.find_by_id(enrollment.student_id)
            if student is None:
                logger.warning("Skipping enrollment %s of unknown student %s", enrollment.id,
                               enrollment.student_id)
                continue
            grades = []
            for assignment in assignments:
                submission = self._submissions.find_by_assignment_and_student(assignment.id, student.id)
                export.rows.append(self._assignment_row(student, assignment, submission))
                if submission is not None and submission.is_graded():
                    grades.append(submission.grade)
            for quiz in quizzes:
                submission = self._quiz_submissions.find_by_quiz_and_student(quiz.id, student.id)
                export.rows.append(self._quiz_row(student, quiz, submission))
            export.summaries.append(StudentGradeSummary(
                student_id=student.id, student_name=student.name, student_email=student.email,
                average_grade=_average(grades), total_graded_items=len(grades),
                total_items=len(assignments) + len(quizzes),
            ))
        logger.info("Exported %d grade rows for course %s", len(export.rows), course_id)
        return export
