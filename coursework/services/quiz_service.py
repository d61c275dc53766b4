"""
Quiz authoring and timed quiz attempts.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..core.authorization import Principal, ResourceRef
from ..core.entities import Course
from ..core.exceptions import (
    CourseworkError, PastDueDateError, ResourceNotFoundError, TimeExpiredError, ValidationError
)
from ..core.quizzes import Quiz, QuizSubmission
from ..persistence.repositories import QuizRepository, QuizSubmissionRepository
from .base import ApplicationService
from .quiz_timing import QuizTimingService

logger = logging.getLogger(__name__)


@dataclass
class QuizTimer:
    """Snapshot of a running quiz timer."""
    submission_id: str
    remaining_seconds: int
    expires_at: datetime
    display: str
    expired: bool


@dataclass
class AutoSubmitResult:
    """Outcome of one auto-submit sweep."""
    checked: int = 0
    submitted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


class QuizService(ApplicationService):
    """Runs quiz authoring, attempts and the auto-submit sweep."""

    def __init__(self, users, courses, enrollments, quizzes: QuizRepository,
                 quiz_submissions: QuizSubmissionRepository,
                 timing: Optional[QuizTimingService] = None, **kwargs):
        super().__init__(users, courses, enrollments, **kwargs)
        self._quizzes = quizzes
        self._quiz_submissions = quiz_submissions
        self._timing = timing or QuizTimingService(self._clock)

    def _load_quiz(self, quiz_id: str) -> Quiz:
        quiz = self._quizzes.find_by_id(quiz_id)
        if quiz is None:
            raise ResourceNotFoundError("Quiz not found", details={'quiz_id': quiz_id})
        return quiz

    def _lock_quiz(self, quiz_id: str):
        """Lock the owning course, then the quiz."""
        return self._locks.lock_all(self._load_quiz(quiz_id).course_id, quiz_id)

    def _own_attempt(self, user: Principal, quiz_id: str) -> QuizSubmission:
        submission = self._quiz_submissions.find_by_quiz_and_student(quiz_id, user.id)
        if submission is None:
            raise ResourceNotFoundError("Quiz has not been started",
                                        details={'quiz_id': quiz_id, 'student_id': user.id})
        return submission

    def _authorize_take(self, user: Principal, quiz: Quiz) -> None:
        course = self._load_course(quiz.course_id)
        ref = ResourceRef.of(course)
        self._authorize(self._policy.can_take_quiz(user, ref, self._context(user, ref)),
                        "take this quiz", user, quiz.id)
        self._ensure_active(course)

    def _authorize_manage(self, user: Principal, course: Course) -> None:
        self._ensure_active(course)
        self._authorize(self._policy.can_manage_quizzes(user, ResourceRef.of(course)),
                        "manage quizzes", user, course.id)

    # Authoring

    def create_quiz(self, actor_id: str, course_id: str, title: str, description: str,
                    due_date: datetime, time_limit: int, questions: Iterable[Any]) -> Quiz:
        user = self._load_user(actor_id)
        with self._locks.lock(course_id):
            self._authorize_manage(user, self._load_course(course_id))
            quiz = Quiz.create(course_id, title, description, due_date, time_limit, questions, clock=self._clock)
            self._quizzes.save(quiz)
        logger.info("Quiz %s created in course %s with %d questions", quiz.id, course_id, len(quiz.questions))
        return quiz

    def update_quiz(self, actor_id: str, quiz_id: str, **changes: Any) -> Quiz:
        """Apply ``title``, ``description``, ``due_date``, ``time_limit`` or ``questions`` changes."""
        updaters = {
            'title': Quiz.update_title,
            'description': Quiz.update_description,
            'due_date': Quiz.update_due_date,
            'time_limit': Quiz.update_time_limit,
            'questions': Quiz.update_questions,
        }
        unknown = set(changes) - set(updaters)
        if unknown:
            raise ValidationError(f"Unknown quiz fields: {', '.join(sorted(unknown))}")
        if not changes:
            raise ValidationError("Nothing to update")

        user = self._load_user(actor_id)
        with self._lock_quiz(quiz_id):
            quiz = self._load_quiz(quiz_id)
            self._authorize_manage(user, self._load_course(quiz.course_id))
            has_submissions = self._quiz_submissions.has_submissions(quiz_id)
            for name, value in changes.items():
                updaters[name](quiz, value, has_submissions)
            self._quizzes.save(quiz)
        logger.info("Quiz %s updated (%s)", quiz_id, ", ".join(sorted(changes)))
        return quiz

    def delete_quiz(self, actor_id: str, quiz_id: str) -> int:
        """Delete a quiz and every attempt at it. Returns the number of attempts removed."""
        user = self._load_user(actor_id)
        with self._lock_quiz(quiz_id):
            quiz = self._load_quiz(quiz_id)
            self._authorize_manage(user, self._load_course(quiz.course_id))
            removed = self._quiz_submissions.delete_where(lambda s: s.quiz_id == quiz_id)
            self._quizzes.delete(quiz_id)
        self._locks.forget(quiz_id)
        logger.info("Quiz %s deleted by %s with %d attempts", quiz_id, user.id, removed)
        return removed

    def list_quizzes(self, actor_id: str, course_id: str) -> List[Quiz]:
        user = self._load_user(actor_id)
        course = self._load_course(course_id)
        ref = ResourceRef.of(course)
        self._authorize(self._policy.can_view_quizzes(user, ref, self._context(user, ref)),
                        "view quizzes", user, course_id)
        return self._quizzes.find_by_course_id(course_id)

    # Attempts

    def start_quiz(self, actor_id: str, quiz_id: str) -> QuizSubmission:
        """Start the acting student's single attempt at a quiz."""
        user = self._load_user(actor_id)
        with self._lock_quiz(quiz_id):
            quiz = self._load_quiz(quiz_id)
            self._authorize_take(user, quiz)
            submission = self._quiz_submissions.find_by_quiz_and_student(quiz_id, user.id)
            if submission is None:
                submission = QuizSubmission.create(quiz_id, user.id, clock=self._clock)
            submission.start(quiz.due_date)
            self._quiz_submissions.save(submission)
        logger.info("Student %s started quiz %s", user.id, quiz_id)
        return submission

    def save_answers(self, actor_id: str, quiz_id: str, answers: Iterable[Any]) -> QuizSubmission:
        """Autosave answers of a running attempt. Refused once its time limit has run out."""
        user = self._load_user(actor_id)
        with self._lock_quiz(quiz_id):
            quiz = self._load_quiz(quiz_id)
            self._authorize_take(user, quiz)
            submission = self._own_attempt(user, quiz_id)
            if submission.is_time_expired(quiz.time_limit):
                raise TimeExpiredError("Quiz time has expired",
                                       details={'quiz_id': quiz_id, 'submission_id': submission.id})
            submission.update_answers(answers)
            self._quiz_submissions.save(submission)
        return submission

    def submit_quiz(self, actor_id: str, quiz_id: str, answers: Iterable[Any]) -> QuizSubmission:
        """Manually submit an attempt.

        Refused after the quiz due date and once the attempt's time limit has
        run out; expired attempts are finished by :meth:`auto_submit_expired`.
        """
        user = self._load_user(actor_id)
        with self._lock_quiz(quiz_id):
            quiz = self._load_quiz(quiz_id)
            self._authorize_take(user, quiz)
            submission = self._own_attempt(user, quiz_id)
            if quiz.is_past_due_date():
                raise PastDueDateError("Cannot submit quiz after due date", details={'quiz_id': quiz_id})
            submission.submit(answers, quiz.time_limit)
            self._quiz_submissions.save(submission)
        logger.info("Student %s submitted quiz %s", user.id, quiz_id)
        return submission

    def remaining_time(self, actor_id: str, quiz_id: str) -> QuizTimer:
        user = self._load_user(actor_id)
        quiz = self._load_quiz(quiz_id)
        submission = self._own_attempt(user, quiz_id)
        if submission.started_at is None:
            raise ValidationError("Quiz has not been started")
        remaining = self._timing.calculate_remaining_time(submission.started_at, quiz.time_limit)
        return QuizTimer(
            submission_id=submission.id,
            remaining_seconds=remaining,
            expires_at=self._timing.calculate_expiration_time(submission.started_at, quiz.time_limit),
            display=self._timing.format_time(remaining),
            expired=submission.is_time_expired(quiz.time_limit),
        )

    def auto_submit_expired(self) -> AutoSubmitResult:
        """Force-submit every in-progress attempt whose time limit has run out.

        Meant to be called periodically by an external scheduler. One failing
        attempt does not stop the sweep.
        """
        result = AutoSubmitResult()
        for candidate in self._quiz_submissions.find_in_progress():
            result.checked += 1
            try:
                quiz = self._quizzes.find_by_id(candidate.quiz_id)
                if quiz is None:
                    continue
                with self._locks.lock_all(quiz.course_id, quiz.id):
                    quiz = self._quizzes.find_by_id(candidate.quiz_id)
                    submission = self._quiz_submissions.find_by_id(candidate.id)
                    if quiz is None or submission is None or not submission.is_in_progress():
                        continue
                    if not submission.is_time_expired(quiz.time_limit):
                        continue
                    submission.auto_submit(quiz.time_limit)
                    self._quiz_submissions.save(submission)
                    result.submitted.append(submission.id)
            except CourseworkError as e:
                logger.error("Auto-submit failed for quiz submission %s: %s", candidate.id, e.message)
                result.failed[candidate.id] = e.error_code
        logger.info("Auto-submit sweep: %d checked, %d submitted, %d failed",
                    result.checked, len(result.submitted), len(result.failed))
        return result
