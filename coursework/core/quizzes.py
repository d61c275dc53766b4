"""
Quizzes and timed quiz submissions.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .entities import AbstractEntity, _iso, coerce_enum, require_datetime, require_text
from .enums import QuestionType, QuizSubmissionStatus
from .exceptions import (
    AlreadyStartedError, CannotAutoSubmitBeforeExpiryError, CannotUpdateQuizError,
    DueDateNotFutureError, NotInProgressError, PastDueDateError, TimeExpiredError,
    ValidationError
)


class InvalidQuizUpdateError(CannotUpdateQuizError, ValidationError):
    """Raised when a quiz update carries an invalid value."""


@dataclass(frozen=True)
class MCQQuestion:
    """Multiple choice question; ``correct_answer`` is a 0-based option index."""
    question_text: str
    options: Tuple[str, ...]
    correct_answer: int
    question_type: QuestionType = field(default=QuestionType.MCQ, init=False)

    def __post_init__(self):
        object.__setattr__(self, 'options', tuple(self.options or ()))

    def is_correct_answer(self, answer_index: int) -> bool:
        return answer_index == self.correct_answer

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.question_type.value,
            'question_text': self.question_text,
            'options': list(self.options),
            'correct_answer': self.correct_answer,
        }


@dataclass(frozen=True)
class EssayQuestion:
    """Free-text question."""
    question_text: str
    question_type: QuestionType = field(default=QuestionType.ESSAY, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.question_type.value,
            'question_text': self.question_text,
        }


Question = Union[MCQQuestion, EssayQuestion]


def question_from_dict(data: Mapping[str, Any]) -> Question:
    """Build a question from its tagged dictionary form."""
    question_type = coerce_enum(
        QuestionType, data.get('type'), f"Invalid question type: {data.get('type')}. Must be MCQ or ESSAY"
    )
    if question_type is QuestionType.MCQ:
        return MCQQuestion(
            question_text=data.get('question_text'),
            options=tuple(data.get('options') or ()),
            correct_answer=data.get('correct_answer'),
        )
    return EssayQuestion(question_text=data.get('question_text'))


def validate_question(question: Any, index: int) -> None:
    """Validate a single question; ``index`` is used in error messages."""
    label = f"Question {index + 1}"
    if not isinstance(question, (MCQQuestion, EssayQuestion)):
        raise ValidationError(f"{label}: Unsupported question kind")
    require_text(question.question_text, f"{label}: Question text is required")

    if question.question_type is QuestionType.MCQ:
        options = question.options
        if len(options) < 2:
            raise ValidationError(f"{label}: MCQ must have at least 2 options")
        for option_index, option in enumerate(options):
            require_text(option, f"{label}, Option {option_index + 1}: Option text is required")
        correct = question.correct_answer
        if (isinstance(correct, bool) or not isinstance(correct, int)
                or correct < 0 or correct >= len(options)):
            raise ValidationError(
                f"{label}: MCQ correct_answer must be a valid option index (0-{len(options) - 1})"
            )


def _coerce_questions(questions: Optional[Iterable[Any]]) -> List[Any]:
    coerced = []
    for question in questions or []:
        coerced.append(question_from_dict(question) if isinstance(question, Mapping) else question)
    return coerced


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class QuizAnswer:
    """Answer to one question: an option index for MCQ, text for essays."""
    question_index: int
    answer: Union[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {'question_index': self.question_index, 'answer': self.answer}


def _coerce_answers(answers: Optional[Iterable[Any]]) -> List[QuizAnswer]:
    coerced = []
    for answer in answers or []:
        if isinstance(answer, Mapping):
            answer = QuizAnswer(answer.get('question_index'), answer.get('answer'))
        if not isinstance(answer, QuizAnswer):
            raise ValidationError("Answers must be QuizAnswer instances or mappings")
        coerced.append(answer)
    return coerced


class Quiz(AbstractEntity):
    """
    Timed quiz owned by a course.

    A quiz is editable only while its due date is in the future and no
    submissions exist. Whether submissions exist is supplied by the caller.
    """

    def __init__(self, course_id: str, title: str, description: str, due_date: datetime,
                 time_limit: int, questions: Iterable[Any], **kwargs):
        super().__init__(**kwargs)
        self._course_id = course_id
        self._title = title
        self._description = description
        self._due_date = due_date
        self._time_limit = time_limit
        self._questions = _coerce_questions(questions)
        self.validate()

    @classmethod
    def create(cls, course_id: str, title: str, description: str, due_date: datetime,
               time_limit: int, questions: Iterable[Any], **kwargs) -> 'Quiz':
        return cls(course_id, title, description, due_date, time_limit, questions, **kwargs)

    @classmethod
    def reconstitute(cls, **props) -> 'Quiz':
        return cls(**props)

    def validate(self) -> None:
        """Enforce every quiz invariant, including a future due date."""
        require_text(self._id, "Quiz ID is required")
        require_text(self._course_id, "Course ID is required")
        require_text(self._title, "Quiz title is required")
        require_text(self._description, "Quiz description is required")
        require_datetime(self._due_date, "Quiz due date is required")
        if self._due_date <= self._now():
            raise DueDateNotFutureError("Quiz due date must be in the future")
        if not _is_positive_int(self._time_limit):
            raise ValidationError("Quiz time limit must be a positive integer (in minutes)")
        if not self._questions:
            raise ValidationError("Quiz must have at least one question")
        for index, question in enumerate(self._questions):
            validate_question(question, index)

    @property
    def course_id(self) -> str:
        return self._course_id

    @property
    def title(self) -> str:
        return self._title

    @property
    def description(self) -> str:
        return self._description

    @property
    def due_date(self) -> datetime:
        return self._due_date

    @property
    def time_limit(self) -> int:
        return self._time_limit

    @property
    def questions(self) -> List[Question]:
        return list(self._questions)

    def can_edit(self, has_submissions: bool) -> bool:
        return self._now() < self._due_date and not has_submissions

    def is_past_due_date(self) -> bool:
        return self._now() >= self._due_date

    def _ensure_editable(self, has_submissions: bool) -> None:
        if not self.can_edit(has_submissions):
            raise CannotUpdateQuizError("Cannot update quiz after due date or after submissions exist")

    def update_title(self, title: str, has_submissions: bool) -> None:
        if not isinstance(title, str) or not title.strip():
            raise InvalidQuizUpdateError("Quiz title is required")
        self._ensure_editable(has_submissions)
        self._title = title
        self._touch()

    def update_description(self, description: str, has_submissions: bool) -> None:
        if not isinstance(description, str) or not description.strip():
            raise InvalidQuizUpdateError("Quiz description is required")
        self._ensure_editable(has_submissions)
        self._description = description
        self._touch()

    def update_due_date(self, due_date: datetime, has_submissions: bool) -> None:
        if not isinstance(due_date, datetime) or due_date.tzinfo is None:
            raise InvalidQuizUpdateError("Quiz due date must be a timezone-aware datetime")
        if due_date <= self._now():
            raise InvalidQuizUpdateError("Quiz due date must be in the future")
        self._ensure_editable(has_submissions)
        self._due_date = due_date
        self._touch()

    def update_time_limit(self, time_limit: int, has_submissions: bool) -> None:
        if not _is_positive_int(time_limit):
            raise InvalidQuizUpdateError("Quiz time limit must be a positive integer (in minutes)")
        self._ensure_editable(has_submissions)
        self._time_limit = time_limit
        self._touch()

    def update_questions(self, questions: Iterable[Any], has_submissions: bool) -> None:
        try:
            new_questions = _coerce_questions(questions)
            if not new_questions:
                raise ValidationError("Quiz must have at least one question")
            for index, question in enumerate(new_questions):
                validate_question(question, index)
        except ValidationError as e:
            raise InvalidQuizUpdateError(e.message) from e
        self._ensure_editable(has_submissions)
        self._questions = new_questions
        self._touch()

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'course_id': self._course_id,
            'title': self._title,
            'description': self._description,
            'due_date': _iso(self._due_date),
            'time_limit': self._time_limit,
            'questions': [question.to_dict() for question in self._questions],
        })
        return base_dict


class QuizSubmission(AbstractEntity):
    """
    A student's attempt at a quiz, at most one per (quiz_id, student_id).

    State machine: NOT_STARTED -> IN_PROGRESS -> SUBMITTED (terminal).

    Remaining time is computed from the clock at call time. A manual submit is
    refused once the time limit has run out, and :meth:`auto_submit` is refused
    until it has. The two guards are kept separate so that the manual path can
    never be used to get past the deadline.
    """

    def __init__(self, quiz_id: str, student_id: str,
                 status: Union[QuizSubmissionStatus, str] = QuizSubmissionStatus.NOT_STARTED,
                 answers: Optional[Iterable[Any]] = None, started_at: Optional[datetime] = None,
                 submitted_at: Optional[datetime] = None, **kwargs):
        super().__init__(**kwargs)
        self._quiz_id = quiz_id
        self._student_id = student_id
        self._status = coerce_enum(
            QuizSubmissionStatus, status,
            f"Invalid quiz submission status: {status}. Must be NOT_STARTED, IN_PROGRESS, or SUBMITTED"
        )
        self._answers = _coerce_answers(answers)
        self._started_at = started_at
        self._submitted_at = submitted_at
        self._validate()

    @classmethod
    def create(cls, quiz_id: str, student_id: str, **kwargs) -> 'QuizSubmission':
        return cls(quiz_id, student_id, status=QuizSubmissionStatus.NOT_STARTED, **kwargs)

    @classmethod
    def reconstitute(cls, **props) -> 'QuizSubmission':
        return cls(**props)

    def _validate(self) -> None:
        require_text(self._id, "QuizSubmission ID is required")
        require_text(self._quiz_id, "Quiz ID is required")
        require_text(self._student_id, "Student ID is required")
        if self._status is not QuizSubmissionStatus.NOT_STARTED and self._started_at is None:
            raise ValidationError("Started date is required once a quiz has been started")
        if self._status is QuizSubmissionStatus.SUBMITTED and self._submitted_at is None:
            raise ValidationError("Submitted date is required for submitted submissions")

    @property
    def quiz_id(self) -> str:
        return self._quiz_id

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def status(self) -> QuizSubmissionStatus:
        return self._status

    @property
    def answers(self) -> List[QuizAnswer]:
        return list(self._answers)

    @property
    def started_at(self) -> Optional[datetime]:
        return self._started_at

    @property
    def submitted_at(self) -> Optional[datetime]:
        return self._submitted_at

    def is_in_progress(self) -> bool:
        return self._status is QuizSubmissionStatus.IN_PROGRESS

    def is_submitted(self) -> bool:
        return self._status is QuizSubmissionStatus.SUBMITTED

    def start(self, quiz_due_date: datetime) -> None:
        """Start the attempt. Allowed once, and only before the quiz due date."""
        if self._status is not QuizSubmissionStatus.NOT_STARTED:
            raise AlreadyStartedError("Quiz has already been started or submitted")
        require_datetime(quiz_due_date, "Quiz due date is required")
        now = self._now()
        if now >= quiz_due_date:
            raise PastDueDateError("Cannot start quiz after due date")
        self._started_at = now
        self._status = QuizSubmissionStatus.IN_PROGRESS
        self._touch()

    def get_remaining_time_seconds(self, time_limit_minutes: float) -> float:
        """Seconds left on the timer, never below zero."""
        if isinstance(time_limit_minutes, bool) or not isinstance(time_limit_minutes, (int, float)) \
                or time_limit_minutes <= 0:
            raise ValidationError("Time limit must be a positive number of minutes")
        total_seconds = time_limit_minutes * 60
        if self._started_at is None:
            return float(total_seconds)
        elapsed_seconds = (self._now() - self._started_at).total_seconds()
        return max(0.0, total_seconds - elapsed_seconds)

    def is_time_expired(self, time_limit_minutes: float) -> bool:
        if self._started_at is None:
            return False
        return self.get_remaining_time_seconds(time_limit_minutes) == 0

    def update_answers(self, answers: Iterable[Any]) -> None:
        """Autosave answers while the attempt is in progress."""
        if self._status is not QuizSubmissionStatus.IN_PROGRESS:
            raise NotInProgressError("Cannot update answers when quiz is not in progress")
        self._answers = _coerce_answers(answers)
        self._touch()

    def submit(self, answers: Iterable[Any], time_limit_minutes: float,
               is_auto_submit: bool = False) -> None:
        """Submit the attempt with its final answers.

        A manual submission fails with TimeExpiredError once the time limit has
        run out. With ``is_auto_submit`` the expiry guard of :meth:`auto_submit`
        applies instead.
        """
        if self._status is not QuizSubmissionStatus.IN_PROGRESS:
            raise NotInProgressError("Quiz must be in progress to submit")
        if is_auto_submit:
            self._ensure_expired(time_limit_minutes)
        elif self.is_time_expired(time_limit_minutes):
            raise TimeExpiredError("Quiz time has expired")
        self._answers = _coerce_answers(answers)
        self._finish()

    def auto_submit(self, time_limit_minutes: float) -> None:
        """Force the terminal transition once the time limit has run out."""
        if self._status is not QuizSubmissionStatus.IN_PROGRESS:
            raise NotInProgressError("Quiz must be in progress to auto-submit")
        self._ensure_expired(time_limit_minutes)
        self._finish()

    def _ensure_expired(self, time_limit_minutes: float) -> None:
        if not self.is_time_expired(time_limit_minutes):
            raise CannotAutoSubmitBeforeExpiryError("Cannot auto-submit before time expires")

    def _finish(self) -> None:
        self._submitted_at = self._now()
        self._status = QuizSubmissionStatus.SUBMITTED
        self._touch()

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'quiz_id': self._quiz_id,
            'student_id': self._student_id,
            'status': self._status.value,
            'answers': [answer.to_dict() for answer in self._answers],
            'started_at': _iso(self._started_at),
            'submitted_at': _iso(self._submitted_at),
        })
        return base_dict
