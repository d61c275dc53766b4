"""
Assignments and assignment submissions.

An assignment carries a one-way grading lock. Once grading starts the
assignment can no longer be edited and stops accepting submissions. Each
submission keeps an optimistic-locking ``version`` that is incremented on
every accepted write.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from .entities import AbstractEntity, _iso, coerce_enum, require_datetime, require_text
from .enums import AssignmentSubmissionStatus, SubmissionType
from .exceptions import (
    AlreadyStartedError, DueDateNotFutureError, GradingStartedError, NotGradedError,
    NotSubmittedError, PastDueDateError, ValidationError, VersionConflictError
)
from .value_objects import validate_grade


def _normalize_formats(formats: Optional[Iterable[str]]) -> List[str]:
    return [fmt.strip().lower().lstrip('.') for fmt in (formats or []) if fmt and fmt.strip()]


class Assignment(AbstractEntity):
    """Assignment owned by a course, with a due date and a grading lock."""

    def __init__(self, course_id: str, title: str, description: str, due_date: datetime,
                 submission_type: Union[SubmissionType, str] = SubmissionType.BOTH,
                 accepted_file_formats: Optional[Iterable[str]] = None,
                 grading_started: bool = False, require_future_due_date: bool = True, **kwargs):
        super().__init__(**kwargs)
        self._course_id = course_id
        self._title = title
        self._description = description
        self._due_date = due_date
        self._submission_type = coerce_enum(
            SubmissionType, submission_type,
            f"Invalid submission type: {submission_type}. Must be FILE, TEXT, or BOTH"
        )
        self._accepted_file_formats = _normalize_formats(accepted_file_formats)
        self._grading_started = bool(grading_started)
        self._validate(require_future_due_date)

    @classmethod
    def create(cls, course_id: str, title: str, description: str, due_date: datetime,
               submission_type: Union[SubmissionType, str] = SubmissionType.BOTH,
               accepted_file_formats: Optional[Iterable[str]] = None, **kwargs) -> 'Assignment':
        """Create a new assignment. The due date must be strictly in the future."""
        return cls(course_id, title, description, due_date, submission_type,
                   accepted_file_formats, grading_started=False, **kwargs)

    @classmethod
    def reconstitute(cls, **props) -> 'Assignment':
        """Rebuild a stored assignment. Its due date may already have passed."""
        props['require_future_due_date'] = False
        return cls(**props)

    def _validate(self, require_future_due_date: bool) -> None:
        require_text(self._id, "Assignment ID is required")
        require_text(self._course_id, "Course ID is required")
        require_text(self._title, "Assignment title is required")
        require_text(self._description, "Assignment description is required")
        require_datetime(self._due_date, "Assignment due date is required")
        if require_future_due_date:
            self._ensure_future(self._due_date)

    def _ensure_future(self, due_date: datetime) -> None:
        if due_date <= self._now():
            raise DueDateNotFutureError("Assignment due date must be in the future")

    def _ensure_editable(self) -> None:
        if self._grading_started:
            raise GradingStartedError("Cannot edit assignment after grading has started")
        if self._due_date <= self._now():
            raise PastDueDateError("Cannot edit assignment after due date")

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
    def submission_type(self) -> SubmissionType:
        return self._submission_type

    @property
    def accepted_file_formats(self) -> List[str]:
        return list(self._accepted_file_formats)

    @property
    def grading_started(self) -> bool:
        return self._grading_started

    def start_grading(self) -> None:
        """Engage the grading lock. Calling it a second time fails."""
        if self._grading_started:
            raise AlreadyStartedError("Grading has already started for this assignment")
        self._grading_started = True
        self._touch()

    def update_title(self, title: str) -> None:
        require_text(title, "Assignment title is required")
        self._ensure_editable()
        self._title = title
        self._touch()

    def update_description(self, description: str) -> None:
        require_text(description, "Assignment description is required")
        self._ensure_editable()
        self._description = description
        self._touch()

    def update_due_date(self, due_date: datetime) -> None:
        require_datetime(due_date, "Assignment due date is required")
        self._ensure_future(due_date)
        self._ensure_editable()
        self._due_date = due_date
        self._touch()

    def can_accept_submissions(self) -> bool:
        # Lateness is a flag on the submission, not a rejection.
        return not self._grading_started

    def is_submission_late(self) -> bool:
        return self._now() > self._due_date

    def is_past_due_date(self) -> bool:
        return self._now() > self._due_date

    def has_grading_started(self) -> bool:
        return self._grading_started

    def validate_submission_payload(self, content: Optional[str] = None,
                                    file_name: Optional[str] = None) -> None:
        """Check a submission payload against the submission type and file formats."""
        has_text = isinstance(content, str) and bool(content.strip())
        has_file = isinstance(file_name, str) and bool(file_name.strip())

        if self._submission_type is SubmissionType.FILE and not has_file:
            raise ValidationError("This assignment requires a file upload")
        if self._submission_type is SubmissionType.TEXT and not has_text:
            raise ValidationError("This assignment requires text content")
        if self._submission_type is SubmissionType.TEXT and has_file:
            raise ValidationError("This assignment does not accept file uploads")
        if not has_text and not has_file:
            raise ValidationError("Submission must include text content or a file")

        if has_file and self._accepted_file_formats:
            extension = file_name.rsplit('.', 1)[-1].lower() if '.' in file_name else ''
            if extension not in self._accepted_file_formats:
                raise ValidationError(
                    f"File format '{extension or file_name}' is not accepted",
                    details={'accepted_file_formats': self.accepted_file_formats}
                )

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'course_id': self._course_id,
            'title': self._title,
            'description': self._description,
            'due_date': _iso(self._due_date),
            'submission_type': self._submission_type.value,
            'accepted_file_formats': self.accepted_file_formats,
            'grading_started': self._grading_started,
        })
        return base_dict


class AssignmentSubmission(AbstractEntity):
    """
    A student's submission for an assignment.

    State machine: NOT_SUBMITTED -> SUBMITTED -> GRADED. Content and
    resubmission are only allowed until the submission is graded.
    """

    def __init__(self, assignment_id: str, student_id: str,
                 status: Union[AssignmentSubmissionStatus, str] = AssignmentSubmissionStatus.NOT_SUBMITTED,
                 content: Optional[str] = None, file_path: Optional[str] = None,
                 file_name: Optional[str] = None, grade: Optional[int] = None,
                 feedback: Optional[str] = None, is_late: bool = False, version: int = 0,
                 submitted_at: Optional[datetime] = None, graded_at: Optional[datetime] = None,
                 **kwargs):
        super().__init__(**kwargs)
        self._assignment_id = assignment_id
        self._student_id = student_id
        self._status = coerce_enum(
            AssignmentSubmissionStatus, status,
            f"Invalid submission status: {status}. Must be NOT_SUBMITTED, SUBMITTED, or GRADED"
        )
        self._content = content
        self._file_path = file_path
        self._file_name = file_name
        self._grade = grade
        self._feedback = feedback
        self._is_late = bool(is_late)
        self._version = version
        self._submitted_at = submitted_at
        self._graded_at = graded_at
        self._validate()

    @classmethod
    def create(cls, assignment_id: str, student_id: str, **kwargs) -> 'AssignmentSubmission':
        """Create an empty, not-yet-submitted submission."""
        return cls(assignment_id, student_id, status=AssignmentSubmissionStatus.NOT_SUBMITTED, **kwargs)

    @classmethod
    def reconstitute(cls, **props) -> 'AssignmentSubmission':
        return cls(**props)

    def _validate(self) -> None:
        require_text(self._id, "AssignmentSubmission ID is required")
        require_text(self._assignment_id, "Assignment ID is required")
        require_text(self._student_id, "Student ID is required")
        if self._grade is not None:
            validate_grade(self._grade)
        if isinstance(self._version, bool) or not isinstance(self._version, int) or self._version < 0:
            raise ValidationError("Version must be a non-negative integer")
        if self._status is AssignmentSubmissionStatus.GRADED and self._grade is None:
            raise ValidationError("Graded submission must have a grade")

    def _bump_version(self) -> None:
        self._version += 1
        self._touch()

    def _check_version(self, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != self._version:
            raise VersionConflictError(
                "Submission has been modified by another user. Please refresh and try again",
                details={'expected_version': expected_version, 'actual_version': self._version}
            )

    @property
    def assignment_id(self) -> str:
        return self._assignment_id

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def status(self) -> AssignmentSubmissionStatus:
        return self._status

    @property
    def content(self) -> Optional[str]:
        return self._content

    @property
    def file_path(self) -> Optional[str]:
        return self._file_path

    @property
    def file_name(self) -> Optional[str]:
        return self._file_name

    @property
    def grade(self) -> Optional[int]:
        return self._grade

    @property
    def feedback(self) -> Optional[str]:
        return self._feedback

    @property
    def is_late(self) -> bool:
        return self._is_late

    @property
    def version(self) -> int:
        return self._version

    @property
    def submitted_at(self) -> Optional[datetime]:
        return self._submitted_at

    @property
    def graded_at(self) -> Optional[datetime]:
        return self._graded_at

    def mark_as_late(self) -> None:
        self._is_late = True
        self._bump_version()

    def submit(self, is_late: bool) -> None:
        """Submit the work. Refused once the submission has been graded."""
        if self._status is AssignmentSubmissionStatus.GRADED:
            raise GradingStartedError("Cannot submit after grading has started")
        self._record_submission(is_late)

    def resubmit(self, is_late: bool) -> None:
        """Submit again. Permanently blocked once the submission has been graded."""
        if self._status is AssignmentSubmissionStatus.GRADED:
            raise GradingStartedError("Cannot resubmit after grading has started")
        self._record_submission(is_late)

    def _record_submission(self, is_late: bool) -> None:
        self._status = AssignmentSubmissionStatus.SUBMITTED
        self._is_late = bool(is_late)
        self._submitted_at = self._now()
        self._bump_version()

    def assign_grade(self, grade: int, feedback: Optional[str] = None,
                     expected_version: Optional[int] = None) -> None:
        """Grade a submitted submission.

        Args:
            grade: Score between 0 and 100 inclusive.
            feedback: Optional teacher feedback.
            expected_version: Version the caller read; a mismatch raises
                VersionConflictError.
        """
        self._check_version(expected_version)
        validate_grade(grade)
        if self._status is not AssignmentSubmissionStatus.SUBMITTED:
            if self._status is AssignmentSubmissionStatus.GRADED:
                raise NotSubmittedError("Submission has already been graded. Use update_grade instead")
            raise NotSubmittedError("Cannot grade submission that has not been submitted")

        self._grade = grade
        self._feedback = feedback
        self._status = AssignmentSubmissionStatus.GRADED
        self._graded_at = self._now()
        self._bump_version()

    def update_grade(self, grade: int, feedback: Optional[str] = None,
                     expected_version: Optional[int] = None) -> None:
        """Re-grade an already graded submission. ``None`` feedback keeps the old one."""
        self._check_version(expected_version)
        if self._status is not AssignmentSubmissionStatus.GRADED:
            raise NotGradedError("Cannot update grade for submission that has not been graded")
        validate_grade(grade)

        self._grade = grade
        if feedback is not None:
            self._feedback = feedback
        self._graded_at = self._now()
        self._bump_version()

    def update_content(self, content: Optional[str] = None, file_path: Optional[str] = None,
                       file_name: Optional[str] = None) -> None:
        if self._status is AssignmentSubmissionStatus.GRADED:
            raise GradingStartedError("Cannot update content after grading has started")
        self._content = content
        self._file_path = file_path
        self._file_name = file_name
        self._bump_version()

    def is_graded(self) -> bool:
        return self._status is AssignmentSubmissionStatus.GRADED

    def is_submitted(self) -> bool:
        return self._status in (AssignmentSubmissionStatus.SUBMITTED, AssignmentSubmissionStatus.GRADED)

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'assignment_id': self._assignment_id,
            'student_id': self._student_id,
            'status': self._status.value,
            'content': self._content,
            'file_path': self._file_path,
            'file_name': self._file_name,
            'grade': self._grade,
            'feedback': self._feedback,
            'is_late': self._is_late,
            'version': self._version,
            'submitted_at': _iso(self._submitted_at),
            'graded_at': _iso(self._graded_at),
        })
        return base_dict
