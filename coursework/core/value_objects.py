"""
Immutable value objects.
"""

import re
from typing import Any

from .enums import MAX_GRADE, MIN_GRADE, PASSING_GRADE
from .exceptions import InvalidGradeRangeError, ValidationError

COURSE_CODE_LENGTH = 6
COURSE_CODE_PATTERN = re.compile(r'^[A-Z0-9]{%d}$' % COURSE_CODE_LENGTH, re.IGNORECASE)


def validate_grade(grade: Any) -> int:
    """Check that ``grade`` is a whole number within the inclusive grade bounds.

    Fractional grades are refused rather than rounded.
    """
    if isinstance(grade, bool) or not isinstance(grade, (int, float)):
        raise ValidationError("Grade must be a valid number")
    if isinstance(grade, float):
        raise ValidationError("Grade must be a whole number", details={'grade': grade})
    if grade < MIN_GRADE or grade > MAX_GRADE:
        raise InvalidGradeRangeError(
            f"Grade must be between {MIN_GRADE} and {MAX_GRADE}",
            details={'grade': grade}
        )
    return grade


class Grade:
    """Numerical score between 0 and 100 inclusive."""

    __slots__ = ('_value',)

    def __init__(self, value: int):
        self._value = validate_grade(value)

    @property
    def value(self) -> int:
        return self._value

    @property
    def letter(self) -> str:
        """A: 90-100, B: 80-89, C: 70-79, D: 60-69, F: below 60."""
        if self._value >= 90:
            return 'A'
        if self._value >= 80:
            return 'B'
        if self._value >= 70:
            return 'C'
        if self._value >= 60:
            return 'D'
        return 'F'

    def is_passing(self) -> bool:
        return self._value >= PASSING_GRADE

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grade):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"Grade({self._value!r})"


class CourseCode:
    """Six-character alphanumeric course code, normalized to upper case."""

    __slots__ = ('_value',)

    def __init__(self, code: str):
        if not isinstance(code, str) or not code.strip():
            raise ValidationError("Course code cannot be empty")
        code = code.strip()
        if not COURSE_CODE_PATTERN.match(code):
            raise ValidationError(
                f"Invalid course code format. Must be {COURSE_CODE_LENGTH} alphanumeric characters (A-Z, 0-9)"
            )
        self._value = code.upper()

    @property
    def value(self) -> str:
        return self._value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CourseCode):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"CourseCode({self._value!r})"
