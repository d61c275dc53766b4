"""
Course code generation.
"""

import logging
import secrets
import string

from ..core.exceptions import CourseCodeGenerationError, ValidationError
from ..core.interfaces import CourseCodeChecker
from ..core.value_objects import COURSE_CODE_LENGTH, CourseCode

logger = logging.getLogger(__name__)

CHARACTERS = string.ascii_uppercase + string.digits


class CourseCodeGenerator:
    """Generates random course codes until the checker reports one as unused."""

    def __init__(self, checker: CourseCodeChecker, max_retries: int = 5):
        if max_retries < 1:
            raise ValidationError("max_retries must be at least 1")
        self._checker = checker
        self._max_retries = max_retries

    @staticmethod
    def random_code() -> CourseCode:
        return CourseCode(''.join(secrets.choice(CHARACTERS) for _ in range(COURSE_CODE_LENGTH)))

    def generate(self) -> CourseCode:
        for attempt in range(1, self._max_retries + 1):
            code = self.random_code()
            if self._checker.is_unique(code.value):
                return code
            logger.debug("Course code %s already taken (attempt %d)", code, attempt)
        raise CourseCodeGenerationError(
            f"Failed to generate unique course code after {self._max_retries} attempts",
            details={'max_retries': self._max_retries}
        )
