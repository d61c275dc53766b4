"""
Main entry point for the Coursework platform.
"""

import logging
from typing import Any, Dict, Optional, Union

from .config import PlatformConfig
from .core.authorization import AuthorizationPolicy
from .core.clock import Clock, utc_now
from .core.entities import User
from .core.enums import Role
from .core.exceptions import DuplicateEntityError
from .persistence.repositories import (
    AssignmentRepository, CourseRepository, EnrollmentRepository, MaterialRepository,
    QuizRepository, QuizSubmissionRepository, SubmissionRepository, UserRepository
)
from .services import (
    AssignmentService, CourseCodeGenerator, CourseService, EnrollmentService, LockManager,
    MaterialService, QuizService, QuizTimingService, ReportingService
)

logger = logging.getLogger(__name__)


class CourseworkPlatform:
    """Wires repositories, the authorization policy and services together."""

    def __init__(self, config: Union[PlatformConfig, Dict[str, Any], None] = None,
                 clock: Optional[Clock] = None):
        self._config = config if isinstance(config, PlatformConfig) else PlatformConfig.from_dict(config)
        self._clock = clock or utc_now
        self._initialize_platform()

    def _initialize_platform(self) -> None:
        logging.basicConfig(level=self._config.numeric_log_level,
                            format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        logger.info("Initializing Coursework platform")

        self.users = UserRepository()
        self.courses = CourseRepository()
        self.enrollments = EnrollmentRepository()
        self.materials = MaterialRepository()
        self.assignments = AssignmentRepository()
        self.submissions = SubmissionRepository()
        self.quizzes = QuizRepository()
        self.quiz_submissions = QuizSubmissionRepository()

        self.policy = AuthorizationPolicy()
        self.locks = LockManager(timeout=self._config.lock_timeout_seconds)
        shared = dict(policy=self.policy, locks=self.locks, clock=self._clock)
        base = (self.users, self.courses, self.enrollments)

        self.course_service = CourseService(
            *base, self.materials, self.assignments, self.submissions, self.quizzes,
            self.quiz_submissions,
            code_generator=CourseCodeGenerator(self.courses, self._config.course_code_max_retries),
            **shared
        )
        self.enrollment_service = EnrollmentService(*base, **shared)
        self.material_service = MaterialService(*base, self.materials, **shared)
        self.assignment_service = AssignmentService(*base, self.assignments, self.submissions, **shared)
        self.quiz_service = QuizService(*base, self.quizzes, self.quiz_submissions,
                                        timing=QuizTimingService(self._clock), **shared)
        self.reporting_service = ReportingService(*base, self.assignments, self.submissions, self.quizzes,
                                                  self.quiz_submissions, **shared)
        logger.info("Coursework platform initialized")

    @property
    def config(self) -> PlatformConfig:
        return self._config

    def register_user(self, email: str, name: str, role: Union[Role, str]) -> User:
        """Add a user. Email addresses are unique, ignoring case."""
        if self.users.find_by_email(email) is not None:
            raise DuplicateEntityError("A user with this email already exists", details={'email': email})
        user = User(email, name, role, clock=self._clock)
        self.users.save(user)
        logger.info("Registered %s %s", user.role.value.lower(), user.id)
        return user

