"""
Services module containing the application services and their helpers.
"""

from .assignment_service import AssignmentService
from .course_code_generator import CourseCodeGenerator
from .course_service import CourseService
from .enrollment_service import EnrollmentService
from .lock_manager import LockManager
from .material_service import MaterialService
from .quiz_service import AutoSubmitResult, QuizService, QuizTimer
from .quiz_timing import QuizTimingService
from .reporting_service import GradeExport, ReportingService, StudentProgress

__all__ = [
    "AssignmentService",
    "CourseCodeGenerator",
    "CourseService",
    "EnrollmentService",
    "LockManager",
    "MaterialService",
    "QuizService",
    "QuizTimer",
    "AutoSubmitResult",
    "QuizTimingService",
    "ReportingService",
    "StudentProgress",
    "GradeExport",
]
