"""
Authorization policy.

Every decision is a pure function ``(user, resource[, context]) -> bool``
with no I/O and no mutation. Callers hand in read-only snapshots
(:class:`Principal`, :class:`ResourceRef`) together with facts they looked
up themselves, such as enrollment, in an :class:`AuthorizationContext`.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

from .enums import Role


class AuthorizationContext(BaseModel):
    """Facts the caller supplies for a decision. Extra keys are kept."""

    model_config = ConfigDict(extra='allow', frozen=True)

    is_enrolled: Optional[bool] = None
    is_owner: Optional[bool] = None


ContextLike = Union[AuthorizationContext, Mapping[str, Any], None]


@dataclass(frozen=True)
class Principal:
    """Read-only view of the acting user."""
    id: str
    role: Role

    @classmethod
    def of(cls, user: Any) -> 'Principal':
        if isinstance(user, Principal):
            return user
        return cls(id=user.id, role=user.role)

    def is_teacher(self) -> bool:
        return self.role is Role.TEACHER

    def is_student(self) -> bool:
        return self.role is Role.STUDENT


@dataclass(frozen=True)
class ResourceRef:
    """Read-only view of a course-owned resource: who owns it and whether it is open."""
    id: str
    owner_teacher_id: str
    active: bool = True

    @classmethod
    def of(cls, course: Any) -> 'ResourceRef':
        if isinstance(course, ResourceRef):
            return course
        return cls(id=course.id, owner_teacher_id=course.teacher_id, active=course.is_active())


def _context(context: ContextLike) -> AuthorizationContext:
    if isinstance(context, AuthorizationContext):
        return context
    return AuthorizationContext(**dict(context or {}))


class AuthorizationPolicy:
    """Role, ownership and enrollment rules for every resource type."""

    # Building blocks

    @staticmethod
    def _is_owner(user: Principal, course: ResourceRef) -> bool:
        return user.is_teacher() and course.owner_teacher_id == user.id

    def _owner_or_enrolled(self, user: Any, course: Any, context: ContextLike) -> bool:
        principal, ref = Principal.of(user), ResourceRef.of(course)
        if principal.is_teacher():
            return self._is_owner(principal, ref)
        if principal.is_student():
            return _context(context).is_enrolled is True
        return False

    def _owner_only(self, user: Any, course: Any) -> bool:
        return self._is_owner(Principal.of(user), ResourceRef.of(course))

    def _enrolled_student(self, user: Any, context: ContextLike) -> bool:
        return Principal.of(user).is_student() and _context(context).is_enrolled is True

    # Courses

    def can_access_course(self, user: Any, course: Any, context: ContextLike = None) -> bool:
        return self._owner_or_enrolled(user, course, context)

    def can_modify_course(self, user: Any, course: Any) -> bool:
        return self._owner_only(user, course) and ResourceRef.of(course).active

    def can_archive_course(self, user: Any, course: Any) -> bool:
        return self._owner_only(user, course) and ResourceRef.of(course).active

    def can_delete_course(self, user: Any, course: Any) -> bool:
        # Whether the course is archived is a domain rule, checked by the entity.
        return self._owner_only(user, course)

    def can_create_course(self, user: Any) -> bool:
        return Principal.of(user).is_teacher()

    def can_view_enrollments(self, user: Any, course: Any) -> bool:
        return self._owner_only(user, course)

    def can_enroll_in_course(self, user: Any, course: Any, context: ContextLike = None) -> bool:
        if not Principal.of(user).is_student():
            return False
        if not ResourceRef.of(course).active:
            return False
        return _context(context).is_enrolled is not True

    # Materials

    def can_view_materials(self, user: Any, course: Any, context: ContextLike = None) -> bool:
        return self._owner_or_enrolled(user, course, context)

    def can_manage_materials(self, user: Any, course: Any) -> bool:
        return self._owner_only(user, course)

    # Assignments

    def can_view_assignments(self, user: Any, course: Any, context: ContextLike = None) -> bool:
        return self._owner_or_enrolled(user, course, context)

    def can_manage_assignments(self, user: Any, course: Any) -> bool:
        return self._owner_only(user, course)

    def can_submit_assignment(self, user: Any, course: Any, context: ContextLike = None) -> bool:
        return self._enrolled_student(user, context)

    def can_grade_submissions(self, user: Any, course: Any) -> bool:
        return self._owner_only(user, course)

    def can_view_submission(self, user: Any, submission_owner_id: str, course: Any) -> bool:
        """Owners always see their own submission; the owning teacher sees all of them."""
        principal = Principal.of(user)
        if principal.is_teacher():
            return self._is_owner(principal, ResourceRef.of(course))
        if principal.is_student():
            return submission_owner_id == principal.id
        return False

    # Quizzes

    def can_view_quizzes(self, user: Any, course: Any, context: ContextLike = None) -> bool:
        return self._owner_or_enrolled(user, course, context)

    def can_manage_quizzes(self, user: Any, course: Any) -> bool:
        return self._owner_only(user, course)

    def can_take_quiz(self, user: Any, course: Any, context: ContextLike = None) -> bool:
        return self._enrolled_student(user, context)

    # Reporting

    def can_export_grades(self, user: Any, course: Any) -> bool:
        return self._owner_only(user, course)

    def can_view_progress(self, user: Any, course: Any, context: ContextLike = None) -> bool:
        return self._owner_or_enrolled(user, course, context)
