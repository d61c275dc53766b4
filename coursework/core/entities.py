"""
Core entities for the Coursework platform.

Entities never hold live references to each other. Cross-entity facts such as
"has submissions" or "is enrolled" are passed in by the caller.
"""

import copy
import re
import uuid
from abc import ABC
from datetime import datetime
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

from .clock import Clock, utc_now
from .enums import ALLOWED_VIDEO_HOSTS, CourseStatus, MaterialType, Role
from .exceptions import (
    AlreadyArchivedError, CourseArchivedError, MustArchiveFirstError, ValidationError
)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def require_text(value: Any, message: str) -> str:
    """Return ``value`` if it is a non-blank string, else raise ValidationError."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)
    return value


def require_datetime(value: Any, message: str) -> datetime:
    """Return ``value`` if it is a timezone-aware datetime."""
    if not isinstance(value, datetime):
        raise ValidationError(message)
    if value.tzinfo is None:
        raise ValidationError(f"{message} (timezone-aware datetime expected)")
    return value


def coerce_enum(enum_cls, value: Any, message: str):
    """Accept an enum member or its value, raise ValidationError otherwise."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(message) from None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class AbstractEntity(ABC):
    """Base abstract entity with universal ID, timestamps and an injectable clock."""

    def __init__(self, entity_id: Optional[str] = None, clock: Optional[Clock] = None,
                 created_at: Optional[datetime] = None, updated_at: Optional[datetime] = None):
        self._clock: Clock = clock or utc_now
        self._id = entity_id if entity_id is not None else str(uuid.uuid4())
        now = self._clock()
        self._created_at = created_at or now
        self._updated_at = updated_at or self._created_at

    @property
    def id(self) -> str:
        """Get the entity ID."""
        return self._id

    @property
    def created_at(self) -> datetime:
        """Get creation timestamp."""
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        """Get last update timestamp."""
        return self._updated_at

    def __deepcopy__(self, memo):
        # The clock is shared, never copied.
        clone = self.__class__.__new__(self.__class__)
        memo[id(self)] = clone
        for key, value in self.__dict__.items():
            setattr(clone, key, value if key == '_clock' else copy.deepcopy(value, memo))
        return clone

    def _now(self) -> datetime:
        return self._clock()

    def _touch(self) -> None:
        self._updated_at = self._now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert entity to dictionary."""
        return {
            'id': self._id,
            'created_at': _iso(self._created_at),
            'updated_at': _iso(self._updated_at),
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id})"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id!r})"


class User(AbstractEntity):
    """A student or a teacher. Read-only input to the authorization policy."""

    def __init__(self, email: str, name: str, role: Union[Role, str], **kwargs):
        super().__init__(**kwargs)
        self._email = email
        self._name = name
        self._role = coerce_enum(Role, role, f"Invalid role: {role}. Must be STUDENT or TEACHER")
        self._validate()

    def _validate(self) -> None:
        require_text(self._id, "User ID is required")
        require_text(self._email, "Email is required")
        if not EMAIL_PATTERN.match(self._email):
            raise ValidationError(f"Invalid email format: {self._email}")
        require_text(self._name, "Name is required")

    @property
    def email(self) -> str:
        return self._email

    @property
    def name(self) -> str:
        return self._name

    @property
    def role(self) -> Role:
        return self._role

    def is_teacher(self) -> bool:
        return self._role is Role.TEACHER

    def is_student(self) -> bool:
        return self._role is Role.STUDENT

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'email': self._email,
            'name': self._name,
            'role': self._role.value,
        })
        return base_dict


class Course(AbstractEntity):
    """
    Course with a one-way lifecycle: ACTIVE -> ARCHIVED -> (external) deleted.

    Only active courses accept edits or new child content, and only archived
    courses may be deleted.
    """

    def __init__(self, name: str, description: str, course_code: str, teacher_id: str,
                 status: Union[CourseStatus, str] = CourseStatus.ACTIVE, **kwargs):
        super().__init__(**kwargs)
        self._name = name
        self._description = description
        self._course_code = course_code
        self._teacher_id = teacher_id
        self._status = coerce_enum(
            CourseStatus, status, f"Invalid course status: {status}. Must be ACTIVE or ARCHIVED"
        )
        self._validate()

    @classmethod
    def create(cls, name: str, description: str, course_code: str, teacher_id: str,
               entity_id: Optional[str] = None, clock: Optional[Clock] = None) -> 'Course':
        """Create a new, active course."""
        return cls(name, description, course_code, teacher_id, status=CourseStatus.ACTIVE,
                   entity_id=entity_id, clock=clock)

    @classmethod
    def reconstitute(cls, **props) -> 'Course':
        """Rebuild a course from stored properties, keeping its status."""
        return cls(**props)

    def _validate(self) -> None:
        require_text(self._id, "Course ID is required")
        require_text(self._name, "Course name is required")
        require_text(self._description, "Course description is required")
        require_text(self._course_code, "Course code is required")
        require_text(self._teacher_id, "Teacher ID is required")

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def course_code(self) -> str:
        return self._course_code

    @property
    def teacher_id(self) -> str:
        return self._teacher_id

    @property
    def status(self) -> CourseStatus:
        return self._status

    def is_active(self) -> bool:
        return self._status is CourseStatus.ACTIVE

    def is_archived(self) -> bool:
        return self._status is CourseStatus.ARCHIVED

    def archive(self) -> None:
        """Archive the course. Fails if it is already archived."""
        if self._status is CourseStatus.ARCHIVED:
            raise AlreadyArchivedError("Course is already archived")
        self._status = CourseStatus.ARCHIVED
        self._touch()

    def validate_can_delete(self) -> None:
        """Raise unless the course has been archived."""
        if self._status is not CourseStatus.ARCHIVED:
            raise MustArchiveFirstError("Cannot delete active course. Archive the course first")

    def _ensure_active(self) -> None:
        if self._status is not CourseStatus.ACTIVE:
            raise CourseArchivedError("Cannot update archived course")

    def update_name(self, name: str) -> None:
        require_text(name, "Course name is required")
        self._ensure_active()
        self._name = name
        self._touch()

    def update_description(self, description: str) -> None:
        require_text(description, "Course description is required")
        self._ensure_active()
        self._description = description
        self._touch()

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'name': self._name,
            'description': self._description,
            'course_code': self._course_code,
            'teacher_id': self._teacher_id,
            'status': self._status.value,
        })
        return base_dict


class Enrollment(AbstractEntity):
    """
    Immutable fact that a student is registered in a course.

    Uniqueness of (student_id, course_id) is checked by the caller before
    construction, using :meth:`matches`.
    """

    def __init__(self, course_id: str, student_id: str,
                 enrolled_at: Optional[datetime] = None, **kwargs):
        super().__init__(**kwargs)
        self._course_id = course_id
        self._student_id = student_id
        self._enrolled_at = enrolled_at or self._created_at
        require_text(self._id, "Enrollment ID is required")
        require_text(self._course_id, "Course ID is required")
        require_text(self._student_id, "Student ID is required")

    @property
    def course_id(self) -> str:
        return self._course_id

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def enrolled_at(self) -> datetime:
        return self._enrolled_at

    def matches(self, course_id: str, student_id: str) -> bool:
        """True if this enrollment is for the given course and student."""
        return self._course_id == course_id and self._student_id == student_id

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'course_id': self._course_id,
            'student_id': self._student_id,
            'enrolled_at': _iso(self._enrolled_at),
        })
        return base_dict


class Material(AbstractEntity):
    """Learning material: an uploaded file, rich text, or an external video link."""

    def __init__(self, course_id: str, title: str, material_type: Union[MaterialType, str],
                 content: Optional[str] = None, file_path: Optional[str] = None,
                 file_name: Optional[str] = None, file_size: Optional[int] = None,
                 mime_type: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._course_id = course_id
        self._title = title
        self._material_type = coerce_enum(
            MaterialType, material_type,
            f"Invalid material type: {material_type}. Must be FILE, TEXT, or VIDEO_LINK"
        )
        self._content = content
        self._file_path = file_path
        self._file_name = file_name
        self._file_size = file_size
        self._mime_type = mime_type
        self._validate()

    def _validate(self) -> None:
        require_text(self._id, "Material ID is required")
        require_text(self._course_id, "Course ID is required")
        require_text(self._title, "Material title is required")

        if self._material_type is MaterialType.FILE:
            self._validate_file(self._file_path, self._file_name, self._file_size, self._mime_type)
        elif self._material_type is MaterialType.TEXT:
            require_text(self._content, "Content is required for TEXT type material")
        else:
            require_text(self._content, "URL is required for VIDEO_LINK type material")
            self._validate_video_url(self._content)

    @staticmethod
    def _validate_file(file_path, file_name, file_size, mime_type) -> None:
        require_text(file_path, "File path is required for FILE type material")
        require_text(file_name, "File name is required for FILE type material")
        if not isinstance(file_size, int) or isinstance(file_size, bool) or file_size <= 0:
            raise ValidationError("File size must be a positive integer for FILE type material")
        require_text(mime_type, "MIME type is required for FILE type material")

    @staticmethod
    def _validate_video_url(url: str) -> None:
        parsed = urlparse(url)
        hostname = (parsed.hostname or "").lower()
        if not parsed.scheme or not hostname:
            raise ValidationError("Invalid URL format for video link")
        if not any(hostname == host or hostname.endswith("." + host) for host in ALLOWED_VIDEO_HOSTS):
            raise ValidationError("Video links must be from YouTube or Vimeo")
        if parsed.scheme != "https":
            raise ValidationError("Video links must use HTTPS protocol")

    @property
    def course_id(self) -> str:
        return self._course_id

    @property
    def title(self) -> str:
        return self._title

    @property
    def material_type(self) -> MaterialType:
        return self._material_type

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
    def file_size(self) -> Optional[int]:
        return self._file_size

    @property
    def mime_type(self) -> Optional[str]:
        return self._mime_type

    def is_file(self) -> bool:
        return self._material_type is MaterialType.FILE

    def is_text(self) -> bool:
        return self._material_type is MaterialType.TEXT

    def is_video_link(self) -> bool:
        return self._material_type is MaterialType.VIDEO_LINK

    def update_title(self, title: str) -> None:
        require_text(title, "Material title is required")
        self._title = title
        self._touch()

    def update_text_content(self, content: str) -> None:
        if not self.is_text():
            raise ValidationError("Can only update content for TEXT type materials")
        require_text(content, "Content is required for TEXT type material")
        self._content = content
        self._touch()

    def update_video_url(self, url: str) -> None:
        if not self.is_video_link():
            raise ValidationError("Can only update URL for VIDEO_LINK type materials")
        require_text(url, "URL is required for VIDEO_LINK type material")
        self._validate_video_url(url)
        self._content = url
        self._touch()

    def update_file(self, file_path: str, file_name: str, file_size: int, mime_type: str) -> None:
        """Replace the stored file handle and its metadata."""
        if not self.is_file():
            raise ValidationError("Can only update file for FILE type materials")
        self._validate_file(file_path, file_name, file_size, mime_type)
        self._file_path = file_path
        self._file_name = file_name
        self._file_size = file_size
        self._mime_type = mime_type
        self._touch()

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'course_id': self._course_id,
            'title': self._title,
            'material_type': self._material_type.value,
            'content': self._content,
            'file_path': self._file_path,
            'file_name': self._file_name,
            'file_size': self._file_size,
            'mime_type': self._mime_type,
        })
        return base_dict
