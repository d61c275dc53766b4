"""
Course material service.
"""

import logging
from typing import List, Optional

from ..core.authorization import Principal, ResourceRef
from ..core.entities import Course, Material
from ..core.enums import MaterialType
from ..core.exceptions import ResourceNotFoundError
from ..persistence.repositories import MaterialRepository
from .base import ApplicationService

logger = logging.getLogger(__name__)


class MaterialService(ApplicationService):
    """Adds, renames, deletes and lists course materials."""

    def __init__(self, users, courses, enrollments, materials: MaterialRepository, **kwargs):
        super().__init__(users, courses, enrollments, **kwargs)
        self._materials = materials

    def _load_material(self, material_id: str) -> Material:
        material = self._materials.find_by_id(material_id)
        if material is None:
            raise ResourceNotFoundError("Material not found", details={'material_id': material_id})
        return material

    def _authorize_manage(self, user: Principal, course: Course) -> None:
        self._ensure_active(course)
        self._authorize(self._policy.can_manage_materials(user, ResourceRef.of(course)),
                        "manage materials", user, course.id)

    def add_material(self, actor_id: str, course_id: str, title: str, material_type: MaterialType,
                     content: Optional[str] = None, file_path: Optional[str] = None,
                     file_name: Optional[str] = None, file_size: Optional[int] = None,
                     mime_type: Optional[str] = None) -> Material:
        """Add a material to an active course.

        ``file_path`` is an opaque handle into external file storage.
        """
        user = self._load_user(actor_id)
        with self._locks.lock(course_id):
            self._authorize_manage(user, self._load_course(course_id))
            material = Material(course_id, title, material_type, content=content, file_path=file_path,
                                file_name=file_name, file_size=file_size, mime_type=mime_type,
                                clock=self._clock)
            self._materials.save(material)
        logger.info("Material %s (%s) added to course %s", material.id, material.material_type.value, course_id)
        return material

    def update_material_title(self, actor_id: str, material_id: str, title: str) -> Material:
        user = self._load_user(actor_id)
        with self._locks.lock_all(self._load_material(material_id).course_id, material_id):
            material = self._load_material(material_id)
            self._authorize_manage(user, self._load_course(material.course_id))
            material.update_title(title)
            self._materials.save(material)
        logger.info("Material %s renamed", material_id)
        return material

    def delete_material(self, actor_id: str, material_id: str) -> None:
        """Remove a material from an active course. Stored files are left to the storage layer."""
        user = self._load_user(actor_id)
        with self._locks.lock_all(self._load_material(material_id).course_id, material_id):
            material = self._load_material(material_id)
            self._authorize_manage(user, self._load_course(material.course_id))
            self._materials.delete(material_id)
        self._locks.forget(material_id)
        logger.info("Material %s deleted by %s", material_id, user.id)

    def list_materials(self, actor_id: str, course_id: str) -> List[Material]:
        user = self._load_user(actor_id)
        course = self._load_course(course_id)
        ref = ResourceRef.of(course)
        self._authorize(self._policy.can_view_materials(user, ref, self._context(user, ref)),
                        "view materials", user, course_id)
        return self._materials.find_by_course_id(course_id)
