"""
Core interfaces and abstract base classes for the Coursework platform.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, TypeVar


T = TypeVar('T')


class Repository(ABC, Generic[T]):
    """Abstract base class for repositories.

    A missing entity is reported as ``None``, never as an exception.
    """

    @abstractmethod
    def save(self, entity: T) -> T:
        """Insert or replace an entity."""
        pass

    @abstractmethod
    def find_by_id(self, entity_id: str) -> Optional[T]:
        """Find entity by ID."""
        pass

    @abstractmethod
    def find_all(self, filters: Optional[Dict[str, Any]] = None) -> List[T]:
        """Find all entities whose attributes equal the given filters."""
        pass

    @abstractmethod
    def delete(self, entity_id: str) -> bool:
        """Delete an entity. Returns False if it did not exist."""
        pass


class CourseCodeChecker(ABC):
    """Answers whether a course code is still free."""

    @abstractmethod
    def is_unique(self, code: str) -> bool:
        pass
