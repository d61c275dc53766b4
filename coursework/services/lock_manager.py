"""
Per-aggregate locking for read -> mutate -> persist sequences.
"""

import logging
import threading
from collections import defaultdict
from contextlib import ExitStack, contextmanager
from typing import Dict, Iterator, Tuple

from ..core.exceptions import ConcurrencyError, ValidationError

logger = logging.getLogger(__name__)


class LockManager:
    """Hands out one re-entrant lock per resource ID.

    Services take the lock of the aggregate they are about to change, so two
    callers can never both pass a one-way latch such as ``archive()`` or
    ``start_grading()``. Content that lives under a course is always locked
    course first, then child, through :meth:`lock_all`.
    """

    def __init__(self, timeout: float = 5.0):
        if timeout <= 0:
            raise ValidationError("Lock timeout must be positive")
        self._timeout = timeout
        self._locks: Dict[str, threading.RLock] = defaultdict(threading.RLock)
        self._guard = threading.Lock()

    @property
    def timeout(self) -> float:
        return self._timeout

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _lock_for(self, resource_id: str) -> threading.RLock:
        with self._guard:
            return self._locks[resource_id]

    @contextmanager
    def lock(self, resource_id: str) -> Iterator[str]:
        """Context manager for acquiring and releasing the lock on ``resource_id``."""
        resource_lock = self._lock_for(resource_id)
        if not resource_lock.acquire(timeout=self._timeout):
            logger.warning("Timed out waiting for lock on %s", resource_id)
            raise ConcurrencyError(
                f"Cannot acquire lock on {resource_id}",
                details={'resource_id': resource_id, 'timeout': self._timeout}
            )
        try:
            yield resource_id
        finally:
            resource_lock.release()

    @contextmanager
    def lock_all(self, *resource_ids: str) -> Iterator[Tuple[str, ...]]:
        """Acquire several locks in the order given and release them in reverse."""
        with ExitStack() as stack:
            for resource_id in resource_ids:
                stack.enter_context(self.lock(resource_id))
            yield resource_ids

    def forget(self, *resource_ids: str) -> None:
        """Drop the locks of deleted resources."""
        with self._guard:
            for resource_id in resource_ids:
                self._locks.pop(resource_id, None)
