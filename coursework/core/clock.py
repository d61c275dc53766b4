"""
Time source used by every entity.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default system clock."""
    return datetime.now(timezone.utc)
