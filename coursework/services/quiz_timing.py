"""
Display helpers for quiz timers.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from ..core.clock import Clock, utc_now
from ..core.entities import require_datetime


class QuizTimingService:
    """Whole-second timer arithmetic for quiz countdowns."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utc_now

    def calculate_remaining_time(self, started_at: datetime, time_limit_minutes: float) -> int:
        """Seconds left, floored and never negative."""
        require_datetime(started_at, "Start time is required")
        elapsed = (self._clock() - started_at).total_seconds()
        return max(0, math.floor(time_limit_minutes * 60 - elapsed))

    def is_expired(self, started_at: datetime, time_limit_minutes: float) -> bool:
        return self.calculate_remaining_time(started_at, time_limit_minutes) == 0

    @staticmethod
    def calculate_expiration_time(started_at: datetime, time_limit_minutes: float) -> datetime:
        return started_at + timedelta(minutes=time_limit_minutes)

    @staticmethod
    def format_time(seconds: float) -> str:
        """Format seconds as ``MM:SS``; minutes are not capped at 59."""
        seconds = max(0, int(seconds))
        minutes, secs = divmod(seconds, 60)
        return f"{minutes:02d}:{secs:02d}"
