"""
Clock abstraction — all timestamps and session boundaries read time here.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    """Protocol for wall-clock providers."""

    def now(self) -> datetime:
        """Current timezone-aware UTC time."""
        ...


class SystemClock:
    """Real wall clock (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """
    Clock that only moves when told to.

    Used in tests and replays so session-gap behavior is deterministic.
    """

    def __init__(self, start: Optional[datetime] = None):
        if start is None:
            start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, **kwargs: float) -> datetime:
        """Move forward by a timedelta given as keyword args (minutes=31, ...)."""
        with self._lock:
            self._now = self._now + timedelta(**kwargs)
            return self._now

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        with self._lock:
            self._now = moment
