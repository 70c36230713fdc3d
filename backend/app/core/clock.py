"""Injectable clock.

Approval states and the "current year" / "recent" buckets depend on today's date.
Services receive a clock instead of calling ``date.today()`` so tests can pin it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware time."""
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen on a given instant until moved with ``advance`` or ``set``."""

    def __init__(self, fixed: datetime | date | None = None):
        self._now = _as_datetime(fixed or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime | date) -> None:
        self._now = _as_datetime(value)

    def advance(self, days: int = 0, seconds: int = 0) -> None:
        self._now = self._now + timedelta(days=days, seconds=seconds)


def _as_datetime(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime(value.year, value.month, value.day, 12, 0, tzinfo=timezone.utc)


system_clock = SystemClock()
