"""
Time source for registration, open, close and product timestamps.

Stores and services take a ``Clock`` at construction and never read the
wall clock themselves, so tests can pin and step time.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

_DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Returns timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Stands still until a test moves it."""

    def __init__(self, start: datetime | None = None):
        self._now = start or _DEFAULT_START

    def now(self) -> datetime:
        return self._now

    def set_time(self, time: datetime) -> None:
        self._now = time

    def advance(self, seconds: int = 1) -> None:
        self._now += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Step one second forward and return the new time."""
        self.advance(1)
        return self._now
