"""
Injected time source.

Every date-relative rule (days remaining to a project's estimated finish,
days a material has sat idle, days until a batch expires) reads "today"
from a Clock handed to the service, never from ``date.today()``.  With a
DeterministicClock the same rows always produce the same alerts.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

_DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """
    Source of the current instant.

    Guarantees:
        - ``now()`` is timezone-aware.
        - ``today()`` is the UTC calendar date, so a site in any timezone
          sees the same day boundaries as the database timestamps.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)

    def today(self) -> date:
        return self.now_utc().date()


class SystemClock(Clock):
    """Wall-clock time, used by ProjectionEngine when no clock is injected."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock frozen at a chosen instant and moved only by the test.

    Usage:
        clock = DeterministicClock(datetime(2024, 3, 1, 12, tzinfo=timezone.utc))
        clock.advance_days(30)   # a month of idle stock later
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or _DEFAULT_START

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self._current += timedelta(days=days)
