"""
Injectable time source.

Idle detection, contract expiry, invoice due dates and passport checks are
all measured from "now", so services take a ``Clock`` instead of calling
``datetime.now()``.  Tests pin time with ``DeterministicClock`` and move it
forward in days.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """``now()`` always returns a timezone-aware UTC datetime."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    A clock that only moves when told to.

    Args:
        start: Initial time, UTC-aware.  Defaults to 2024-01-01 12:00 UTC.
    """

    def __init__(self, start: datetime | None = None):
        self._now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: int = 1) -> None:
        self._now += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self._now += timedelta(days=days)


def add_months(value: datetime, months: int) -> datetime:
    """
    Add calendar months, clamping the day to the target month's length.

    >>> add_months(datetime(2024, 1, 31), 1)
    datetime.datetime(2024, 2, 29, 0, 0)
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    # Day 1 of the following month minus one day is the last day of `month`.
    if month == 12:
        next_month_start = value.replace(year=year + 1, month=1, day=1)
    else:
        next_month_start = value.replace(year=year, month=month + 1, day=1)
    last_day = (next_month_start - timedelta(days=1)).day
    return value.replace(year=year, month=month, day=min(value.day, last_day))
