"""Clock abstraction so time-dependent code can be driven from tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock:
    """Wall clock returning timezone-aware UTC timestamps."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock that only moves when told to.

    Useful for deterministic elapsed-time and duration calculations.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2025, 1, 1, 6, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 0.0, minutes: float = 0.0) -> datetime:
        self._now = self._now + timedelta(seconds=seconds, minutes=minutes)
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment
