# backend/offleash/services/clock.py

from datetime import date, datetime, timedelta, timezone
from typing import Protocol

from .timeutils import to_local


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to one instant (tests, previews)."""

    def __init__(self, at: datetime):
        self.at = at if at.tzinfo else at.replace(tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.at

    def advance(self, **delta) -> None:
        self.at = self.at + timedelta(**delta)


def today(clock: Clock, tz_name: str | None) -> date:
    """Calendar date of clock.now() in the given timezone."""
    return to_local(clock.now(), tz_name).date()


_system_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency."""
    return _system_clock
