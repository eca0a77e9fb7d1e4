# backend/offleash/services/availability/resolver.py
"""
Working hours & block resolver.

Open intervals of a walker on a date:
    working hours (walker local time)
    − every non-cancelled booking
    − every blocking block

No working-hours row, or an inactive one → [] (day off, not an error).
Bookings and blocks that stick out of the working window are clipped.
"""

from datetime import date, datetime
from typing import Iterable

from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..timeutils import as_utc, day_of_week, local_day_bounds, local_to_utc, to_naive_utc
from .intervals import Interval, clip, subtract_all


def working_window(target_date: date, start_time: str, end_time: str, tz_name: str | None) -> Interval:
    """Working hours for a date as a UTC interval."""
    return Interval(
        local_to_utc(target_date, start_time, tz_name),
        local_to_utc(target_date, end_time, tz_name),
    )


def resolve_open_intervals(window: Interval | None, busy: Iterable[Interval]) -> list[Interval]:
    """Pure core: window minus busy intervals, time-ordered, non-empty."""
    if window is None or window.is_empty():
        return []
    cuts = [c for c in (clip(b, window) for b in busy) if c is not None]
    return subtract_all([window], cuts)


def open_intervals(db: Session, walker_id: int, target_date: date) -> list[Interval]:
    """Open intervals for a walker on a date (walker's local calendar day)."""
    walker = _get_walker(db, walker_id)
    if not walker:
        raise NotFoundError(f"walker {walker_id} not found")

    hours = _get_working_hours(db, walker_id, day_of_week(target_date))
    if not hours:
        return []

    window = working_window(target_date, hours.start_time, hours.end_time, walker.timezone)
    busy = [
        Interval(as_utc(b.scheduled_start), as_utc(b.scheduled_end))
        for b in _get_active_bookings(db, walker_id, window.start, window.end)
    ]
    busy += [
        Interval(as_utc(b.start_time), as_utc(b.end_time))
        for b in _get_blocking_blocks(db, walker_id, window.start, window.end)
    ]
    return resolve_open_intervals(window, busy)


def day_schedule(db: Session, walker_id: int, target_date: date, tz_name: str | None) -> list:
    """Non-cancelled bookings touching the walker's local day, by start."""
    start, end = local_day_bounds(target_date, tz_name)
    return _get_active_bookings(db, walker_id, start, end)


# ── DB helpers ───────────────────────────────────────────────────────────────


def _get_walker(db: Session, walker_id: int):
    from ...models.generated import Users
    return db.query(Users).filter(
        Users.id == walker_id,
        Users.role == "walker",
    ).first()


def _get_working_hours(db: Session, walker_id: int, dow: int):
    from ...models.generated import WorkingHours
    return db.query(WorkingHours).filter(
        WorkingHours.walker_id == walker_id,
        WorkingHours.day_of_week == dow,
        WorkingHours.is_active == 1,
    ).first()


def _get_active_bookings(db: Session, walker_id: int, start: datetime, end: datetime) -> list:
    from ...models.generated import Bookings
    return db.query(Bookings).filter(
        Bookings.walker_id == walker_id,
        Bookings.status != "cancelled",
        Bookings.scheduled_start < to_naive_utc(end),
        Bookings.scheduled_end > to_naive_utc(start),
    ).order_by(Bookings.scheduled_start).all()


def _get_blocking_blocks(db: Session, walker_id: int, start: datetime, end: datetime) -> list:
    from ...models.generated import Blocks
    return db.query(Blocks).filter(
        Blocks.walker_id == walker_id,
        Blocks.is_blocking == 1,
        Blocks.start_time < to_naive_utc(end),
        Blocks.end_time > to_naive_utc(start),
    ).order_by(Blocks.start_time).all()
