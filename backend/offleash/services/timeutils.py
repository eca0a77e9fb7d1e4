# backend/offleash/services/timeutils.py
"""
Wall-clock / instant helpers.

The database stores naive UTC datetimes. Working hours and series times are
"HH:MM" strings in an IANA timezone.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "America/Denver"


def time_str_to_minutes(value: str) -> int:
    """ "09:30" → 570 """
    hour, minute = parse_hhmm(value)
    return hour * 60 + minute


def minutes_to_time_str(minutes: int) -> str:
    """ 570 → "09:30" """
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_hhmm(value: str) -> tuple[int, int]:
    try:
        hour_str, minute_str = value.strip().split(":")[:2]
        hour, minute = int(hour_str), int(minute_str)
    except (AttributeError, ValueError):
        raise ValueError(f"invalid time {value!r}, expected HH:MM")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"invalid time {value!r}, expected HH:MM")
    return hour, minute


def get_zone(tz_name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"unknown timezone {tz_name!r}")


def day_of_week(d: date) -> int:
    """Sunday = 0 … Saturday = 6."""
    return (d.weekday() + 1) % 7


def as_utc(dt: datetime) -> datetime:
    """Aware UTC datetime. Naive input is taken to already be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_naive_utc(dt: datetime) -> datetime:
    """Column value for a DateTime column."""
    return as_utc(dt).replace(tzinfo=None)


def local_to_utc(d: date, hhmm: str | time, tz_name: str | None) -> datetime:
    """Local wall-clock (date, "HH:MM") in tz → aware UTC instant."""
    if isinstance(hhmm, str):
        hour, minute = parse_hhmm(hhmm)
        hhmm = time(hour, minute)
    local = datetime.combine(d, hhmm, tzinfo=get_zone(tz_name))
    return local.astimezone(timezone.utc)


def to_local(dt: datetime, tz_name: str | None) -> datetime:
    return as_utc(dt).astimezone(get_zone(tz_name))


def local_day_bounds(d: date, tz_name: str | None) -> tuple[datetime, datetime]:
    """[local midnight, next local midnight) as UTC instants."""
    zone = get_zone(tz_name)
    start = datetime.combine(d, time.min, tzinfo=zone)
    end = datetime.combine(d + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def minutes_between(start: datetime, end: datetime) -> int:
    return int((as_utc(end) - as_utc(start)).total_seconds() // 60)
