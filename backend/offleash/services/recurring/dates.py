# backend/offleash/services/recurring/dates.py
"""
Occurrence date enumeration.

Series: first date ≥ start_date on day_of_week, then
    weekly     +7 days
    bi_weekly  +14 days
    monthly    same ordinal weekday of the next month (3rd Tuesday → 3rd
               Tuesday); when that month has no such day, the last one
Hard caps: 52 occurrences, 365 days after start_date.

Blocks: every selected weekday of the current (Sunday-start) week and the
following weeks, skipping dates before today.
"""

from datetime import date, timedelta

from ..timeutils import day_of_week
from .rules import WeeklyRule

MAX_OCCURRENCES = 52
MAX_SPAN_DAYS = 365

FREQUENCIES = ("weekly", "bi_weekly", "monthly")


def first_on_or_after(start: date, dow: int) -> date:
    return start + timedelta(days=(dow - day_of_week(start)) % 7)


def next_monthly(current: date, dow: int) -> date:
    """Same ordinal weekday as `current`, one month later."""
    week_of_month = (current.day - 1) // 7
    if current.month == 12:
        month_start = date(current.year + 1, 1, 1)
    else:
        month_start = date(current.year, current.month + 1, 1)

    candidate = first_on_or_after(month_start, dow) + timedelta(weeks=week_of_month)
    if candidate.month != month_start.month:
        candidate -= timedelta(weeks=1)
    return candidate


def series_dates(
    start_date: date,
    frequency: str,
    dow: int,
    end_date: date | None = None,
    total_occurrences: int | None = None,
) -> list[date]:
    if frequency not in FREQUENCIES:
        raise ValueError(f"unknown frequency {frequency!r}")

    limit = min(total_occurrences or MAX_OCCURRENCES, MAX_OCCURRENCES)
    last = start_date + timedelta(days=MAX_SPAN_DAYS)
    if end_date is not None:
        last = min(last, end_date)

    dates: list[date] = []
    current = first_on_or_after(start_date, dow)
    while len(dates) < limit and current <= last:
        dates.append(current)
        if frequency == "weekly":
            current += timedelta(weeks=1)
        elif frequency == "bi_weekly":
            current += timedelta(weeks=2)
        else:
            current = next_monthly(current, dow)
    return dates


def block_dates(rule: WeeklyRule, today: date) -> list[date]:
    """Dates covered by a weekly block rule, in chronological order."""
    week_start = today - timedelta(days=day_of_week(today))
    dates = []
    for week in range(rule.weeks):
        for dow in rule.days:
            d = week_start + timedelta(weeks=week, days=dow)
            if d >= today:
                dates.append(d)
    return dates
