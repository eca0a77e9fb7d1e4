from datetime import date, timedelta

import pytest

from offleash.services.recurring import Fixed, WeeklyRule, block_dates, next_monthly, series_dates
from offleash.services.timeutils import day_of_week

MONDAY = 1
TUESDAY = 2
THURSDAY = 4


def test_day_of_week_is_sunday_based():
    assert day_of_week(date(2026, 10, 18)) == 0  # Sunday
    assert day_of_week(date(2026, 10, 19)) == MONDAY
    assert day_of_week(date(2026, 10, 24)) == 6  # Saturday


def test_weekly_occurrences():
    dates = series_dates(date(2026, 10, 26), "weekly", MONDAY, total_occurrences=12)
    assert len(dates) == 12
    assert dates[0] == date(2026, 10, 26)
    assert all(b - a == timedelta(days=7) for a, b in zip(dates, dates[1:]))


def test_first_date_moves_forward_to_requested_weekday():
    # Wednesday start, Monday series
    dates = series_dates(date(2026, 10, 21), "weekly", MONDAY, total_occurrences=2)
    assert dates == [date(2026, 10, 26), date(2026, 11, 2)]


def test_bi_weekly_until_end_date_inclusive():
    dates = series_dates(date(2026, 10, 26), "bi_weekly", MONDAY, end_date=date(2026, 12, 7))
    assert dates == [
        date(2026, 10, 26),
        date(2026, 11, 9),
        date(2026, 11, 23),
        date(2026, 12, 7),
    ]


def test_monthly_keeps_ordinal_weekday():
    # 3rd Tuesday of each month
    dates = series_dates(date(2026, 10, 20), "monthly", TUESDAY, total_occurrences=3)
    assert dates == [date(2026, 10, 20), date(2026, 11, 17), date(2026, 12, 15)]


def test_monthly_clamps_fifth_weekday_to_last():
    # 5th Thursday of October; November has only four Thursdays
    assert next_monthly(date(2026, 10, 29), THURSDAY) == date(2026, 11, 26)


def test_monthly_crosses_year_boundary():
    assert next_monthly(date(2026, 12, 1), TUESDAY) == date(2027, 1, 5)


def test_hard_cap_on_occurrences():
    dates = series_dates(date(2026, 10, 26), "weekly", MONDAY, end_date=date(2028, 10, 26))
    assert len(dates) == 52


def test_hard_cap_on_span():
    start = date(2026, 10, 26)
    dates = series_dates(start, "bi_weekly", MONDAY, end_date=date(2028, 10, 26))
    assert dates[-1] <= start + timedelta(days=365)
    assert len(dates) == 27


def test_unknown_frequency():
    with pytest.raises(ValueError):
        series_dates(date(2026, 10, 26), "daily", MONDAY, total_occurrences=3)


def test_block_dates_skip_days_before_today():
    today = date(2026, 10, 21)  # Wednesday
    rule = WeeklyRule(days=(1, 3, 5), horizon=Fixed(2))
    assert block_dates(rule, today) == [
        date(2026, 10, 21),
        date(2026, 10, 23),
        date(2026, 10, 26),
        date(2026, 10, 28),
        date(2026, 10, 30),
    ]


def test_block_dates_are_chronological():
    rule = WeeklyRule(days=(6, 0), horizon=Fixed(3))
    dates = block_dates(rule, date(2026, 10, 18))
    assert dates == sorted(dates)
    assert len(dates) == 6
