"""
Tests for next-run computation and report date ranges.
"""
from datetime import date, datetime, time, timezone

import pytest

from footfall.services.scheduling import compute_next_run, resolve_date_range

# A Wednesday
NOW = datetime(2025, 3, 12, 14, 30, tzinfo=timezone.utc)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_daily_later_today():
    assert compute_next_run("daily", time(16, 0), NOW) == utc(2025, 3, 12, 16, 0)


def test_daily_already_passed_rolls_to_tomorrow():
    assert compute_next_run("daily", time(9, 0), NOW) == utc(2025, 3, 13, 9, 0)


def test_daily_exactly_now_is_not_due_again():
    assert compute_next_run("daily", time(14, 30), NOW) == utc(2025, 3, 13, 14, 30)


@pytest.mark.parametrize(
    "day_of_week, expected",
    [
        (None, utc(2025, 3, 17, 9, 0)),  # Monday by default
        (0, utc(2025, 3, 16, 9, 0)),  # Sunday
        (3, utc(2025, 3, 19, 9, 0)),  # today, but 09:00 has passed
        (5, utc(2025, 3, 14, 9, 0)),
    ],
)
def test_weekly(day_of_week, expected):
    assert compute_next_run("weekly", time(9, 0), NOW, day_of_week=day_of_week) == expected


def test_weekly_later_today():
    assert compute_next_run("weekly", time(18, 0), NOW, day_of_week=3) == utc(2025, 3, 12, 18, 0)


def test_monthly_defaults_to_first():
    assert compute_next_run("monthly", time(9, 0), NOW) == utc(2025, 4, 1, 9, 0)


def test_monthly_clamps_to_month_end():
    moment = utc(2025, 4, 10, 8, 0)
    assert compute_next_run("monthly", time(9, 0), moment, day_of_month=31) == utc(2025, 4, 30, 9, 0)


def test_monthly_after_clamped_day_moves_to_next_month():
    moment = utc(2025, 2, 28, 10, 0)
    assert compute_next_run("monthly", time(9, 0), moment, day_of_month=30) == utc(2025, 3, 30, 9, 0)


def test_monthly_wraps_year():
    moment = utc(2025, 12, 5, 0, 0)
    assert compute_next_run("monthly", time(6, 0), moment, day_of_month=1) == utc(2026, 1, 1, 6, 0)


def test_naive_now_is_treated_as_utc():
    naive = NOW.replace(tzinfo=None)
    assert compute_next_run("daily", time(9, 0), naive) == utc(2025, 3, 13, 9, 0)


@pytest.mark.parametrize(
    "kind, expected",
    [
        ("yesterday", (date(2025, 3, 11), date(2025, 3, 11))),
        ("last_7_days", (date(2025, 3, 5), date(2025, 3, 11))),
        ("last_30_days", (date(2025, 2, 10), date(2025, 3, 11))),
        ("last_month", (date(2025, 2, 1), date(2025, 2, 28))),
    ],
)
def test_resolve_date_range(kind, expected):
    assert resolve_date_range(kind, date(2025, 3, 12)) == expected


def test_last_month_in_january():
    assert resolve_date_range("last_month", date(2025, 1, 3)) == (date(2024, 12, 1), date(2024, 12, 31))


def test_unknown_schedule_rejected():
    with pytest.raises(ValueError):
        compute_next_run("hourly", time(9, 0), NOW)
