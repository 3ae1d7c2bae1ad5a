"""
Pure scheduling math for scheduled reports.

All timestamps are UTC. Weekdays are numbered 0 = Sunday to 6 = Saturday.
"""
import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from footfall.models.report import DateRangeKind, ReportSchedule


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _at(day: date, time_of_day: time) -> datetime:
    return datetime.combine(day, time_of_day.replace(tzinfo=None), tzinfo=timezone.utc)


def _clamped(year: int, month: int, day_of_month: int) -> date:
    return date(year, month, min(day_of_month, calendar.monthrange(year, month)[1]))


def compute_next_run(
    schedule: ReportSchedule | str,
    time_of_day: time,
    now: datetime,
    day_of_week: Optional[int] = None,
    day_of_month: Optional[int] = None,
) -> datetime:
    """
    Next occurrence of the schedule strictly after `now`.

    Weekly schedules default to Monday and monthly ones to the 1st. A
    day_of_month past the end of a month runs on that month's last day.
    """
    schedule = ReportSchedule(schedule)
    now = _as_utc(now)
    today = now.date()

    if schedule == ReportSchedule.DAILY:
        candidate = _at(today, time_of_day)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    if schedule == ReportSchedule.WEEKLY:
        target = 1 if day_of_week is None else day_of_week
        current = (today.weekday() + 1) % 7
        candidate = _at(today + timedelta(days=(target - current) % 7), time_of_day)
        if candidate <= now:
            candidate += timedelta(days=7)
        return candidate

    target_day = day_of_month or 1
    candidate = _at(_clamped(today.year, today.month, target_day), time_of_day)
    if candidate <= now:
        year, month = (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)
        candidate = _at(_clamped(year, month, target_day), time_of_day)
    return candidate


def resolve_date_range(kind: DateRangeKind | str, today: date) -> tuple[date, date]:
    """
    Inclusive (date_from, date_to) covered by a report run on `today`.

    Ranges end yesterday so every day in them is complete.
    """
    kind = DateRangeKind(kind)
    yesterday = today - timedelta(days=1)

    if kind == DateRangeKind.YESTERDAY:
        return yesterday, yesterday
    if kind == DateRangeKind.LAST_7_DAYS:
        return today - timedelta(days=7), yesterday
    if kind == DateRangeKind.LAST_30_DAYS:
        return today - timedelta(days=30), yesterday

    last_of_previous = today.replace(day=1) - timedelta(days=1)
    return last_of_previous.replace(day=1), last_of_previous
