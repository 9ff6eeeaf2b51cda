"""Due-date evaluation for recurring tasks.

Monthly rules whose day does not exist in a given month (day 31 in April,
day 30 in February) fall due on that month's last day, so every monthly rule
is due exactly once per calendar month.
"""
import calendar
from datetime import date, datetime
from typing import Optional, Union

import pytz

from app.models.recurrence_rule import (
    DailySchedule,
    MonthlySchedule,
    RecurrenceRule,
    WeeklySchedule,
)

DateLike = Union[date, datetime, str]


def to_date(value: DateLike) -> date:
    """Normalize a date, datetime or ISO string to a date-only value."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise TypeError(f"Cannot interpret {value!r} as a calendar date")


def weekday_index(day: date) -> int:
    """Day of week with 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def effective_day_of_month(day_of_month: int, year: int, month: int) -> int:
    """Clamp a rule's day of month to the length of the given month."""
    return min(day_of_month, days_in_month(year, month))


def is_due(rule: Union[RecurrenceRule, DailySchedule, WeeklySchedule, MonthlySchedule], on: DateLike) -> bool:
    """Whether the rule's schedule requires action on the given day."""
    schedule = rule.schedule if isinstance(rule, RecurrenceRule) else rule
    day = to_date(on)

    if isinstance(schedule, DailySchedule):
        return True
    if isinstance(schedule, WeeklySchedule):
        return weekday_index(day) == schedule.day_of_week
    if isinstance(schedule, MonthlySchedule):
        return day.day == effective_day_of_month(schedule.day_of_month, day.year, day.month)
    return False


def first_tracked_day(rule: RecurrenceRule, tz: Optional[pytz.BaseTzInfo] = None) -> date:
    """
    The rule's creation date in the application time zone.

    Naive creation timestamps are treated as UTC.
    """
    created_at = rule.created_at
    if created_at.tzinfo is None:
        created_at = pytz.utc.localize(created_at)
    return created_at.astimezone(tz or pytz.utc).date()


def is_tracked(rule: RecurrenceRule, on: DateLike, tz: Optional[pytz.BaseTzInfo] = None) -> bool:
    """Due on the given day and the rule already existed that day."""
    day = to_date(on)
    return day >= first_tracked_day(rule, tz) and is_due(rule, day)
