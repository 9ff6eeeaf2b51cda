"""Streak and success-rate statistics for recurring tasks."""
from datetime import date, timedelta
from typing import AbstractSet, List, Optional

import pytz

from app.models.recurrence_rule import CompletionHistoryEntry, RecurrenceRule, TaskStats
from app.services.due_evaluator import first_tracked_day, is_due


def trailing_days(today: date, days: int) -> List[date]:
    """The last ``days`` calendar days ending at ``today``, oldest first."""
    if days < 1:
        raise ValueError(f"days must be a positive integer, got {days}")
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def percentage(part: int, whole: int) -> int:
    """Integer percentage rounded half up; 0 for an empty whole."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


class StatsEngine:
    """
    Derive streaks and success rates from a rule and its completion dates.

    Every method is a pure function of its arguments. Days before the rule was
    created are treated as not due.
    """

    def __init__(self, lookback_days: int = 365, tz: Optional[pytz.BaseTzInfo] = None):
        if lookback_days < 1:
            raise ValueError(f"lookback_days must be a positive integer, got {lookback_days}")
        self.lookback_days = lookback_days
        self.tz = tz

    def _is_tracked(self, rule: RecurrenceRule, day: date, first_day: date) -> bool:
        return day >= first_day and is_due(rule, day)

    def current_streak(self, rule: RecurrenceRule, completed: AbstractSet[date], today: date) -> int:
        """Consecutive completed due days walking back from today."""
        first_day = first_tracked_day(rule, self.tz)
        streak = 0
        for offset in range(self.lookback_days):
            day = today - timedelta(days=offset)
            if day < first_day:
                break
            if not is_due(rule, day):
                continue
            if day not in completed:
                break
            streak += 1
        return streak

    def longest_streak(
        self, rule: RecurrenceRule, completed: AbstractSet[date], today: date, window_days: int = 30
    ) -> int:
        """Longest run of completed due days inside the trailing window."""
        first_day = first_tracked_day(rule, self.tz)
        best = running = 0
        for day in trailing_days(today, window_days):
            if not self._is_tracked(rule, day, first_day):
                continue
            if day in completed:
                running += 1
                best = max(best, running)
            else:
                running = 0
        return best

    def success_rate(
        self, rule: RecurrenceRule, completed: AbstractSet[date], today: date, window_days: int = 30
    ) -> int:
        """Percentage of due days in the window that were completed."""
        first_day = first_tracked_day(rule, self.tz)
        due_days = [d for d in trailing_days(today, window_days) if self._is_tracked(rule, d, first_day)]
        completed_due = sum(1 for d in due_days if d in completed)
        return percentage(completed_due, len(due_days))

    def task_stats(
        self, rule: RecurrenceRule, completed: AbstractSet[date], today: date, window_days: int = 30
    ) -> TaskStats:
        current = self.current_streak(rule, completed, today)
        # a current streak older than the window is still the longest one seen
        longest = max(self.longest_streak(rule, completed, today, window_days), current)
        return TaskStats(
            current_streak=current,
            longest_streak=longest,
            success_rate=self.success_rate(rule, completed, today, window_days),
        )

    @staticmethod
    def completion_history(completed: AbstractSet[date], today: date, days: int = 7) -> List[CompletionHistoryEntry]:
        """Exactly ``days`` entries, oldest first, ending at today."""
        return [CompletionHistoryEntry(date=day, completed=day in completed) for day in trailing_days(today, days)]
