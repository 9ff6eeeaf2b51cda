"""
Routine Tracker

Per-user facade over recurring task rules, their completion log and the
statistics derived from them. One tracker serves one request or job run.
"""

import uuid
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytz

from app.models.recurrence_rule import CompletionHistoryEntry, RecurrenceRule, TaskStats, utc_now
from app.repositories.base import RecurringTaskRepository
from app.services.completion_log import CompletionLog
from app.services.due_evaluator import is_due
from app.services.errors import RepositoryError, RuleNotFoundError
from app.services.recurrence_validator import RecurrenceValidator
from app.services.stats_engine import StatsEngine
from app.utils.logger import get_logger
from app.utils.metrics import MetricsCollector, metrics_collector

audit_logger = get_logger("routine-tracker")

RuleRef = Union[RecurrenceRule, str]

# day fields that belong to each frequency
FREQUENCY_FIELDS = {
    "daily": (),
    "weekly": ("day_of_week",),
    "monthly": ("day_of_month",),
}


class RoutineTracker:
    """Recurring task rules and completions of a single user."""

    def __init__(
        self,
        repository: RecurringTaskRepository,
        user_id: str,
        today_provider: Callable[[], date],
        *,
        window_days: int = 30,
        history_days: int = 7,
        lookback_days: int = 365,
        tz: Optional[pytz.BaseTzInfo] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.repository = repository
        self.user_id = user_id
        self.today_provider = today_provider
        self.window_days = window_days
        self.history_days = history_days
        self.lookback_days = lookback_days
        self.tz = tz
        self.metrics = metrics or metrics_collector
        self.stats_engine = StatsEngine(lookback_days=lookback_days, tz=tz)
        self.completions = CompletionLog(repository)
        self.audit = audit_logger.bind(user_id=user_id)
        self._rules: Dict[str, RecurrenceRule] = {}
        self._loaded_days = 0

    def today(self) -> date:
        return self.today_provider()

    def _guard(self, func, *args, **kwargs):
        """Run a repository call, counting failures."""
        try:
            return func(*args, **kwargs)
        except RepositoryError:
            self.metrics.increment_counter("repository_errors_total")
            raise

    # Loading and lookup

    def load(self) -> "RoutineTracker":
        """Fetch rules and recent completions; state is replaced only if both succeed."""
        horizon = max(self.lookback_days, self.window_days, self.history_days)
        since = self.today() - timedelta(days=horizon)
        rules = self._guard(self.repository.load_rules, self.user_id)
        records = self._guard(self.repository.load_completions, self.user_id, since)

        self._rules = {rule.id: rule for rule in rules if rule.user_id == self.user_id}
        self.completions.load(records, self._rules.keys())
        self._loaded_days = horizon
        return self

    def _cover(self, days: int) -> None:
        """Widen the loaded completions to the last ``days`` days."""
        if days <= self._loaded_days:
            return
        since = self.today() - timedelta(days=days)
        records = self._guard(self.repository.load_completions, self.user_id, since)
        self.completions.load(records, self._rules.keys())
        self._loaded_days = days

    @property
    def rules(self) -> List[RecurrenceRule]:
        return sorted(self._rules.values(), key=lambda r: r.created_at)

    def get_rule(self, rule_id: str) -> RecurrenceRule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)
        return rule

    def _resolve(self, rule: RuleRef) -> RecurrenceRule:
        return self.get_rule(rule) if isinstance(rule, str) else rule

    # Rule lifecycle

    def create_rule(
        self,
        title: str,
        frequency: str,
        description: Optional[str] = None,
        day_of_week: Optional[int] = None,
        day_of_month: Optional[int] = None,
    ) -> RecurrenceRule:
        rule = RecurrenceValidator.build_rule(
            id=str(uuid.uuid4()),
            user_id=self.user_id,
            title=title,
            description=description,
            frequency=frequency,
            day_of_week=day_of_week,
            day_of_month=day_of_month,
            created_at=utc_now(),
        )
        stored = self._guard(self.repository.create_rule, rule)
        self._rules[stored.id] = stored

        self.metrics.increment_counter("recurring_tasks_created_total")
        self.audit.info("recurring_task_created", rule_id=stored.id, frequency=stored.frequency.value)
        return stored

    def update_rule(self, rule_id: str, **changes: Any) -> RecurrenceRule:
        """
        Apply partial changes to a rule.

        Day fields not supplied and not belonging to the resulting frequency
        are cleared, so switching weekly -> daily drops the weekday.
        """
        current = self.get_rule(rule_id)
        fields = current.flat_fields()
        supplied = {k: v for k, v in changes.items() if k in fields}
        fields.update(supplied)

        kept = FREQUENCY_FIELDS.get(fields["frequency"], ())
        for name in ("day_of_week", "day_of_month"):
            if name not in kept and name not in supplied:
                fields[name] = None

        updated = RecurrenceValidator.build_rule(
            id=current.id,
            user_id=current.user_id,
            created_at=current.created_at,
            **fields,
        )
        delta = {k: v for k, v in updated.flat_fields().items() if v != current.flat_fields().get(k)}
        if delta:
            self._guard(self.repository.update_rule, rule_id, delta)
        self._rules[rule_id] = updated

        self.metrics.increment_counter("recurring_tasks_updated_total")
        self.audit.info("recurring_task_updated", rule_id=rule_id, fields=sorted(delta))
        return updated

    def delete_rule(self, rule_id: str) -> None:
        self.get_rule(rule_id)
        self._guard(self.repository.delete_rule, rule_id)
        del self._rules[rule_id]
        self.completions.discard_rule(rule_id)

        self.metrics.increment_counter("recurring_tasks_deleted_total")
        self.audit.info("recurring_task_deleted", rule_id=rule_id)

    # Completions

    def toggle_completion(self, rule_id: str, day: Optional[date] = None) -> bool:
        """Flip completion of a rule on a date (today by default); returns the new state."""
        self.get_rule(rule_id)
        day = day or self.today()
        completed = self._guard(self.completions.toggle, rule_id, day)

        self.metrics.increment_counter("completions_toggled_total")
        self.audit.info("completion_toggled", rule_id=rule_id, date=day.isoformat(), completed=completed)
        return completed

    def mark_completed(self, rule_id: str, day: Optional[date] = None) -> bool:
        """Idempotently complete a rule on a date; True if a record was created."""
        self.get_rule(rule_id)
        day = day or self.today()
        created = self._guard(self.completions.mark_completed, rule_id, day)
        if created:
            self.audit.info("completion_recorded", rule_id=rule_id, date=day.isoformat())
        return created

    # Notification trigger

    def is_task_due_today(self, rule: RuleRef) -> bool:
        return is_due(self._resolve(rule), self.today())

    def is_task_completed_today(self, rule_id: str) -> bool:
        return self.completions.is_completed_on(rule_id, self.today())

    def due_today(self) -> List[Tuple[RecurrenceRule, bool]]:
        """Rules due today paired with whether they are already done."""
        today = self.today()
        return [
            (rule, self.completions.is_completed_on(rule.id, today))
            for rule in self.rules
            if is_due(rule, today)
        ]

    def pending_today(self) -> List[RecurrenceRule]:
        return [rule for rule, completed in self.due_today() if not completed]

    # Presentation

    def get_task_stats(self, rule: RuleRef, window_days: Optional[int] = None) -> TaskStats:
        rule = self._resolve(rule)
        window = window_days or self.window_days
        self._cover(window)
        completed = self.completions.snapshot(rule.id)
        return self.stats_engine.task_stats(rule, completed, self.today(), window)

    def get_completion_history(self, rule_id: str, days: Optional[int] = None) -> List[CompletionHistoryEntry]:
        days = days or self.history_days
        self._cover(days)
        completed = self.completions.snapshot(rule_id)
        return self.stats_engine.completion_history(completed, self.today(), days)

    def top_streaks(self, limit: int = 5, window_days: Optional[int] = None) -> List[Tuple[RecurrenceRule, TaskStats]]:
        """Rules ordered by current streak, longest first."""
        ranked = [(rule, self.get_task_stats(rule, window_days)) for rule in self.rules]
        ranked.sort(key=lambda pair: pair[1].current_streak, reverse=True)
        return ranked[:limit]
