"""
Completion Log

In-memory view of a user's completion records, kept in step with the
repository. The store's unique (rule, date) constraint is the source of
truth; this view only changes after the store accepted a write.
"""

import logging
import threading
from collections import defaultdict
from datetime import date
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from app.models.recurrence_rule import CompletionRecord
from app.repositories.base import RecurringTaskRepository
from app.services.errors import DuplicateCompletionError

logger = logging.getLogger(__name__)

Key = Tuple[str, date]

# Shared by every log in the process: each request builds its own tracker
_toggle_locks: Dict[Key, threading.Lock] = defaultdict(threading.Lock)
_toggle_locks_guard = threading.Lock()


def toggle_lock(rule_id: str, day: date) -> threading.Lock:
    """The process-wide lock serializing writes to one (rule, date) pair."""
    with _toggle_locks_guard:
        return _toggle_locks[(rule_id, day)]


class CompletionLog:
    """Completion records keyed by (rule id, completed date)."""

    def __init__(self, repository: RecurringTaskRepository):
        self.repository = repository
        self._records: Dict[Key, CompletionRecord] = {}
        self._lock = threading.RLock()

    def _key_lock(self, key: Key) -> threading.Lock:
        return toggle_lock(*key)

    def load(self, records: Iterable[CompletionRecord], known_rule_ids: Iterable[str]) -> int:
        """
        Replace the view with the given records.

        Records pointing at an unknown rule are dropped.

        Returns:
            Number of records kept
        """
        known = set(known_rule_ids)
        fresh: Dict[Key, CompletionRecord] = {}
        orphans = 0
        for record in records:
            if record.recurring_task_id not in known:
                orphans += 1
                continue
            fresh[(record.recurring_task_id, record.completed_date)] = record

        if orphans:
            logger.warning(f"Ignored {orphans} completion(s) referencing unknown recurring tasks")

        with self._lock:
            self._records = fresh
        return len(fresh)

    def is_completed_on(self, rule_id: str, day: date) -> bool:
        with self._lock:
            return (rule_id, day) in self._records

    def get(self, rule_id: str, day: date) -> Optional[CompletionRecord]:
        with self._lock:
            return self._records.get((rule_id, day))

    def toggle(self, rule_id: str, day: date) -> bool:
        """
        Flip the completion state of a rule on a date.

        Returns:
            True if the rule is now completed on that date
        """
        key = (rule_id, day)
        with self._key_lock(key):
            existing = self.get(rule_id, day)
            if existing is not None:
                if self.repository.delete_completion(existing.id):
                    with self._lock:
                        self._records.pop(key, None)
                    return False
                # removed by another writer since this view was loaded
                logger.info(f"Completion for {rule_id} on {day} already removed, recording it again")
                with self._lock:
                    self._records.pop(key, None)

            try:
                record = self.repository.insert_completion(rule_id, day)
            except DuplicateCompletionError:
                # Another writer completed it first; serialized, our toggle removes it
                logger.warning(f"Completion for {rule_id} on {day} already stored, toggling it off")
                stored = self.repository.find_completion(rule_id, day)
                if stored is not None:
                    self.repository.delete_completion(stored.id)
                with self._lock:
                    self._records.pop(key, None)
                return False

            with self._lock:
                self._records[key] = record
            return True

    def mark_completed(self, rule_id: str, day: date) -> bool:
        """
        Ensure a rule is completed on a date.

        Returns:
            True if a new record was created
        """
        key = (rule_id, day)
        with self._key_lock(key):
            if self.get(rule_id, day) is not None:
                return False
            try:
                record = self.repository.insert_completion(rule_id, day)
            except DuplicateCompletionError:
                record = self.repository.find_completion(rule_id, day)
                if record is None:
                    raise
                with self._lock:
                    self._records[key] = record
                return False

            with self._lock:
                self._records[key] = record
            return True

    def records_in_window(self, rule_id: str, start: date, end_inclusive: date) -> List[date]:
        """Completion dates of a rule within [start, end_inclusive], ascending."""
        with self._lock:
            return sorted(
                day for (owner, day) in self._records
                if owner == rule_id and start <= day <= end_inclusive
            )

    def snapshot(self, rule_id: str) -> FrozenSet[date]:
        """All known completion dates of a rule, read atomically."""
        with self._lock:
            return frozenset(day for (owner, day) in self._records if owner == rule_id)

    def discard_rule(self, rule_id: str) -> None:
        with self._lock:
            self._records = {key: rec for key, rec in self._records.items() if key[0] != rule_id}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
