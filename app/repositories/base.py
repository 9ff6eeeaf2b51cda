"""
Recurring Task Repository Interface

Persistence boundary of the tracker. Every method may raise RepositoryError;
callers treat that as "no change applied".
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

from app.models.recurrence_rule import CompletionRecord, RecurrenceRule


class RecurringTaskRepository(ABC):
    """Storage of recurring task rules and their completions."""

    @abstractmethod
    def load_rules(self, user_id: str) -> List[RecurrenceRule]:
        """All rules owned by the user, oldest first."""

    @abstractmethod
    def load_completions(self, user_id: str, since: date) -> List[CompletionRecord]:
        """The user's completions dated on or after ``since``."""

    @abstractmethod
    def create_rule(self, rule: RecurrenceRule) -> RecurrenceRule:
        """Persist a new rule and return it as stored."""

    @abstractmethod
    def update_rule(self, rule_id: str, changes: Dict[str, Any]) -> None:
        """Apply flat field changes (title, description, frequency, day_of_week, day_of_month)."""

    @abstractmethod
    def delete_rule(self, rule_id: str) -> None:
        """Delete a rule together with its completions."""

    @abstractmethod
    def insert_completion(self, rule_id: str, completed_date: date) -> CompletionRecord:
        """
        Record a completion.

        Raises:
            DuplicateCompletionError: If the (rule, date) pair already exists
        """

    @abstractmethod
    def find_completion(self, rule_id: str, completed_date: date) -> Optional[CompletionRecord]:
        """The stored completion for the pair, if any."""

    @abstractmethod
    def delete_completion(self, completion_id: str) -> bool:
        """Delete a completion by id; False if no such row was stored."""

    @abstractmethod
    def list_user_ids(self) -> List[str]:
        """Every user owning at least one rule."""
