"""
Recurring Task Errors

Exception hierarchy shared by the tracker, the repositories and the API layer.
"""

from typing import Any, Dict, List, Optional


class TrackerError(Exception):
    """Base exception for recurring task errors"""
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class RecurrenceValidationError(TrackerError):
    """A recurrence rule violates its frequency/day invariants."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(
            code="VALIDATION_ERROR",
            message="; ".join(self.errors) or "Invalid recurrence rule",
            details={"errors": self.errors},
        )


class RuleNotFoundError(TrackerError):
    """The rule does not exist for the current user."""

    def __init__(self, rule_id: str):
        super().__init__(
            code="NOT_FOUND",
            message=f"Recurring task {rule_id} not found",
            details={"rule_id": rule_id},
        )


class RepositoryError(TrackerError):
    """Transient persistence failure. Nothing was applied."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, code: str = "REPOSITORY_UNAVAILABLE"):
        super().__init__(code=code, message=message, details=details)


class DuplicateCompletionError(RepositoryError):
    """A completion already exists for the (rule, date) pair."""

    def __init__(self, rule_id: str, completed_date):
        super().__init__(
            message=f"Completion for task {rule_id} on {completed_date} already exists",
            details={"rule_id": rule_id, "completed_date": str(completed_date)},
            code="DUPLICATE_COMPLETION",
        )


class PublishError(Exception):
    """An event could not be handed to the pub/sub sidecar."""
