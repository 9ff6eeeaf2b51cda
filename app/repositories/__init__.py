"""Persistence adapters for recurring tasks."""

from .base import RecurringTaskRepository
from .sql_repository import SQLModelRecurringTaskRepository

__all__ = ["RecurringTaskRepository", "SQLModelRecurringTaskRepository"]
