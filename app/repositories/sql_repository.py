"""SQLModel implementation of the recurring task repository."""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.models.recurrence_rule import CompletionRecord, RecurrenceRule, utc_now
from app.models.recurring_task import RecurringTask, RecurringTaskCompletion
from app.repositories.base import RecurringTaskRepository
from app.services.errors import (
    DuplicateCompletionError,
    RecurrenceValidationError,
    RepositoryError,
    RuleNotFoundError,
)
from app.services.recurrence_validator import RecurrenceValidator

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "frequency", "day_of_week", "day_of_month")


def row_to_rule(row: RecurringTask) -> RecurrenceRule:
    return RecurrenceValidator.build_rule(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
        frequency=row.frequency,
        day_of_week=row.day_of_week,
        day_of_month=row.day_of_month,
        created_at=row.created_at,
    )


def row_to_completion(row: RecurringTaskCompletion) -> CompletionRecord:
    return CompletionRecord(
        id=row.id,
        recurring_task_id=row.recurring_task_id,
        completed_date=row.completed_date,
        completed_at=row.completed_at,
    )


class SQLModelRecurringTaskRepository(RecurringTaskRepository):
    """Repository backed by a SQLModel session."""

    def __init__(self, session: Session):
        self.session = session

    def _fail(self, action: str, error: SQLAlchemyError) -> RepositoryError:
        self.session.rollback()
        logger.error(f"Failed to {action}: {str(error)}")
        return RepositoryError(f"Failed to {action}", details={"error": str(error)})

    def load_rules(self, user_id: str) -> List[RecurrenceRule]:
        statement = (
            select(RecurringTask)
            .where(RecurringTask.user_id == user_id)
            .order_by(RecurringTask.created_at.asc())
        )
        try:
            rows = list(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            raise self._fail("load recurring tasks", e)

        rules = []
        for row in rows:
            try:
                rules.append(row_to_rule(row))
            except RecurrenceValidationError as e:
                logger.warning(f"Skipping invalid recurring task {row.id}: {e.message}")
        return rules

    def load_completions(self, user_id: str, since: date) -> List[CompletionRecord]:
        statement = (
            select(RecurringTaskCompletion)
            .where(RecurringTaskCompletion.user_id == user_id)
            .where(RecurringTaskCompletion.completed_date >= since)
            .order_by(RecurringTaskCompletion.completed_date.asc())
        )
        try:
            return [row_to_completion(row) for row in self.session.exec(statement).all()]
        except SQLAlchemyError as e:
            raise self._fail("load completions", e)

    def create_rule(self, rule: RecurrenceRule) -> RecurrenceRule:
        row = RecurringTask(
            id=rule.id,
            user_id=rule.user_id,
            created_at=rule.created_at,
            updated_at=rule.created_at,
            **rule.flat_fields(),
        )
        try:
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
        except SQLAlchemyError as e:
            raise self._fail("create recurring task", e)
        return row_to_rule(row)

    def _get_row(self, rule_id: str) -> RecurringTask:
        row = self.session.get(RecurringTask, rule_id)
        if row is None:
            raise RuleNotFoundError(rule_id)
        return row

    def update_rule(self, rule_id: str, changes: Dict[str, Any]) -> None:
        try:
            row = self._get_row(rule_id)
            for key, value in changes.items():
                if key in EDITABLE_FIELDS:
                    setattr(row, key, value)
            row.updated_at = utc_now()
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._fail("update recurring task", e)

    def delete_rule(self, rule_id: str) -> None:
        try:
            row = self._get_row(rule_id)
            # explicit so SQLite without foreign_keys=ON behaves like PostgreSQL
            completions = self.session.exec(
                select(RecurringTaskCompletion).where(RecurringTaskCompletion.recurring_task_id == rule_id)
            ).all()
            for completion in completions:
                self.session.delete(completion)
            self.session.flush()
            self.session.delete(row)
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete recurring task", e)

    def insert_completion(self, rule_id: str, completed_date: date) -> CompletionRecord:
        try:
            owner = self._get_row(rule_id)
            row = RecurringTaskCompletion(
                recurring_task_id=rule_id,
                user_id=owner.user_id,
                completed_date=completed_date,
                completed_at=utc_now(),
            )
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
        except IntegrityError as e:
            self.session.rollback()
            # only an existing (rule, date) row makes this a duplicate
            if self.find_completion(rule_id, completed_date) is not None:
                raise DuplicateCompletionError(rule_id, completed_date)
            if self.session.get(RecurringTask, rule_id) is None:
                raise RuleNotFoundError(rule_id)
            raise self._fail("record completion", e)
        except SQLAlchemyError as e:
            raise self._fail("record completion", e)
        return row_to_completion(row)

    def find_completion(self, rule_id: str, completed_date: date) -> Optional[CompletionRecord]:
        statement = (
            select(RecurringTaskCompletion)
            .where(RecurringTaskCompletion.recurring_task_id == rule_id)
            .where(RecurringTaskCompletion.completed_date == completed_date)
        )
        try:
            row = self.session.exec(statement).first()
        except SQLAlchemyError as e:
            raise self._fail("find completion", e)
        return row_to_completion(row) if row else None

    def delete_completion(self, completion_id: str) -> bool:
        statement = (
            select(RecurringTaskCompletion)
            .where(RecurringTaskCompletion.id == completion_id)
            .execution_options(populate_existing=True)
        )
        try:
            row = self.session.exec(statement).first()
            if row is None:
                return False
            self.session.delete(row)
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._fail("remove completion", e)
        return True

    def list_user_ids(self) -> List[str]:
        statement = select(RecurringTask.user_id).distinct().order_by(RecurringTask.user_id)
        try:
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            raise self._fail("list users", e)
