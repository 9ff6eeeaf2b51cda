"""Recurring task tables for SQLModel."""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, Date, DateTime, ForeignKey, String, UniqueConstraint
from datetime import date, datetime
from typing import List, Optional
import uuid

from app.models.recurrence_rule import utc_now


class RecurringTask(SQLModel, table=True):
    """Recurring task row; users live in the external auth provider."""

    __tablename__ = "recurring_tasks"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    user_id: str = Field(index=True, max_length=255)
    title: str = Field(max_length=200, min_length=1)
    description: Optional[str] = Field(default=None, max_length=1000)
    frequency: str = Field(max_length=20)  # daily, weekly, monthly
    day_of_week: Optional[int] = Field(default=None)  # 0-6 for Sunday-Saturday
    day_of_month: Optional[int] = Field(default=None)  # 1-31
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))

    completions: List["RecurringTaskCompletion"] = Relationship(
        back_populates="recurring_task",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )


class RecurringTaskCompletion(SQLModel, table=True):
    """One completion of a recurring task on a calendar date."""

    __tablename__ = "recurring_task_completions"
    __table_args__ = (
        UniqueConstraint("recurring_task_id", "completed_date", name="uq_recurring_task_completion_date"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    recurring_task_id: str = Field(
        sa_column=Column(String(36), ForeignKey("recurring_tasks.id", ondelete="CASCADE"), index=True, nullable=False)
    )
    user_id: str = Field(index=True, max_length=255)
    completed_date: date = Field(sa_column=Column(Date, nullable=False, index=True))
    completed_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))

    recurring_task: Optional[RecurringTask] = Relationship(back_populates="completions")
