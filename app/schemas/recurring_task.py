"""Recurring task schemas for the Recurring Routines API."""
from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List

from app.models.recurrence_rule import CompletionHistoryEntry, RecurrenceRule, TaskStats


class RecurringTaskCreate(BaseModel):
    """Schema for creating a recurring task."""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    frequency: str = Field(..., pattern=r"^(daily|weekly|monthly)$")
    day_of_week: Optional[int] = Field(None, ge=0, le=6, strict=True)  # 0=Sunday, weekly only
    day_of_month: Optional[int] = Field(None, ge=1, le=31, strict=True)  # monthly only


class RecurringTaskUpdate(BaseModel):
    """Schema for partially updating a recurring task; omitted fields are left alone."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    frequency: Optional[str] = Field(None, pattern=r"^(daily|weekly|monthly)$")
    day_of_week: Optional[int] = Field(None, ge=0, le=6, strict=True)
    day_of_month: Optional[int] = Field(None, ge=1, le=31, strict=True)


class RecurringTaskResponse(BaseModel):
    """Schema for recurring task API responses."""
    id: str
    title: str
    description: Optional[str] = None
    frequency: str
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None
    created_at: datetime
    due_today: bool = False
    completed_today: bool = False

    @classmethod
    def from_rule(cls, rule: RecurrenceRule, due_today: bool = False, completed_today: bool = False):
        return cls(
            id=rule.id,
            created_at=rule.created_at,
            due_today=due_today,
            completed_today=completed_today,
            **rule.flat_fields(),
        )


class CompletionStateResponse(BaseModel):
    """Completion state of a task on one date after a toggle or mark."""
    recurring_task_id: str
    date: date
    completed: bool
    created: Optional[bool] = None


class TaskStatsResponse(TaskStats):
    recurring_task_id: str
    window_days: int


class TopStreakEntry(BaseModel):
    recurring_task_id: str
    title: str
    current_streak: int
    longest_streak: int
    success_rate: int


class CompletionHistoryResponse(BaseModel):
    recurring_task_id: str
    days: int
    history: List[CompletionHistoryEntry]
