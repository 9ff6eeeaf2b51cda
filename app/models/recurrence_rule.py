"""Recurrence rule and completion record domain models.

A rule's schedule is a tagged variant discriminated on ``frequency``: a weekly
schedule always carries a weekday, a monthly schedule always carries a day of
month, and a daily schedule carries neither.
"""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Timezone-aware UTC timestamp; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Frequency(str, Enum):
    """How often a recurring task comes due."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class DailySchedule(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    frequency: Literal["daily"] = "daily"


class WeeklySchedule(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    frequency: Literal["weekly"] = "weekly"
    day_of_week: int = Field(ge=0, le=6, strict=True)  # 0=Sunday .. 6=Saturday


class MonthlySchedule(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    frequency: Literal["monthly"] = "monthly"
    day_of_month: int = Field(ge=1, le=31, strict=True)


Schedule = Annotated[
    Union[DailySchedule, WeeklySchedule, MonthlySchedule],
    Field(discriminator="frequency"),
]


class RecurrenceRule(BaseModel):
    """Recurring task definition owned by a single user."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    schedule: Schedule
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def created_at_in_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def frequency(self) -> Frequency:
        return Frequency(self.schedule.frequency)

    @property
    def day_of_week(self) -> Optional[int]:
        return getattr(self.schedule, "day_of_week", None)

    @property
    def day_of_month(self) -> Optional[int]:
        return getattr(self.schedule, "day_of_month", None)

    def flat_fields(self) -> dict:
        """Editable fields in their flat (storage/API) shape."""
        return {
            "title": self.title,
            "description": self.description,
            "frequency": self.frequency.value,
            "day_of_week": self.day_of_week,
            "day_of_month": self.day_of_month,
        }


class CompletionRecord(BaseModel):
    """A rule satisfied on one calendar date."""

    model_config = ConfigDict(frozen=True)

    id: str
    recurring_task_id: str
    completed_date: date
    completed_at: datetime  # audit only

    @field_validator("completed_at")
    @classmethod
    def completed_at_in_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class TaskStats(BaseModel):
    """Streak and success-rate metrics for one rule over a window."""

    current_streak: int = Field(ge=0)
    longest_streak: int = Field(ge=0)
    success_rate: int = Field(ge=0, le=100)


class CompletionHistoryEntry(BaseModel):
    date: date
    completed: bool
