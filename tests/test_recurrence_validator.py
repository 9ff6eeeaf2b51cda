"""Tests for recurrence rule validation and construction."""
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from app.models.recurrence_rule import (
    CompletionRecord,
    DailySchedule,
    Frequency,
    MonthlySchedule,
    RecurrenceRule,
    WeeklySchedule,
)
from app.services.errors import RecurrenceValidationError
from app.services.recurrence_validator import RecurrenceValidator


def build(**overrides):
    fields = dict(
        id="r1",
        user_id="user-1",
        title="Water plants",
        description=None,
        frequency="daily",
        day_of_week=None,
        day_of_month=None,
        created_at=datetime(2026, 1, 1),
    )
    fields.update(overrides)
    return RecurrenceValidator.build_rule(**fields)


def test_valid_rules_build_the_matching_variant():
    assert isinstance(build().schedule, DailySchedule)

    weekly = build(frequency="weekly", day_of_week=3)
    assert isinstance(weekly.schedule, WeeklySchedule)
    assert weekly.frequency is Frequency.WEEKLY
    assert weekly.day_of_week == 3
    assert weekly.day_of_month is None

    monthly = build(frequency="monthly", day_of_month=31)
    assert isinstance(monthly.schedule, MonthlySchedule)
    assert monthly.day_of_month == 31
    assert monthly.day_of_week is None


@pytest.mark.parametrize(
    "fields, message",
    [
        ({"frequency": "yearly"}, "Frequency must be one of"),
        ({"frequency": "weekly"}, "requires day_of_week"),
        ({"frequency": "monthly"}, "requires day_of_month"),
        ({"frequency": "daily", "day_of_week": 2}, "must not set day_of_week"),
        ({"frequency": "daily", "day_of_month": 2}, "must not set day_of_month"),
        ({"frequency": "weekly", "day_of_week": 1, "day_of_month": 5}, "must not set day_of_month"),
        ({"frequency": "monthly", "day_of_month": 5, "day_of_week": 1}, "must not set day_of_week"),
        ({"frequency": "weekly", "day_of_week": 7}, "between 0 and 6"),
        ({"frequency": "weekly", "day_of_week": True}, "between 0 and 6"),
        ({"frequency": "monthly", "day_of_month": 0}, "between 1 and 31"),
        ({"frequency": "monthly", "day_of_month": 32}, "between 1 and 31"),
        ({"title": "   "}, "Title is required"),
    ],
)
def test_invalid_combinations_are_rejected(fields, message):
    with pytest.raises(RecurrenceValidationError) as excinfo:
        build(**fields)
    assert any(message in error for error in excinfo.value.errors)
    assert excinfo.value.code == "VALIDATION_ERROR"


def test_validation_result_reports_warnings_for_short_month_days():
    result = RecurrenceValidator.validate_recurrence_pattern("monthly", day_of_month=30)
    assert result["valid"] is True
    assert result["warnings"]

    result = RecurrenceValidator.validate_recurrence_pattern("monthly", day_of_month=15)
    assert result == {"valid": True, "errors": [], "warnings": []}


def test_schedule_variants_cannot_be_built_in_invalid_shapes():
    with pytest.raises(ValidationError):
        WeeklySchedule()
    with pytest.raises(ValidationError):
        DailySchedule(day_of_week=1)
    with pytest.raises(ValidationError):
        MonthlySchedule(day_of_month=40)


def test_rules_are_immutable():
    rule = build()
    with pytest.raises(ValidationError):
        rule.title = "Changed"


def test_rule_parses_tagged_schedule_from_plain_data():
    rule = RecurrenceRule.model_validate({
        "id": "r2",
        "user_id": "user-1",
        "title": "Review budget",
        "schedule": {"frequency": "monthly", "day_of_month": 1},
        "created_at": "2026-01-01T00:00:00",
    })
    assert isinstance(rule.schedule, MonthlySchedule)
    assert rule.flat_fields() == {
        "title": "Review budget",
        "description": None,
        "frequency": "monthly",
        "day_of_week": None,
        "day_of_month": 1,
    }


def test_timestamps_are_normalised_to_utc():
    assert build(created_at=datetime(2026, 1, 1, 9, 30)).created_at == datetime(2026, 1, 1, 9, 30, tzinfo=timezone.utc)

    plus_two = timezone(timedelta(hours=2))
    rule = build(created_at=datetime(2026, 1, 1, 1, 0, tzinfo=plus_two))
    assert rule.created_at.tzinfo == timezone.utc
    assert rule.created_at == datetime(2025, 12, 31, 23, 0, tzinfo=timezone.utc)

    record = CompletionRecord(id="c1", recurring_task_id="r1", completed_date="2026-01-01",
                              completed_at=datetime(2026, 1, 1, 7, 0))
    assert record.completed_at.tzinfo == timezone.utc
