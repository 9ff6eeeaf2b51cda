"""Recurrence Validator."""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import ValidationError

from app.models.recurrence_rule import (
    DailySchedule,
    Frequency,
    MonthlySchedule,
    RecurrenceRule,
    WeeklySchedule,
)
from app.services.errors import RecurrenceValidationError


class RecurrenceValidator:
    """Validate recurrence rules for recurring tasks."""

    @staticmethod
    def validate_recurrence_pattern(
        frequency: str,
        day_of_week: Optional[int] = None,
        day_of_month: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Validate a flat frequency/day combination.

        Args:
            frequency: Recurrence type (daily, weekly, monthly)
            day_of_week: 0-6 (Sunday-Saturday), weekly rules only
            day_of_month: 1-31, monthly rules only

        Returns:
            Dict with validation result
        """
        result = {
            "valid": True,
            "errors": [],
            "warnings": []
        }

        allowed = [f.value for f in Frequency]
        if frequency not in allowed:
            result["valid"] = False
            result["errors"].append(f"Frequency must be one of: {', '.join(allowed)}")
            return result

        if frequency == Frequency.DAILY.value:
            if day_of_week is not None:
                result["errors"].append("Daily recurrence must not set day_of_week")
            if day_of_month is not None:
                result["errors"].append("Daily recurrence must not set day_of_month")

        elif frequency == Frequency.WEEKLY.value:
            if day_of_week is None:
                result["errors"].append("Weekly recurrence requires day_of_week")
            elif not RecurrenceValidator._is_int_in_range(day_of_week, 0, 6):
                result["errors"].append(f"day_of_week must be an integer between 0 and 6, got: {day_of_week!r}")
            if day_of_month is not None:
                result["errors"].append("Weekly recurrence must not set day_of_month")

        else:
            if day_of_month is None:
                result["errors"].append("Monthly recurrence requires day_of_month")
            elif not RecurrenceValidator._is_int_in_range(day_of_month, 1, 31):
                result["errors"].append(f"day_of_month must be an integer between 1 and 31, got: {day_of_month!r}")
            elif day_of_month > 28:
                result["warnings"].append(
                    f"Day {day_of_month} does not occur every month; shorter months fall due on their last day"
                )
            if day_of_week is not None:
                result["errors"].append("Monthly recurrence must not set day_of_week")

        if result["errors"]:
            result["valid"] = False
        return result

    @staticmethod
    def _is_int_in_range(value: Any, low: int, high: int) -> bool:
        # bool is an int subclass; True must not pass as Monday
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        return low <= value <= high

    @staticmethod
    def validate_title(title: Optional[str]) -> Dict[str, Any]:
        """
        Validate a recurring task title.

        Args:
            title: Title string

        Returns:
            Dict with validation result
        """
        result = {
            "valid": True,
            "errors": [],
            "warnings": []
        }

        if not title or not title.strip():
            result["valid"] = False
            result["errors"].append("Title is required")
        elif len(title) > 200:
            result["valid"] = False
            result["errors"].append("Title exceeds maximum length of 200 characters")

        return result

    @staticmethod
    def build_schedule(frequency: str, day_of_week: Optional[int] = None, day_of_month: Optional[int] = None):
        """
        Convert a flat frequency/day triple into a schedule variant.

        Raises:
            RecurrenceValidationError: If the combination is invalid
        """
        validation = RecurrenceValidator.validate_recurrence_pattern(frequency, day_of_week, day_of_month)
        if not validation["valid"]:
            raise RecurrenceValidationError(validation["errors"])

        if frequency == Frequency.DAILY.value:
            return DailySchedule()
        if frequency == Frequency.WEEKLY.value:
            return WeeklySchedule(day_of_week=day_of_week)
        return MonthlySchedule(day_of_month=day_of_month)

    @staticmethod
    def build_rule(
        *,
        id: str,
        user_id: str,
        title: str,
        description: Optional[str],
        frequency: str,
        day_of_week: Optional[int],
        day_of_month: Optional[int],
        created_at: datetime,
    ) -> RecurrenceRule:
        """
        Build a RecurrenceRule from flat fields, rejecting invariant violations.

        Raises:
            RecurrenceValidationError: If any field is invalid
        """
        errors = list(RecurrenceValidator.validate_title(title)["errors"])
        pattern = RecurrenceValidator.validate_recurrence_pattern(frequency, day_of_week, day_of_month)
        errors.extend(pattern["errors"])
        if errors:
            raise RecurrenceValidationError(errors)

        try:
            return RecurrenceRule(
                id=id,
                user_id=user_id,
                title=title.strip(),
                description=description,
                schedule=RecurrenceValidator.build_schedule(frequency, day_of_week, day_of_month),
                created_at=created_at,
            )
        except ValidationError as e:
            raise RecurrenceValidationError(
                [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            ) from e
