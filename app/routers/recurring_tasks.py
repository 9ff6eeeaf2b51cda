"""Recurring task router for the Recurring Routines API."""
from fastapi import APIRouter, Depends, Query, Response, status
from typing import List, Optional
from datetime import date

from app import config
from app.schemas.recurring_task import (
    CompletionHistoryResponse,
    CompletionStateResponse,
    RecurringTaskCreate,
    RecurringTaskResponse,
    RecurringTaskUpdate,
    TaskStatsResponse,
    TopStreakEntry,
)
from app.repositories.sql_repository import SQLModelRecurringTaskRepository
from app.services.routine_tracker import RoutineTracker
from app.middleware.auth import verify_user_access
from app.db.config import get_session
from sqlmodel import Session

router = APIRouter(tags=["Recurring Tasks"])  # No prefix since main.py adds /api prefix


def get_today() -> date:
    """Dependency for the current calendar date."""
    return config.today()


def get_tracker(
    user_id: str = Depends(verify_user_access),
    session: Session = Depends(get_session),
    today: date = Depends(get_today),
) -> RoutineTracker:
    """Dependency for a loaded RoutineTracker of the authenticated user."""
    tracker = RoutineTracker(
        SQLModelRecurringTaskRepository(session),
        user_id,
        lambda: today,
        window_days=config.STATS_WINDOW_DAYS,
        history_days=config.HISTORY_DAYS,
        lookback_days=config.STREAK_LOOKBACK_DAYS,
        tz=config.APP_TIMEZONE,
    )
    return tracker.load()


def _response(tracker: RoutineTracker, rule) -> RecurringTaskResponse:
    return RecurringTaskResponse.from_rule(
        rule,
        due_today=tracker.is_task_due_today(rule),
        completed_today=tracker.is_task_completed_today(rule.id),
    )


@router.get("/{user_id}/recurring-tasks", response_model=List[RecurringTaskResponse])
async def list_recurring_tasks(tracker: RoutineTracker = Depends(get_tracker)):
    """List the user's recurring tasks with today's due/completed state."""
    return [_response(tracker, rule) for rule in tracker.rules]


@router.post("/{user_id}/recurring-tasks", response_model=RecurringTaskResponse, status_code=status.HTTP_201_CREATED)
async def create_recurring_task(
    task_data: RecurringTaskCreate,
    tracker: RoutineTracker = Depends(get_tracker),
):
    """Create a recurring task (daily, weekly on a weekday, monthly on a day)."""
    rule = tracker.create_rule(
        title=task_data.title,
        description=task_data.description,
        frequency=task_data.frequency,
        day_of_week=task_data.day_of_week,
        day_of_month=task_data.day_of_month,
    )
    return _response(tracker, rule)


@router.get("/{user_id}/recurring-tasks/due-today", response_model=List[RecurringTaskResponse])
async def list_due_today(tracker: RoutineTracker = Depends(get_tracker)):
    """Recurring tasks due today."""
    return [
        RecurringTaskResponse.from_rule(rule, due_today=True, completed_today=completed)
        for rule, completed in tracker.due_today()
    ]


@router.get("/{user_id}/recurring-tasks/top-streaks", response_model=List[TopStreakEntry])
async def top_streaks(
    tracker: RoutineTracker = Depends(get_tracker),
    limit: int = Query(5, ge=1, le=50, description="Number of tasks to return"),
    window_days: Optional[int] = Query(None, ge=1, le=365, description="Stats window in days"),
):
    """Recurring tasks ranked by current streak."""
    return [
        TopStreakEntry(recurring_task_id=rule.id, title=rule.title, **stats.model_dump())
        for rule, stats in tracker.top_streaks(limit=limit, window_days=window_days)
    ]


@router.get("/{user_id}/recurring-tasks/{task_id}", response_model=RecurringTaskResponse)
async def get_recurring_task(task_id: str, tracker: RoutineTracker = Depends(get_tracker)):
    """Get a specific recurring task by ID."""
    return _response(tracker, tracker.get_rule(task_id))


@router.patch("/{user_id}/recurring-tasks/{task_id}", response_model=RecurringTaskResponse)
async def update_recurring_task(
    task_id: str,
    task_data: RecurringTaskUpdate,
    tracker: RoutineTracker = Depends(get_tracker),
):
    """Update a recurring task; only fields present in the body change."""
    rule = tracker.update_rule(task_id, **task_data.model_dump(exclude_unset=True))
    return _response(tracker, rule)


@router.delete("/{user_id}/recurring-tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recurring_task(task_id: str, tracker: RoutineTracker = Depends(get_tracker)):
    """Delete a recurring task and its completion history."""
    tracker.delete_rule(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{user_id}/recurring-tasks/{task_id}/completions/{completed_date}/toggle", response_model=CompletionStateResponse)
async def toggle_completion(
    task_id: str,
    completed_date: date,
    tracker: RoutineTracker = Depends(get_tracker),
):
    """Toggle completion of a recurring task on a date."""
    completed = tracker.toggle_completion(task_id, completed_date)
    return CompletionStateResponse(recurring_task_id=task_id, date=completed_date, completed=completed)


@router.post("/{user_id}/recurring-tasks/{task_id}/complete-today", response_model=CompletionStateResponse)
async def complete_today(task_id: str, tracker: RoutineTracker = Depends(get_tracker)):
    """Mark a recurring task done for today; repeating the call changes nothing."""
    created = tracker.mark_completed(task_id)
    return CompletionStateResponse(recurring_task_id=task_id, date=tracker.today(), completed=True, created=created)


@router.get("/{user_id}/recurring-tasks/{task_id}/stats", response_model=TaskStatsResponse)
async def get_task_stats(
    task_id: str,
    tracker: RoutineTracker = Depends(get_tracker),
    window_days: Optional[int] = Query(None, ge=1, le=365, description="Stats window in days"),
):
    """Current streak, longest streak and success rate of a recurring task."""
    window = window_days or tracker.window_days
    stats = tracker.get_task_stats(task_id, window)
    return TaskStatsResponse(recurring_task_id=task_id, window_days=window, **stats.model_dump())


@router.get("/{user_id}/recurring-tasks/{task_id}/history", response_model=CompletionHistoryResponse)
async def get_completion_history(
    task_id: str,
    tracker: RoutineTracker = Depends(get_tracker),
    days: Optional[int] = Query(None, ge=1, le=90, description="Number of days, ending today"),
):
    """Day-by-day completion history, oldest first."""
    tracker.get_rule(task_id)
    length = days or tracker.history_days
    return CompletionHistoryResponse(
        recurring_task_id=task_id,
        days=length,
        history=tracker.get_completion_history(task_id, length),
    )
