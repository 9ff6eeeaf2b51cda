"""Shared fixtures: an in-memory repository, a SQLite engine and an API client."""
import os
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_SECRET"] = "test-secret"

import pytest
from jose import jwt
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import app.models.recurring_task  # noqa: F401  registers the tables
from app.models.recurrence_rule import CompletionRecord, RecurrenceRule, utc_now
from app.repositories.base import RecurringTaskRepository
from app.services.errors import DuplicateCompletionError, RepositoryError, RuleNotFoundError
from app.services.recurrence_validator import RecurrenceValidator
from app.utils.metrics import MetricsCollector

# A Monday
TODAY = date(2026, 10, 19)
LONG_AGO = datetime(2025, 1, 1, 8, 0, 0, tzinfo=timezone.utc)


class InMemoryRecurringTaskRepository(RecurringTaskRepository):
    """Repository fake; ``fail_next`` makes the named method raise once."""

    def __init__(self):
        self.rules: Dict[str, RecurrenceRule] = {}
        self.completions: Dict[str, Tuple[str, CompletionRecord]] = {}
        self.fail_next: Optional[str] = None
        self.calls: List[str] = []

    def _maybe_fail(self, name: str):
        self.calls.append(name)
        if self.fail_next == name:
            self.fail_next = None
            raise RepositoryError(f"{name} unavailable")

    def load_rules(self, user_id):
        self._maybe_fail("load_rules")
        owned = [r for r in self.rules.values() if r.user_id == user_id]
        return sorted(owned, key=lambda r: r.created_at)

    def load_completions(self, user_id, since):
        self._maybe_fail("load_completions")
        return [
            record for owner, record in self.completions.values()
            if owner == user_id and record.completed_date >= since
        ]

    def create_rule(self, rule):
        self._maybe_fail("create_rule")
        self.rules[rule.id] = rule
        return rule

    def update_rule(self, rule_id, changes):
        self._maybe_fail("update_rule")
        current = self.rules.get(rule_id)
        if current is None:
            raise RuleNotFoundError(rule_id)
        fields = current.flat_fields()
        fields.update(changes)
        self.rules[rule_id] = RecurrenceValidator.build_rule(
            id=current.id, user_id=current.user_id, created_at=current.created_at, **fields
        )

    def delete_rule(self, rule_id):
        self._maybe_fail("delete_rule")
        if rule_id not in self.rules:
            raise RuleNotFoundError(rule_id)
        del self.rules[rule_id]
        self.completions = {
            cid: (owner, rec) for cid, (owner, rec) in self.completions.items()
            if rec.recurring_task_id != rule_id
        }

    def insert_completion(self, rule_id, completed_date):
        self._maybe_fail("insert_completion")
        rule = self.rules.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)
        if self.find_completion(rule_id, completed_date) is not None:
            raise DuplicateCompletionError(rule_id, completed_date)
        return self.add_completion(rule.user_id, rule_id, completed_date)

    def find_completion(self, rule_id, completed_date):
        for _, record in self.completions.values():
            if record.recurring_task_id == rule_id and record.completed_date == completed_date:
                return record
        return None

    def delete_completion(self, completion_id):
        self._maybe_fail("delete_completion")
        return self.completions.pop(completion_id, None) is not None

    def list_user_ids(self):
        return sorted({rule.user_id for rule in self.rules.values()})

    # seeding helpers

    def add_rule(self, user_id="user-1", frequency="daily", title="Stretch", created_at=LONG_AGO, **days):
        rule = RecurrenceValidator.build_rule(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            description=None,
            frequency=frequency,
            day_of_week=days.get("day_of_week"),
            day_of_month=days.get("day_of_month"),
            created_at=created_at,
        )
        self.rules[rule.id] = rule
        return rule

    def add_completion(self, user_id, rule_id, completed_date):
        record = CompletionRecord(
            id=str(uuid.uuid4()),
            recurring_task_id=rule_id,
            completed_date=completed_date,
            completed_at=utc_now(),
        )
        self.completions[record.id] = (user_id, record)
        return record

    def count_for(self, rule_id, completed_date):
        return sum(
            1 for _, rec in self.completions.values()
            if rec.recurring_task_id == rule_id and rec.completed_date == completed_date
        )


def days_before(day: date, *offsets: int) -> List[date]:
    return [day - timedelta(days=n) for n in offsets]


@pytest.fixture
def repo():
    return InMemoryRecurringTaskRepository()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def tracker_factory(repo, metrics):
    from app.services.routine_tracker import RoutineTracker

    def make(user_id="user-1", today=TODAY, **kwargs):
        return RoutineTracker(repo, user_id, lambda: today, metrics=metrics, **kwargs).load()

    return make


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def enforce_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


def make_token(user_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    payload = {"sub": user_id, "email": f"{user_id}@example.com", "exp": utc_now() + expires_in}
    return jwt.encode(payload, "test-secret", algorithm="HS256")


@pytest.fixture
def client(engine):
    from fastapi.testclient import TestClient

    from app.db.config import get_session
    from app.main import app
    from app.routers.recurring_tasks import get_today

    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_today] = lambda: TODAY
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token('user-1')}"}
