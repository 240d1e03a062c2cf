"""Shared pytest fixtures and configuration."""

import os
from datetime import datetime, timedelta, timezone

# Set test environment variables before the app modules read them
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("ADMIN_INVITE_TOKEN", "invite-123")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session

from taskflow.database import build_engine, create_tables
from taskflow.models import User, UserRole
from taskflow.services.directory import SqlUserDirectory
from taskflow.services.lifecycle import TaskService
from taskflow.services.policy import Actor
from taskflow.services.repository import SqlTaskRepository
from taskflow.services.statistics import StatisticsAggregator

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; ``tick`` moves it forward."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def tick(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs) if kwargs else timedelta(minutes=1)
        return self.now


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repository(session):
    return SqlTaskRepository(session)


@pytest.fixture
def directory(session):
    return SqlUserDirectory(session)


@pytest.fixture
def service(repository, directory, clock):
    return TaskService(repository, directory, clock=clock)


@pytest.fixture
def aggregator(repository, clock):
    return StatisticsAggregator(repository, clock=clock)


def _add_user(session, name, email, role):
    user = User(name=name, email=email, hashed_password="not-a-hash", role=role.value)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def admin_user(session):
    return _add_user(session, "Ada Admin", "ada@example.com", UserRole.ADMIN)


@pytest.fixture
def member_user(session):
    return _add_user(session, "Max Member", "max@example.com", UserRole.MEMBER)


@pytest.fixture
def other_user(session):
    return _add_user(session, "Olga Other", "olga@example.com", UserRole.MEMBER)


@pytest.fixture
def admin(admin_user):
    return Actor.from_user(admin_user)


@pytest.fixture
def member(member_user):
    return Actor.from_user(member_user)


@pytest.fixture
def outsider(other_user):
    return Actor.from_user(other_user)


@pytest.fixture
def make_task(service, admin, clock):
    """Create a task as the admin, one clock minute after the previous one."""

    def _make(**fields):
        payload = {
            "title": "Write report",
            "description": "Quarterly numbers",
            "priority": "medium",
            "assigned_to": [],
        }
        payload.update(fields)
        clock.tick()
        return service.create_task(admin, payload)

    return _make
