"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from planner.config import Settings
from planner.core.context import PlannerContext
from planner.core.events import PlannerEvents
from planner.core.lifecycle import SessionLifecycle
from planner.core.states import SessionStatus, SessionType
from planner.schemas.sessions import PomodoroSettings, StudySession
from planner.services.memory_store import InMemorySessionStore

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = NOW):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingEvents(PlannerEvents):
    """Keeps every emitted event as (name, args) tuples."""

    def __init__(self):
        self.calls: list[tuple] = []

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def on_transition_rejected(self, action, current_status):
        self.calls.append(("transition_rejected", action, current_status))

    def on_phase_complete(self, new_phase, cycle):
        self.calls.append(("phase_complete", new_phase, cycle))

    def on_session_completed(self, session):
        self.calls.append(("session_completed", session))

    def on_session_auto_expired(self, session):
        self.calls.append(("session_auto_expired", session))

    def on_configuration_fallback(self, fallback):
        self.calls.append(("configuration_fallback", fallback))


def make_session(
    session_id: int = 1,
    *,
    user_id: int = 7,
    start: datetime | None = None,
    minutes: int = 60,
    status: SessionStatus = SessionStatus.PLANNED,
    session_type: SessionType = SessionType.STUDY,
    pomodoro: PomodoroSettings | None = None,
    **extra,
) -> StudySession:
    """Session starting 30 minutes before NOW by default, so it is still running."""
    start = start or NOW - timedelta(minutes=30)
    return StudySession(
        id=session_id,
        user_id=user_id,
        title=extra.pop("title", f"Session {session_id}"),
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        duration=minutes,
        status=status,
        session_type=session_type,
        pomodoro_settings=pomodoro,
        **extra,
    )


def pomodoro_settings(**overrides) -> PomodoroSettings:
    values = dict(work_duration=25, short_break=5, long_break=15, cycles_before_long_break=4)
    values.update(overrides)
    return PomodoroSettings(**values)


@pytest.fixture
def settings() -> Settings:
    return Settings(sweep_enabled=False, _env_file=None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def events() -> RecordingEvents:
    return RecordingEvents()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def context(store, settings, events, clock) -> PlannerContext:
    return PlannerContext(store=store, settings=settings, events=events, clock=clock)


@pytest.fixture
def lifecycle(context) -> SessionLifecycle:
    return SessionLifecycle(context)


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the host application."""
    from planner.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
