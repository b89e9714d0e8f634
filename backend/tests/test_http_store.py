"""Tests for the REST-backed session store, using an httpx mock transport."""

import json
from datetime import timedelta

import httpx
import pytest

from conftest import NOW
from planner.config import Settings
from planner.core.context import PlannerContext
from planner.core.errors import StaleSessionState
from planner.core.lifecycle import SessionLifecycle
from planner.core.states import SessionStatus, SessionType
from planner.schemas.sessions import (
    CustomCategory,
    PomodoroSettingsPatch,
    SessionDetailsUpdate,
    SessionDraft,
    StatusMetadata,
)
from planner.services.http_store import HttpSessionStore


def remote_session(session_id: int = 1, **overrides) -> dict:
    start = NOW - timedelta(minutes=30)
    payload = {
        "id": session_id,
        "userId": 7,
        "title": "Linear algebra",
        "startTime": start.isoformat(),
        "endTime": (start + timedelta(minutes=60)).isoformat(),
        "duration": 60,
        "status": "planned",
        "sessionType": "pomodoro",
        "color": "#3B82F6",
        "pomodoroSettings": {
            "workDuration": 25,
            "shortBreak": 5,
            "longBreak": 15,
            "cyclesBeforeLongBreak": 4,
            "currentCycle": 0,
        },
    }
    payload.update(overrides)
    return payload


def envelope(**data) -> dict:
    return {"success": True, "data": data}


class FakeApi:
    """Records requests and answers from a dict of sessions."""

    def __init__(self, *sessions: dict):
        self.sessions = {s["id"]: s for s in sessions}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")

        if len(parts) == 1:
            if request.method == "GET":
                return httpx.Response(200, json=envelope(sessions=list(self.sessions.values())))
            body = json.loads(request.content)
            created = {**body, "id": 99, "userId": 7, "status": "planned", "duration": 60}
            self.sessions[99] = created
            return httpx.Response(201, json=envelope(session=created))

        session = self.sessions.get(int(parts[1]))
        if session is None:
            return httpx.Response(404, json={"success": False, "error": "Study session not found"})
        if request.method == "DELETE":
            del self.sessions[session["id"]]
            return httpx.Response(200, json={"success": True, "message": "deleted"})
        if request.method == "PUT":
            body = json.loads(request.content)
            settings = body.pop("pomodoroSettings", None)
            session.update(body)
            if settings:
                session["pomodoroSettings"] = {**session["pomodoroSettings"], **settings}
        return httpx.Response(200, json=envelope(session=session))


def make_store(api: FakeApi) -> HttpSessionStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(api), base_url="http://api.test")
    return HttpSessionStore(client)


async def test_get_session_reads_camel_case():
    store = make_store(FakeApi(remote_session()))

    session = await store.get_session(1)

    assert session.user_id == 7
    assert session.session_type == SessionType.POMODORO
    assert session.start_time == NOW - timedelta(minutes=30)
    assert session.pomodoro_settings.cycles_before_long_break == 4
    await store.aclose()


async def test_missing_session_is_stale():
    store = make_store(FakeApi())

    with pytest.raises(StaleSessionState):
        await store.get_session(5)


async def test_server_errors_propagate():
    store = make_store(FakeApi())
    store.client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        base_url="http://api.test",
    )

    with pytest.raises(httpx.HTTPStatusError):
        await store.get_session(1)


async def test_status_update_sends_metadata():
    api = FakeApi(remote_session(status="in_progress"))
    store = make_store(api)

    session = await store.update_session_status(
        1,
        SessionStatus.PAUSED,
        StatusMetadata(current_cycle=3),
        expected_status=SessionStatus.IN_PROGRESS,
    )

    assert session.status == SessionStatus.PAUSED
    assert session.pomodoro_settings.current_cycle == 3
    put = api.requests[-1]
    assert put.method == "PUT"
    assert json.loads(put.content) == {"status": "paused", "pomodoroSettings": {"currentCycle": 3}}


async def test_status_update_checks_expected_status_first():
    api = FakeApi(remote_session(status="completed"))
    store = make_store(api)

    with pytest.raises(StaleSessionState):
        await store.update_session_status(
            1, SessionStatus.CANCELLED, expected_status=SessionStatus.IN_PROGRESS
        )
    assert [r.method for r in api.requests] == ["GET"]


async def test_status_update_verifies_answer():
    api = FakeApi(remote_session(status="in_progress"))

    def ignore_writes(request):
        if request.method == "PUT":
            return httpx.Response(200, json=envelope(session=api.sessions[1]))
        return api(request)

    store = HttpSessionStore(
        httpx.AsyncClient(transport=httpx.MockTransport(ignore_writes), base_url="http://api.test")
    )

    with pytest.raises(StaleSessionState):
        await store.update_session_status(1, SessionStatus.COMPLETED)


async def test_list_filters_by_user():
    api = FakeApi(remote_session(1), remote_session(2, userId=8))
    store = make_store(api)

    sessions = await store.list_sessions_in_range(7, NOW - timedelta(days=1), NOW)

    assert [s.id for s in sessions] == [1]
    params = api.requests[0].url.params
    assert params["startDate"] == (NOW - timedelta(days=1)).isoformat()
    assert params["endDate"] == NOW.isoformat()


async def test_create_posts_camel_case_payload():
    api = FakeApi()
    store = make_store(api)
    draft = SessionDraft(
        category=CustomCategory(title="Essay outline"),
        start_time=NOW,
        end_time=NOW + timedelta(hours=1),
    )

    session = await store.create_session(7, draft.to_fields())

    assert session.id == 99
    body = json.loads(api.requests[0].content)
    assert body["title"] == "Essay outline"
    assert body["sessionType"] == "study"
    assert body["startTime"] == NOW.isoformat()
    assert "duration" not in body
    assert "pomodoroSettings" not in body


async def test_details_update_and_delete():
    api = FakeApi(remote_session())
    store = make_store(api)

    session = await store.update_session_details(
        1,
        SessionDetailsUpdate(title="Eigenvalues", pomodoro_settings=PomodoroSettingsPatch(work_duration=50)),
    )
    await store.delete_session(1)

    assert session.title == "Eigenvalues"
    assert session.pomodoro_settings.work_duration == 50
    assert json.loads(api.requests[0].content) == {
        "title": "Eigenvalues",
        "pomodoroSettings": {"workDuration": 50},
    }
    with pytest.raises(StaleSessionState):
        await store.delete_session(1)


def test_from_settings_sets_auth_header():
    settings = Settings(
        session_api_url="http://planner.test/api/",
        session_api_token="secret",
        _env_file=None,
    )

    store = HttpSessionStore.from_settings(settings)

    assert store.client.headers["Authorization"] == "Bearer secret"
    assert str(store.client.base_url) == "http://planner.test/api/"


def http_lifecycle(store, settings, events, clock) -> SessionLifecycle:
    return SessionLifecycle(PlannerContext(store=store, settings=settings, events=events, clock=clock))


async def test_restart_clears_notes_and_productivity(settings, events, clock):
    api = FakeApi(remote_session(status="completed", notes="done", productivity=4))
    lifecycle = http_lifecycle(make_store(api), settings, events, clock)

    session = await lifecycle.restart(1, confirmed=True)

    assert session.status == SessionStatus.PLANNED
    assert session.notes is None
    assert session.productivity is None
    assert json.loads(api.requests[-1].content) == {
        "status": "planned",
        "notes": None,
        "productivity": None,
        "pomodoroSettings": {"currentCycle": 0},
    }


async def test_restart_of_plain_session_sends_no_pomodoro_settings(settings, events, clock):
    api = FakeApi(remote_session(status="completed", sessionType="study", pomodoroSettings=None))
    lifecycle = http_lifecycle(make_store(api), settings, events, clock)

    session = await lifecycle.restart(1, confirmed=True)

    assert session.pomodoro_settings is None
    assert "pomodoroSettings" not in json.loads(api.requests[-1].content)
