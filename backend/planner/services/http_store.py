"""
Session store backed by the planner REST API.

Talks to the study-session endpoints of the planner API:

    GET    /study-sessions?startDate=...&endDate=...
    POST   /study-sessions
    GET    /study-sessions/{id}
    PUT    /study-sessions/{id}
    DELETE /study-sessions/{id}

Payloads use camelCase field names and every response is wrapped as
{"success": true, "data": {"session": {...}}} (or "sessions" for lists).

Only 404 is interpreted (as StaleSessionState). Any other HTTP or transport
failure propagates as the httpx exception it is.
"""

import logging
from datetime import datetime
from typing import Any

import httpx
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from planner.config import Settings
from planner.core.errors import StaleSessionState
from planner.core.states import SessionStatus
from planner.schemas.sessions import (
    PomodoroSettings,
    SessionDetailsUpdate,
    StatusMetadata,
    StudySession,
)

logger = logging.getLogger(__name__)

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RemotePomodoroSettings(PomodoroSettings):
    model_config = _CAMEL


class RemoteStudySession(StudySession):
    """StudySession as serialized by the REST API."""

    model_config = _CAMEL

    pomodoro_settings: RemotePomodoroSettings | None = None

    def to_session(self) -> StudySession:
        return StudySession.model_validate(self.model_dump())


def _camel_payload(values: dict[str, Any]) -> dict[str, Any]:
    payload = {}
    for key, value in values.items():
        if isinstance(value, dict):
            value = _camel_payload(value)
        elif isinstance(value, datetime):
            value = value.isoformat()
        payload[to_camel(key)] = value
    return payload


class HttpSessionStore:
    """Session store that delegates persistence to the remote planner API."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpSessionStore":
        headers = {"Accept": "application/json"}
        if settings.session_api_token:
            headers["Authorization"] = f"Bearer {settings.session_api_token}"
        client = httpx.AsyncClient(
            base_url=settings.session_api_url.rstrip("/"),
            headers=headers,
            timeout=settings.session_api_timeout_seconds,
        )
        return cls(client)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        session_id: int | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        response = await self.client.request(method, url, **kwargs)
        if response.status_code == httpx.codes.NOT_FOUND and session_id is not None:
            raise StaleSessionState(session_id)
        response.raise_for_status()
        if not response.content:
            return {}
        return response.json().get("data") or {}

    async def _session(self, method: str, session_id: int | None, url: str, **kwargs: Any) -> StudySession:
        data = await self._request(method, url, session_id, **kwargs)
        return RemoteStudySession.model_validate(data["session"]).to_session()

    async def get_session(self, session_id: int) -> StudySession:
        return await self._session("GET", session_id, f"/study-sessions/{session_id}")

    async def update_session_status(
        self,
        session_id: int,
        status: SessionStatus,
        metadata: StatusMetadata | None = None,
        *,
        expected_status: SessionStatus | None = None,
    ) -> StudySession:
        """
        PUT the new status.

        The API has no conditional update, so expected_status is checked
        against a fresh read first and the returned status is verified.
        completed_at is cleared server-side only if the API supports it.
        """
        if expected_status is not None:
            current = await self.get_session(session_id)
            if current.status != expected_status:
                raise StaleSessionState(
                    session_id,
                    f"status is {current.status.value}, expected {SessionStatus(expected_status).value}",
                )

        body: dict[str, Any] = {"status": SessionStatus(status).value}
        if metadata is not None:
            if metadata.clear_completion:
                body["notes"] = None
                body["productivity"] = None
            if metadata.notes is not None:
                body["notes"] = metadata.notes
            if metadata.productivity is not None:
                body["productivity"] = metadata.productivity
            if metadata.current_cycle is not None:
                body["pomodoroSettings"] = {"currentCycle": metadata.current_cycle}

        session = await self._session("PUT", session_id, f"/study-sessions/{session_id}", json=body)
        if session.status != status:
            raise StaleSessionState(
                session_id,
                f"store answered with status {session.status.value}",
            )
        return session

    async def update_session_schedule(
        self,
        session_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> StudySession:
        body = {"startTime": start_time.isoformat(), "endTime": end_time.isoformat()}
        return await self._session("PUT", session_id, f"/study-sessions/{session_id}", json=body)

    async def update_session_details(
        self,
        session_id: int,
        changes: SessionDetailsUpdate,
    ) -> StudySession:
        body = _camel_payload(changes.model_dump(exclude_unset=True, exclude_none=True))
        return await self._session("PUT", session_id, f"/study-sessions/{session_id}", json=body)

    async def list_sessions_in_range(
        self,
        user_id: int | None,
        start_date: datetime,
        end_date: datetime,
    ) -> list[StudySession]:
        # The API scopes results to the authenticated user; user_id is only used for filtering
        data = await self._request(
            "GET",
            "/study-sessions",
            params={"startDate": start_date.isoformat(), "endDate": end_date.isoformat()},
        )
        sessions = [
            RemoteStudySession.model_validate(raw).to_session()
            for raw in data.get("sessions", [])
        ]
        if user_id is not None:
            sessions = [s for s in sessions if s.user_id == user_id]
        return sessions

    async def create_session(self, user_id: int, fields: dict[str, Any]) -> StudySession:
        values = {k: v for k, v in fields.items() if v is not None and k != "duration"}
        if values.get("pomodoro_settings") is not None:
            values["pomodoro_settings"] = values["pomodoro_settings"].model_dump()
        values["session_type"] = values["session_type"].value
        session = await self._session("POST", None, "/study-sessions", json=_camel_payload(values))
        logger.debug("Created remote session %s for user %s", session.id, user_id)
        return session

    async def delete_session(self, session_id: int) -> None:
        await self._request("DELETE", f"/study-sessions/{session_id}", session_id)
