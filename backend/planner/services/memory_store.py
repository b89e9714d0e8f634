"""Dict-backed session store for embedding the engines without a database."""

from datetime import datetime, timezone
from itertools import count
from typing import Any

from planner.core.errors import StaleSessionState
from planner.core.states import SessionStatus
from planner.schemas.sessions import (
    SessionDetailsUpdate,
    StatusMetadata,
    StudySession,
    duration_minutes,
)
from planner.services.updates import apply_details, apply_status


class InMemorySessionStore:
    """Session store kept in a dict. Not shared across processes."""

    def __init__(self, sessions: list[StudySession] | None = None):
        self._sessions: dict[int, StudySession] = {}
        self._ids = count(1)
        for session in sessions or []:
            self._sessions[session.id] = session
        if self._sessions:
            self._ids = count(max(self._sessions) + 1)

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _require(self, session_id: int) -> StudySession:
        session = self._sessions.get(session_id)
        if session is None:
            raise StaleSessionState(session_id)
        return session

    def _replace(self, session: StudySession, values: dict[str, Any]) -> StudySession:
        # Re-validate so invariants hold on every stored copy
        updated = StudySession.model_validate({**session.model_dump(), **values})
        self._sessions[session.id] = updated
        return updated

    async def get_session(self, session_id: int) -> StudySession:
        return self._require(session_id)

    async def update_session_status(
        self,
        session_id: int,
        status: SessionStatus,
        metadata: StatusMetadata | None = None,
        *,
        expected_status: SessionStatus | None = None,
    ) -> StudySession:
        session = self._require(session_id)
        if expected_status is not None and session.status != expected_status:
            raise StaleSessionState(
                session_id,
                f"status is {session.status.value}, expected {SessionStatus(expected_status).value}",
            )
        if session.status == status and metadata is None:
            return session
        return self._replace(session, apply_status(session, status, metadata, self._now()))

    async def update_session_schedule(
        self,
        session_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> StudySession:
        session = self._require(session_id)
        return self._replace(
            session,
            {
                "start_time": start_time,
                "end_time": end_time,
                "duration": duration_minutes(start_time, end_time),
                "updated_at": self._now(),
            },
        )

    async def update_session_details(
        self,
        session_id: int,
        changes: SessionDetailsUpdate,
    ) -> StudySession:
        session = self._require(session_id)
        values = apply_details(session, changes)
        values["updated_at"] = self._now()
        return self._replace(session, values)

    async def list_sessions_in_range(
        self,
        user_id: int | None,
        start_date: datetime,
        end_date: datetime,
    ) -> list[StudySession]:
        found = [
            s for s in self._sessions.values()
            if (user_id is None or s.user_id == user_id)
            and start_date <= s.start_time <= end_date
        ]
        return sorted(found, key=lambda s: s.start_time)

    async def create_session(self, user_id: int, fields: dict[str, Any]) -> StudySession:
        now = self._now()
        session = StudySession.model_validate(
            {
                **fields,
                "id": next(self._ids),
                "user_id": user_id,
                "status": SessionStatus.PLANNED,
                "created_at": now,
                "updated_at": now,
            }
        )
        self._sessions[session.id] = session
        return session

    async def delete_session(self, session_id: int) -> None:
        self._require(session_id)
        del self._sessions[session_id]
