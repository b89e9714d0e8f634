"""
Session Store boundary.

The store is the system of record for study sessions. The lifecycle engine
decides which changes are legal; the store only persists them. Three
adapters implement this protocol:

- InMemorySessionStore: dict-backed, for embedding and tests
- SqlSessionStore: SQLAlchemy async, used by the host process and the sweep
- HttpSessionStore: httpx client for the planner REST API
"""

from datetime import datetime
from typing import Any, Protocol

from planner.core.states import SessionStatus
from planner.schemas.sessions import SessionDetailsUpdate, StatusMetadata, StudySession


class SessionStore(Protocol):
    """Async persistence operations the planner core relies on."""

    async def get_session(self, session_id: int) -> StudySession:
        """Return the current session. Raises StaleSessionState if it is gone."""
        ...

    async def update_session_status(
        self,
        session_id: int,
        status: SessionStatus,
        metadata: StatusMetadata | None = None,
        *,
        expected_status: SessionStatus | None = None,
    ) -> StudySession:
        """
        Persist a status change.

        When expected_status is given, adapters that can check it atomically
        raise StaleSessionState if the stored status differs.
        """
        ...

    async def update_session_schedule(
        self,
        session_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> StudySession:
        """Persist new start/end times; duration is recomputed."""
        ...

    async def update_session_details(
        self,
        session_id: int,
        changes: SessionDetailsUpdate,
    ) -> StudySession:
        ...

    async def list_sessions_in_range(
        self,
        user_id: int | None,
        start_date: datetime,
        end_date: datetime,
    ) -> list[StudySession]:
        """
        Sessions whose start_time falls inside [start_date, end_date], ordered by start.

        user_id=None lists sessions of every user.
        """
        ...

    async def create_session(self, user_id: int, fields: dict[str, Any]) -> StudySession:
        ...

    async def delete_session(self, session_id: int) -> None:
        ...
