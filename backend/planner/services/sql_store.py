"""SQLAlchemy-backed session store, the system of record for the host process."""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from planner.core.errors import StaleSessionState
from planner.core.states import SessionStatus
from planner.db.models import StudySessionRecord
from planner.schemas.base import ensure_aware_utc
from planner.schemas.sessions import (
    SessionDetailsUpdate,
    StatusMetadata,
    StudySession,
    duration_minutes,
)
from planner.services.updates import apply_details, apply_status

logger = logging.getLogger(__name__)


def _column_values(values: dict[str, Any]) -> dict[str, Any]:
    """Nested pydantic models become plain dicts for JSON columns."""
    return {
        key: value.model_dump() if isinstance(value, BaseModel) else value
        for key, value in values.items()
    }


class SqlSessionStore:
    """
    Session store over the study_sessions table.

    Each call runs in its own database session and commits before returning.
    Status updates are conditional on the status read in the same call, so a
    concurrent writer makes the update fail with StaleSessionState instead
    of being overwritten.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _load(self, db: AsyncSession, session_id: int) -> StudySessionRecord:
        result = await db.execute(
            select(StudySessionRecord).where(StudySessionRecord.id == session_id)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise StaleSessionState(session_id)
        return record

    async def get_session(self, session_id: int) -> StudySession:
        async with self.session_factory() as db:
            return StudySession.model_validate(await self._load(db, session_id))

    async def update_session_status(
        self,
        session_id: int,
        status: SessionStatus,
        metadata: StatusMetadata | None = None,
        *,
        expected_status: SessionStatus | None = None,
    ) -> StudySession:
        async with self.session_factory() as db:
            record = await self._load(db, session_id)
            current = StudySession.model_validate(record)
            if expected_status is not None and current.status != expected_status:
                raise StaleSessionState(
                    session_id,
                    f"status is {current.status.value}, expected {SessionStatus(expected_status).value}",
                )
            if current.status == status and metadata is None:
                return current

            values = apply_status(current, status, metadata, datetime.now(timezone.utc))
            result = await db.execute(
                update(StudySessionRecord)
                .where(
                    StudySessionRecord.id == session_id,
                    StudySessionRecord.status == current.status,
                )
                .values(**_column_values(values))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await db.rollback()
                logger.warning("Status update for session %s lost a race", session_id)
                raise StaleSessionState(session_id, "session was modified concurrently")

            await db.commit()
            await db.refresh(record)
            return StudySession.model_validate(record)

    async def update_session_schedule(
        self,
        session_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> StudySession:
        start_time = ensure_aware_utc(start_time)
        end_time = ensure_aware_utc(end_time)
        async with self.session_factory() as db:
            record = await self._load(db, session_id)
            record.start_time = start_time
            record.end_time = end_time
            record.duration = duration_minutes(start_time, end_time)
            record.updated_at = datetime.now(timezone.utc)
            await db.commit()
            await db.refresh(record)
            return StudySession.model_validate(record)

    async def update_session_details(
        self,
        session_id: int,
        changes: SessionDetailsUpdate,
    ) -> StudySession:
        async with self.session_factory() as db:
            record = await self._load(db, session_id)
            values = apply_details(StudySession.model_validate(record), changes)
            values["updated_at"] = datetime.now(timezone.utc)
            for key, value in _column_values(values).items():
                setattr(record, key, value)
            await db.commit()
            await db.refresh(record)
            return StudySession.model_validate(record)

    async def list_sessions_in_range(
        self,
        user_id: int | None,
        start_date: datetime,
        end_date: datetime,
    ) -> list[StudySession]:
        query = select(StudySessionRecord).where(
            StudySessionRecord.start_time >= ensure_aware_utc(start_date),
            StudySessionRecord.start_time <= ensure_aware_utc(end_date),
        )
        if user_id is not None:
            query = query.where(StudySessionRecord.user_id == user_id)
        query = query.order_by(StudySessionRecord.start_time.asc())

        async with self.session_factory() as db:
            result = await db.execute(query)
            return [StudySession.model_validate(r) for r in result.scalars()]

    async def create_session(self, user_id: int, fields: dict[str, Any]) -> StudySession:
        values = _column_values(fields)
        values["start_time"] = ensure_aware_utc(values["start_time"])
        values["end_time"] = ensure_aware_utc(values["end_time"])
        async with self.session_factory() as db:
            record = StudySessionRecord(
                user_id=user_id,
                status=SessionStatus.PLANNED,
                **values,
            )
            db.add(record)
            await db.commit()
            await db.refresh(record)
            return StudySession.model_validate(record)

    async def delete_session(self, session_id: int) -> None:
        async with self.session_factory() as db:
            record = await self._load(db, session_id)
            await db.delete(record)
            await db.commit()
