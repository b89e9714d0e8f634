"""
SQLAlchemy 2.0 models for the study planner.

Uses modern declarative syntax with Mapped[] type annotations. Column types
are dialect-neutral so the same model runs on PostgreSQL and SQLite.

user_id, plan_id, course_id and topic_id reference tables owned by the
wider application (accounts, plans, course catalog); they are stored as
plain indexed integers here.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from planner.core.states import SessionStatus, SessionType
from planner.db.base import Base


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class StudySessionRecord(Base):
    """A scheduled block of study time with its lifecycle status."""

    __tablename__ = "study_sessions"
    __table_args__ = (
        Index("idx_study_sessions_user_start", "user_id", "start_time"),
        Index("idx_study_sessions_range", "start_time", "end_time"),
        Index("idx_study_sessions_status", "status"),
        CheckConstraint("end_time > start_time", name="valid_time_range"),
        CheckConstraint("duration >= 1 AND duration <= 1440", name="valid_duration"),
        CheckConstraint(
            "productivity IS NULL OR (productivity >= 1 AND productivity <= 5)",
            name="valid_productivity",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    plan_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    course_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    topic_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    status: Mapped[SessionStatus] = mapped_column(
        SAEnum(SessionStatus, name="session_status", values_callable=_enum_values),
        nullable=False,
        default=SessionStatus.PLANNED,
    )
    session_type: Mapped[SessionType] = mapped_column(
        SAEnum(SessionType, name="session_type", values_callable=_enum_values),
        nullable=False,
        default=SessionType.STUDY,
    )
    color: Mapped[Optional[str]] = mapped_column(String(7), nullable=True, default="#3B82F6")
    pomodoro_settings: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    productivity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 1-5
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
