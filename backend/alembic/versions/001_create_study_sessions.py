"""Create study_sessions table.

Revision ID: 001_study_sessions
Revises:
Create Date: 2026-10-18

Changes:
- Enums: session_status, session_type
- Table: study_sessions with time range, duration and productivity checks
- Indexes: user/start lookup, range scans for the overdue sweep, status
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_study_sessions"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SESSION_STATUS = ("planned", "in_progress", "paused", "completed", "cancelled")
SESSION_TYPE = ("study", "break", "pomodoro", "review")


def upgrade() -> None:
    op.create_table(
        "study_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=True),
        sa.Column("course_id", sa.Integer(), nullable=True),
        sa.Column("topic_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*SESSION_STATUS, name="session_status"),
            nullable=False,
            server_default="planned",
        ),
        sa.Column(
            "session_type",
            sa.Enum(*SESSION_TYPE, name="session_type"),
            nullable=False,
            server_default="study",
        ),
        sa.Column("color", sa.String(7), nullable=True, server_default="#3B82F6"),
        sa.Column("pomodoro_settings", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("productivity", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("end_time > start_time", name="valid_time_range"),
        sa.CheckConstraint("duration >= 1 AND duration <= 1440", name="valid_duration"),
        sa.CheckConstraint(
            "productivity IS NULL OR (productivity >= 1 AND productivity <= 5)",
            name="valid_productivity",
        ),
    )

    op.create_index("ix_study_sessions_user_id", "study_sessions", ["user_id"])
    op.create_index("ix_study_sessions_plan_id", "study_sessions", ["plan_id"])
    op.create_index("ix_study_sessions_course_id", "study_sessions", ["course_id"])
    op.create_index("ix_study_sessions_topic_id", "study_sessions", ["topic_id"])
    op.create_index("idx_study_sessions_user_start", "study_sessions", ["user_id", "start_time"])
    op.create_index("idx_study_sessions_range", "study_sessions", ["start_time", "end_time"])
    op.create_index("idx_study_sessions_status", "study_sessions", ["status"])


def downgrade() -> None:
    op.drop_index("idx_study_sessions_status", table_name="study_sessions")
    op.drop_index("idx_study_sessions_range", table_name="study_sessions")
    op.drop_index("idx_study_sessions_user_start", table_name="study_sessions")
    op.drop_index("ix_study_sessions_topic_id", table_name="study_sessions")
    op.drop_index("ix_study_sessions_course_id", table_name="study_sessions")
    op.drop_index("ix_study_sessions_plan_id", table_name="study_sessions")
    op.drop_index("ix_study_sessions_user_id", table_name="study_sessions")
    op.drop_table("study_sessions")
    sa.Enum(name="session_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="session_status").drop(op.get_bind(), checkfirst=True)
