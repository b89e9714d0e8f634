"""Column values for session updates, shared by the store adapters."""

from datetime import datetime
from typing import Any

from planner.core.states import SessionStatus
from planner.schemas.sessions import SessionDetailsUpdate, StatusMetadata, StudySession


def apply_status(
    session: StudySession,
    status: SessionStatus,
    metadata: StatusMetadata | None,
    now: datetime,
) -> dict[str, Any]:
    """
    Column values for a status change.

    completed_at is stamped on the first completion; clear_completion wipes
    notes, productivity and completed_at.
    """
    values: dict[str, Any] = {"status": status, "updated_at": now}
    if status == SessionStatus.COMPLETED and session.completed_at is None:
        values["completed_at"] = now

    if metadata is None:
        return values
    if metadata.clear_completion:
        values.update(completed_at=None, notes=None, productivity=None)
    if metadata.notes is not None:
        values["notes"] = metadata.notes
    if metadata.productivity is not None:
        values["productivity"] = metadata.productivity
    if metadata.current_cycle is not None and session.pomodoro_settings is not None:
        settings = session.pomodoro_settings.model_dump()
        settings["current_cycle"] = metadata.current_cycle
        values["pomodoro_settings"] = settings
    return values


def apply_details(session: StudySession, changes: SessionDetailsUpdate) -> dict[str, Any]:
    """Column values for a details edit; Pomodoro settings are merged, not replaced."""
    values = changes.model_dump(exclude_unset=True, exclude={"pomodoro_settings"})
    if changes.pomodoro_settings is not None:
        merged = session.pomodoro_settings.model_dump() if session.pomodoro_settings else {}
        merged.update(changes.pomodoro_settings.model_dump(exclude_none=True))
        values["pomodoro_settings"] = merged
    return values
