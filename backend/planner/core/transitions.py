"""
Pure lifecycle rules for study sessions.

Every function here is a pure function of its arguments: no store access,
no clock reads. The lifecycle engine feeds them the session it just fetched
and the current time.
"""

from datetime import datetime

from planner.core.errors import InvalidSchedule, TransitionRejected
from planner.core.states import (
    RESOLVED_STATUSES,
    SCHEDULE_EDITABLE_STATUSES,
    SLOT_HOLDING_STATUSES,
    SessionAction,
    SessionStatus,
)
from planner.schemas.sessions import MAX_DURATION_MINUTES, StudySession, duration_minutes

# (action, from_status) -> to_status
TRANSITIONS: dict[tuple[SessionAction, SessionStatus], SessionStatus] = {
    (SessionAction.START, SessionStatus.PLANNED): SessionStatus.IN_PROGRESS,
    (SessionAction.START, SessionStatus.PAUSED): SessionStatus.IN_PROGRESS,
    (SessionAction.PAUSE, SessionStatus.IN_PROGRESS): SessionStatus.PAUSED,
    (SessionAction.COMPLETE, SessionStatus.IN_PROGRESS): SessionStatus.COMPLETED,
    (SessionAction.COMPLETE, SessionStatus.PAUSED): SessionStatus.COMPLETED,
    (SessionAction.CANCEL, SessionStatus.IN_PROGRESS): SessionStatus.CANCELLED,
    (SessionAction.RESTART, SessionStatus.COMPLETED): SessionStatus.PLANNED,
    (SessionAction.EXPIRE, SessionStatus.IN_PROGRESS): SessionStatus.CANCELLED,
}


def is_overdue(session: StudySession, now: datetime) -> bool:
    return session.end_time < now


def is_overdue_and_unresolved(session: StudySession, now: datetime) -> bool:
    """True for sessions whose end has passed while still open (the "missed" indicator)."""
    return session.status not in RESOLVED_STATUSES and session.end_time < now


def can_start(session: StudySession, now: datetime) -> bool:
    """A session can start only from planned/paused and only before its end time."""
    if session.end_time <= now:
        return False
    return (SessionAction.START, session.status) in TRANSITIONS


def can_edit_schedule(session: StudySession) -> bool:
    return session.status in SCHEDULE_EDITABLE_STATUSES


def resolve_transition(
    action: SessionAction,
    session: StudySession,
    now: datetime,
    *,
    confirmed: bool = False,
) -> SessionStatus:
    """
    Return the status a session moves to when `action` is applied at `now`.

    Raises TransitionRejected when the table has no entry for
    (action, session.status) or when the action's precondition fails.
    """
    action = SessionAction(action)
    target = TRANSITIONS.get((action, session.status))
    if target is None:
        raise TransitionRejected(action, session.status)

    if action == SessionAction.START and session.end_time <= now:
        raise TransitionRejected(action, session.status, "session end time has already passed")
    if action == SessionAction.RESTART and not confirmed:
        raise TransitionRejected(action, session.status, "restart requires explicit confirmation")
    if action == SessionAction.EXPIRE and not is_overdue(session, now):
        raise TransitionRejected(action, session.status, "session has not reached its end time")

    return target


def validate_time_range(
    start_time: datetime,
    end_time: datetime,
    session_id: int | None = None,
) -> int:
    """Check a proposed time range and return its duration in minutes."""
    if end_time <= start_time:
        raise InvalidSchedule("end_time must be after start_time", session_id)
    duration = duration_minutes(start_time, end_time)
    if duration < 1:
        raise InvalidSchedule("session must last at least one minute", session_id)
    if duration > MAX_DURATION_MINUTES:
        raise InvalidSchedule("session cannot last longer than 24 hours", session_id)
    return duration


def check_schedule_editable(session: StudySession) -> None:
    if not can_edit_schedule(session):
        raise InvalidSchedule(
            f"cannot edit a session that is {session.status.value}",
            session.id,
        )


def find_overlap(
    start_time: datetime,
    end_time: datetime,
    candidates: list[StudySession],
    *,
    exclude_id: int | None = None,
) -> StudySession | None:
    """
    First slot-holding session overlapping [start_time, end_time).

    Touching ranges (one ends exactly when the other starts) do not overlap.
    """
    for other in candidates:
        if other.id == exclude_id or other.status not in SLOT_HOLDING_STATUSES:
            continue
        if other.start_time < end_time and other.end_time > start_time:
            return other
    return None
