"""Errors raised by the session lifecycle core."""

from planner.core.states import SessionAction, SessionStatus


class PlannerError(Exception):
    """Base class for every error raised by the planner core."""


class TransitionRejected(PlannerError):
    """A requested status change is not allowed from the current status."""

    def __init__(
        self,
        action: SessionAction,
        current_status: SessionStatus,
        reason: str | None = None,
    ) -> None:
        self.action = SessionAction(action)
        self.current_status = SessionStatus(current_status)
        self.reason = reason
        message = f"Cannot {self.action.value} a session that is {self.current_status.value}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidSchedule(PlannerError):
    """A schedule edit is not allowed or produces an invalid time range."""

    def __init__(self, message: str, session_id: int | None = None) -> None:
        self.session_id = session_id
        super().__init__(message)


class StaleSessionState(PlannerError):
    """
    The session store no longer agrees with the caller's view of a session.

    Raised when the session was deleted or when its status changed under the
    caller. The caller is expected to re-fetch and decide again.
    """

    def __init__(self, session_id: int, reason: str = "session no longer exists") -> None:
        self.session_id = session_id
        self.reason = reason
        super().__init__(f"Session {session_id}: {reason}")
