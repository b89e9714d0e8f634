"""Enumerations shared by the lifecycle and Pomodoro engines."""

from enum import Enum as PyEnum


class SessionStatus(str, PyEnum):
    """Lifecycle status of a study session."""

    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SessionType(str, PyEnum):
    """Kind of study session placed on the calendar."""

    STUDY = "study"
    BREAK = "break"
    POMODORO = "pomodoro"
    REVIEW = "review"


class SessionAction(str, PyEnum):
    """Status-changing action requested against a session."""

    START = "start"
    PAUSE = "pause"
    COMPLETE = "complete"
    CANCEL = "cancel"
    RESTART = "restart"
    EXPIRE = "expire"


class PomodoroPhase(str, PyEnum):
    """Segment of a Pomodoro cycle."""

    WORK = "work"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"


# Statuses from which no forward transition exists (restart aside)
RESOLVED_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED})

# Statuses in which start/end time may still be changed
SCHEDULE_EDITABLE_STATUSES = frozenset({SessionStatus.PLANNED, SessionStatus.PAUSED})

# Statuses that occupy a calendar slot for overlap checks
SLOT_HOLDING_STATUSES = frozenset({SessionStatus.PLANNED, SessionStatus.IN_PROGRESS})
