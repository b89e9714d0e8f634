"""Event hooks emitted by the lifecycle and Pomodoro engines."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from planner.core.states import PomodoroPhase, SessionAction, SessionStatus

if TYPE_CHECKING:
    from planner.core.pomodoro import PomodoroConfig
    from planner.schemas.sessions import StudySession


@dataclass(frozen=True)
class ConfigurationFallback:
    """Warning event: Pomodoro settings were unusable and defaults were substituted."""

    reason: str
    config: "PomodoroConfig"
    session_id: int | None = None


class PlannerEvents:
    """
    Listener for engine events. Every hook is a no-op by default.

    Subclass and override the hooks you care about (toasts, sounds,
    notifications); engines call them synchronously after the state change
    they describe has been applied.
    """

    def on_transition_rejected(self, action: SessionAction, current_status: SessionStatus) -> None:
        pass

    def on_phase_complete(self, new_phase: PomodoroPhase, cycle: int) -> None:
        pass

    def on_session_completed(self, session: "StudySession") -> None:
        pass

    def on_session_auto_expired(self, session: "StudySession") -> None:
        pass

    def on_configuration_fallback(self, fallback: ConfigurationFallback) -> None:
        pass
