"""
Pomodoro phase engine.

Runs a work / short break / long break countdown for one in_progress
pomodoro session. The engine owns no timer: the caller drives it with
tick(), from whatever scheduling primitive it has (an asyncio loop, a UI
timer, or a test calling tick() directly).

Phase table, applied when time_remaining reaches zero:

    work,  cycle >= cycles_before_long_break  -> longBreak (cycle unchanged)
    work,  cycle <  cycles_before_long_break  -> shortBreak
    shortBreak                                -> work, cycle + 1
    longBreak                                 -> work, cycle = 1

The engine has no authority over the session's persisted status; after
stop() the caller completes or cancels the session through the lifecycle
engine.
"""

import logging
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from planner.config import Settings
from planner.core.events import ConfigurationFallback, PlannerEvents
from planner.core.states import PomodoroPhase, SessionStatus
from planner.schemas.sessions import PomodoroSettings, StudySession

logger = logging.getLogger(__name__)


class PomodoroConfig(BaseModel):
    """Fully specified Pomodoro configuration. Durations are minutes."""

    model_config = ConfigDict(frozen=True)

    work_duration: int = Field(..., gt=0)
    short_break: int = Field(..., gt=0)
    long_break: int = Field(..., gt=0)
    cycles_before_long_break: int = Field(..., gt=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PomodoroConfig":
        """Fallback configuration taken from application settings, or the built-in default."""
        try:
            return cls(
                work_duration=settings.pomodoro_work_duration,
                short_break=settings.pomodoro_short_break,
                long_break=settings.pomodoro_long_break,
                cycles_before_long_break=settings.pomodoro_cycles_before_long_break,
            )
        except ValidationError:
            logger.warning("Configured Pomodoro defaults are invalid, using 25/5/15/4")
            return DEFAULT_POMODORO_CONFIG


DEFAULT_POMODORO_CONFIG = PomodoroConfig(
    work_duration=25,
    short_break=5,
    long_break=15,
    cycles_before_long_break=4,
)


def resolve_config(
    settings: PomodoroSettings | None,
    default: PomodoroConfig = DEFAULT_POMODORO_CONFIG,
) -> tuple[PomodoroConfig, str | None]:
    """
    Turn persisted settings into a usable configuration.

    Returns (config, reason). reason is None when the settings were valid,
    otherwise it describes why the default was substituted.
    """
    if settings is None:
        return default, "pomodoro settings are missing"
    try:
        config = PomodoroConfig(
            work_duration=settings.work_duration,
            short_break=settings.short_break,
            long_break=settings.long_break,
            cycles_before_long_break=settings.cycles_before_long_break,
        )
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors()})
        return default, f"invalid pomodoro settings: {', '.join(fields)}"
    return config, None


@dataclass(frozen=True)
class PomodoroPhaseState:
    """Read-only view of the engine at one instant."""

    phase: PomodoroPhase
    cycle: int
    time_remaining: int
    running: bool
    stopped: bool


class PomodoroEngine:
    """Work/break countdown bound to a single session."""

    def __init__(
        self,
        config: PomodoroConfig,
        *,
        running: bool = False,
        cycle: int = 1,
        events: PlannerEvents | None = None,
        session_id: int | None = None,
    ):
        self.config = config
        self.events = events or PlannerEvents()
        self.session_id = session_id
        self.phase = PomodoroPhase.WORK
        self.cycle = max(1, cycle)
        self.time_remaining = self.phase_seconds(PomodoroPhase.WORK)
        self.running = running
        self.stopped = False

    @classmethod
    def for_session(
        cls,
        session: StudySession,
        *,
        events: PlannerEvents | None = None,
        default: PomodoroConfig = DEFAULT_POMODORO_CONFIG,
        cycle: int = 1,
    ) -> "PomodoroEngine":
        """Build an engine from a session's persisted settings, falling back to `default`."""
        events = events or PlannerEvents()
        config, reason = resolve_config(session.pomodoro_settings, default)
        if reason is not None:
            logger.warning(
                "Session %s: %s, falling back to %d/%d/%d/%d",
                session.id, reason,
                config.work_duration, config.short_break,
                config.long_break, config.cycles_before_long_break,
            )
            events.on_configuration_fallback(
                ConfigurationFallback(reason=reason, config=config, session_id=session.id)
            )
        return cls(
            config,
            running=session.status == SessionStatus.IN_PROGRESS,
            cycle=cycle,
            events=events,
            session_id=session.id,
        )

    def phase_seconds(self, phase: PomodoroPhase) -> int:
        if phase == PomodoroPhase.SHORT_BREAK:
            return self.config.short_break * 60
        if phase == PomodoroPhase.LONG_BREAK:
            return self.config.long_break * 60
        return self.config.work_duration * 60

    @property
    def completed_work_intervals(self) -> int:
        """Work intervals finished so far, counting the one that led into the current break."""
        if self.phase == PomodoroPhase.WORK:
            return self.cycle - 1
        return self.cycle

    def snapshot(self) -> PomodoroPhaseState:
        return PomodoroPhaseState(
            phase=self.phase,
            cycle=self.cycle,
            time_remaining=self.time_remaining,
            running=self.running,
            stopped=self.stopped,
        )

    def tick(self, delta_seconds: int = 1) -> list[PomodoroPhase]:
        """
        Advance the countdown by `delta_seconds` whole seconds.

        Returns the phases entered during this call, in order. Does nothing
        while paused or after stop(); a listener that pauses the engine from
        on_phase_complete halts the remaining seconds of the same call.
        """
        if delta_seconds < 0:
            raise ValueError("delta_seconds must not be negative")

        entered: list[PomodoroPhase] = []
        for _ in range(delta_seconds):
            if not self.running or self.stopped:
                break
            self.time_remaining -= 1
            if self.time_remaining <= 0:
                entered.append(self._complete_phase())
        return entered

    def _complete_phase(self) -> PomodoroPhase:
        finished = self.phase
        if finished == PomodoroPhase.WORK:
            if self.cycle >= self.config.cycles_before_long_break:
                self.phase = PomodoroPhase.LONG_BREAK
            else:
                self.phase = PomodoroPhase.SHORT_BREAK
        elif finished == PomodoroPhase.SHORT_BREAK:
            self.phase = PomodoroPhase.WORK
            self.cycle += 1
        else:
            self.phase = PomodoroPhase.WORK
            self.cycle = 1

        self.time_remaining = self.phase_seconds(self.phase)
        logger.debug(
            "Session %s: %s finished, entering %s (cycle %d)",
            self.session_id, finished.value, self.phase.value, self.cycle,
        )
        self.events.on_phase_complete(self.phase, self.cycle)
        return self.phase

    def reconfigure(self, config: PomodoroConfig) -> None:
        """
        Switch to new durations without leaving the current phase.

        phase and cycle are kept. time_remaining is capped at the new length
        of the current phase; every later phase starts from the new config.
        """
        if self.stopped:
            raise RuntimeError("Cannot reconfigure a stopped Pomodoro engine")
        self.config = config
        self.time_remaining = min(self.time_remaining, self.phase_seconds(self.phase))

    def pause(self) -> None:
        """Stop ticking. phase and time_remaining are kept exactly."""
        self.running = False

    def resume(self) -> None:
        if self.stopped:
            raise RuntimeError("Cannot resume a stopped Pomodoro engine")
        self.running = True

    def reset(self) -> None:
        """Back to work / cycle 1 / full work duration. The running flag is left as is."""
        if self.stopped:
            raise RuntimeError("Cannot reset a stopped Pomodoro engine")
        self.phase = PomodoroPhase.WORK
        self.cycle = 1
        self.time_remaining = self.phase_seconds(PomodoroPhase.WORK)

    def stop(self) -> None:
        """Terminal: no tick applies after this returns."""
        self.running = False
        self.stopped = True
