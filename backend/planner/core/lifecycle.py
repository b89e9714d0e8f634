"""
Session lifecycle engine.

Validates status transitions and schedule edits against the rules in
planner.core.transitions, writes accepted changes through the session
store, and keeps the Pomodoro engines of running pomodoro sessions in step
with their session's status.

Key patterns:
1. Every operation re-reads the session from the store before deciding
2. Rejections are raised before any write; nothing is partially applied
3. Side effects (Pomodoro engine, events) run only after the store confirms
"""

import logging
from datetime import datetime, timedelta

from planner.core.context import PlannerContext
from planner.core.errors import InvalidSchedule, TransitionRejected
from planner.core.events import ConfigurationFallback
from planner.core.pomodoro import PomodoroConfig, PomodoroEngine, resolve_config
from planner.core.states import SessionAction, SessionStatus, SessionType
from planner.core.transitions import (
    check_schedule_editable,
    find_overlap,
    resolve_transition,
    validate_time_range,
)
from planner.schemas.sessions import (
    MAX_DURATION_MINUTES,
    SessionDetailsUpdate,
    SessionDraft,
    StatusMetadata,
    StudySession,
)

logger = logging.getLogger(__name__)

EXPIRED_NOTE = "Automatically cancelled - time expired"

# A session overlapping [start, end) can begin at most this long before start
_OVERLAP_LOOKBACK = timedelta(minutes=MAX_DURATION_MINUTES)


class SessionLifecycle:
    """Sole authority over which status changes a study session may go through."""

    def __init__(self, context: PlannerContext):
        self.context = context
        self.default_pomodoro = PomodoroConfig.from_settings(context.settings)
        self._pomodoros: dict[int, PomodoroEngine] = {}

    @property
    def store(self):
        return self.context.store

    def pomodoro(self, session_id: int) -> PomodoroEngine | None:
        """Pomodoro engine bound to a session, if one is running or paused."""
        return self._pomodoros.get(session_id)

    # =========================================================================
    # STATUS TRANSITIONS
    # =========================================================================

    async def _transition(
        self,
        action: SessionAction,
        session_id: int,
        metadata: StatusMetadata | None = None,
        *,
        confirmed: bool = False,
    ) -> tuple[StudySession, StudySession]:
        """Validate and persist one transition. Returns (before, after)."""
        session = await self.store.get_session(session_id)
        try:
            target = resolve_transition(action, session, self.context.now(), confirmed=confirmed)
        except TransitionRejected as e:
            logger.warning("Rejected %s for session %s: %s", action.value, session_id, e)
            self.context.events.on_transition_rejected(e.action, e.current_status)
            raise

        # current_cycle only exists on sessions that carry Pomodoro settings
        if metadata is not None and metadata.current_cycle is not None and session.pomodoro_settings is None:
            metadata = metadata.model_copy(update={"current_cycle": None})

        updated = await self.store.update_session_status(
            session.id,
            target,
            metadata,
            expected_status=session.status,
        )
        logger.info(
            "Session %s: %s -> %s (%s)",
            session.id, session.status.value, updated.status.value, action.value,
        )
        return session, updated

    def _cycle_metadata(self, session_id: int, **values) -> StatusMetadata:
        engine = self._pomodoros.get(session_id)
        if engine is not None:
            values["current_cycle"] = engine.cycle
        return StatusMetadata(**values)

    def _discard_pomodoro(self, session_id: int) -> None:
        engine = self._pomodoros.pop(session_id, None)
        if engine is not None:
            engine.stop()

    async def start(self, session_id: int) -> StudySession:
        """
        Move a planned or paused session to in_progress.

        Rejected once the session's end time has passed. Pomodoro sessions
        get a running engine: a resume continues the paused engine, or, if
        none is held in this process, rebuilds one at the persisted cycle.
        """
        before, session = await self._transition(SessionAction.START, session_id)
        if session.session_type != SessionType.POMODORO:
            return session

        engine = self._pomodoros.get(session.id)
        if before.status == SessionStatus.PAUSED and engine is not None and not engine.stopped:
            engine.resume()
            return session

        cycle = 1
        if before.status == SessionStatus.PAUSED and session.pomodoro_settings is not None:
            cycle = session.pomodoro_settings.current_cycle or 1
        self._pomodoros[session.id] = PomodoroEngine.for_session(
            session,
            events=self.context.events,
            default=self.default_pomodoro,
            cycle=cycle,
        )
        return session

    async def pause(self, session_id: int) -> StudySession:
        metadata = self._cycle_metadata(session_id)
        _, session = await self._transition(SessionAction.PAUSE, session_id, metadata)
        engine = self._pomodoros.get(session.id)
        if engine is not None:
            engine.pause()
        return session

    async def complete(
        self,
        session_id: int,
        notes: str | None = None,
        productivity: int | None = None,
    ) -> StudySession:
        """Mark a session completed, recording optional notes and a 1-5 productivity rating."""
        metadata = self._cycle_metadata(session_id, notes=notes, productivity=productivity)
        _, session = await self._transition(SessionAction.COMPLETE, session_id, metadata)
        self._discard_pomodoro(session.id)
        self.context.events.on_session_completed(session)
        return session

    async def cancel(self, session_id: int) -> StudySession:
        metadata = self._cycle_metadata(session_id)
        _, session = await self._transition(SessionAction.CANCEL, session_id, metadata)
        self._discard_pomodoro(session.id)
        return session

    async def restart(self, session_id: int, *, confirmed: bool = False) -> StudySession:
        """Send a completed session back to planned. Requires confirmed=True."""
        metadata = StatusMetadata(clear_completion=True, current_cycle=0)
        _, session = await self._transition(
            SessionAction.RESTART, session_id, metadata, confirmed=confirmed
        )
        self._discard_pomodoro(session.id)
        return session

    async def expire(self, session_id: int) -> StudySession:
        """Cancel an in_progress session whose end time has passed."""
        metadata = self._cycle_metadata(session_id, notes=EXPIRED_NOTE)
        _, session = await self._transition(SessionAction.EXPIRE, session_id, metadata)
        self._discard_pomodoro(session.id)
        self.context.events.on_session_auto_expired(session)
        return session

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    async def _check_free(
        self,
        user_id: int,
        start_time: datetime,
        end_time: datetime,
        *,
        exclude_id: int | None = None,
    ) -> None:
        candidates = await self.store.list_sessions_in_range(
            user_id, start_time - _OVERLAP_LOOKBACK, end_time
        )
        clash = find_overlap(start_time, end_time, candidates, exclude_id=exclude_id)
        if clash is not None:
            raise InvalidSchedule(
                f"time range overlaps session {clash.id} ({clash.title})",
                exclude_id,
            )

    async def schedule(self, user_id: int, draft: SessionDraft) -> StudySession:
        """Place a new planned session on the user's calendar."""
        validate_time_range(draft.start_time, draft.end_time)
        await self._check_free(user_id, draft.start_time, draft.end_time)
        session = await self.store.create_session(user_id, draft.to_fields())
        logger.info("Scheduled session %s for user %s", session.id, user_id)
        return session

    async def reschedule(
        self,
        session_id: int,
        start_time: datetime,
        end_time: datetime,
    ) -> StudySession:
        """Move or resize a planned/paused session."""
        session = await self.store.get_session(session_id)
        try:
            check_schedule_editable(session)
            validate_time_range(start_time, end_time, session.id)
            await self._check_free(session.user_id, start_time, end_time, exclude_id=session.id)
        except InvalidSchedule as e:
            logger.warning("Rejected schedule change for session %s: %s", session_id, e)
            raise
        return await self.store.update_session_schedule(session.id, start_time, end_time)

    async def edit(self, session_id: int, changes: SessionDetailsUpdate) -> StudySession:
        """Change title, description, color, notes or Pomodoro settings of a planned/paused session."""
        session = await self.store.get_session(session_id)
        check_schedule_editable(session)
        updated = await self.store.update_session_details(session.id, changes)

        engine = self._pomodoros.get(updated.id)
        if engine is not None and changes.pomodoro_settings is not None:
            config, reason = resolve_config(updated.pomodoro_settings, self.default_pomodoro)
            if reason is not None:
                logger.warning("Session %s: %s, using the default configuration", updated.id, reason)
                self.context.events.on_configuration_fallback(
                    ConfigurationFallback(reason=reason, config=config, session_id=updated.id)
                )
            engine.reconfigure(config)
        return updated

    async def delete(self, session_id: int) -> None:
        session = await self.store.get_session(session_id)
        self._discard_pomodoro(session.id)
        await self.store.delete_session(session.id)
        logger.info("Deleted session %s", session.id)
