"""Background sweep that cancels in_progress sessions left running past their end time."""

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta

from planner.core.errors import StaleSessionState, TransitionRejected
from planner.core.lifecycle import SessionLifecycle
from planner.core.states import SessionStatus
from planner.core.transitions import is_overdue_and_unresolved
from planner.schemas.sessions import MAX_DURATION_MINUTES, StudySession

logger = logging.getLogger(__name__)

_MAX_SESSION_LENGTH = timedelta(minutes=MAX_DURATION_MINUTES)


class OverdueSweeper:
    """
    Periodically expires overdue in_progress sessions.

    Runs in the server process against the system-of-record store, so a
    session stuck in in_progress is resolved whether or not any client is
    polling. user_id=None sweeps every user.

    Overdue planned/paused sessions are left alone; they surface as
    "missed" through is_overdue_and_unresolved.
    """

    def __init__(
        self,
        lifecycle: SessionLifecycle,
        *,
        user_id: int | None = None,
        interval_seconds: float = 30.0,
        lookback: timedelta = timedelta(hours=48),
    ):
        self.lifecycle = lifecycle
        self.user_id = user_id
        self.interval_seconds = interval_seconds
        self.lookback = lookback
        self.last_error: Exception | None = None
        self.last_swept_at: datetime | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> list[StudySession]:
        """Run one pass and return the sessions that were expired."""
        context = self.lifecycle.context
        now = context.now()
        window_start = now - self.lookback
        if self.last_swept_at is not None:
            # Cover every session that was still running at the previous successful pass
            window_start = min(window_start, self.last_swept_at - _MAX_SESSION_LENGTH)
        candidates = await context.store.list_sessions_in_range(self.user_id, window_start, now)

        expired: list[StudySession] = []
        for session in candidates:
            if session.status != SessionStatus.IN_PROGRESS:
                continue
            if not is_overdue_and_unresolved(session, now):
                continue
            try:
                expired.append(await self.lifecycle.expire(session.id))
            except (TransitionRejected, StaleSessionState) as e:
                # Changed since it was listed; the next pass sees the fresh state
                logger.info("Skipped expiring session %s: %s", session.id, e)

        self.last_swept_at = now
        if expired:
            logger.info("Expired %d overdue session(s)", len(expired))
        return expired

    async def _run(self) -> None:
        while True:
            try:
                await self.sweep_once()
                self.last_error = None
            except Exception as e:
                self.last_error = e
                logger.exception("Overdue sweep failed")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="overdue-sweeper")
        logger.info("Overdue sweeper started (every %.0fs)", self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Overdue sweeper stopped")
