"""Explicitly constructed runtime context shared by the engines."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from planner.config import Settings
from planner.core.events import PlannerEvents
from planner.services.store import SessionStore


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PlannerContext:
    """
    Everything an engine needs from the outside world.

    Build one per application (or per test) and pass it to the engine
    constructors; engines never reach for module-level state.
    """

    store: SessionStore
    settings: Settings
    events: PlannerEvents = field(default_factory=PlannerEvents)
    clock: Callable[[], datetime] = utcnow

    def now(self) -> datetime:
        return self.clock()
