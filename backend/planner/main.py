"""
Study Planner host process.

Runs the server-side overdue sweep against the session database and exposes
a health check. Run with: uvicorn planner.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request

from planner.config import get_settings, sanitize_error
from planner.core.context import PlannerContext
from planner.core.lifecycle import SessionLifecycle
from planner.core.sweeper import OverdueSweeper
from planner.db.session import create_engine, create_session_factory
from planner.services.sql_store import SqlSessionStore

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    engine = create_engine(settings)
    store = SqlSessionStore(create_session_factory(engine))
    lifecycle = SessionLifecycle(PlannerContext(store=store, settings=settings))
    sweeper = OverdueSweeper(
        lifecycle,
        interval_seconds=settings.sweep_interval_seconds,
        lookback=timedelta(hours=settings.sweep_lookback_hours),
    )
    app.state.lifecycle = lifecycle
    app.state.sweeper = sweeper
    if settings.sweep_enabled:
        sweeper.start()
    else:
        logger.info("Overdue sweep disabled by configuration")

    yield

    # Shutdown
    await sweeper.stop()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Study session lifecycle and Pomodoro engine host",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Health check endpoint, including the overdue sweeper state."""
    sweeper: OverdueSweeper | None = getattr(request.app.state, "sweeper", None)
    body: dict[str, Any] = {
        "status": "healthy",
        "sweeper": "running" if sweeper is not None and sweeper.running else "stopped",
    }
    if sweeper is not None and sweeper.last_error is not None:
        body["status"] = "degraded"
        body["last_error"] = sanitize_error(sweeper.last_error, generic_message="Overdue sweep failed.")
    return body
