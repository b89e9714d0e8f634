"""Tests for the host process endpoints."""

from httpx import AsyncClient


async def test_health_check(client: AsyncClient):
    """Health reports the sweeper as stopped when the lifespan has not run."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "sweeper": "stopped"}


async def test_health_reports_sweep_errors(client: AsyncClient):
    from planner.main import app

    class FailedSweeper:
        running = True
        last_error = ConnectionError("connection refused")

    app.state.sweeper = FailedSweeper()
    try:
        response = await client.get("/health")
    finally:
        del app.state.sweeper

    body = response.json()
    assert body["status"] == "degraded"
    assert body["sweeper"] == "running"
    assert "last_error" in body
