"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.database import get_db
from app.main import app


@pytest.mark.asyncio
async def test_health_check_returns_ok(client):
    """Health endpoint should return status ok."""
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


@pytest.mark.asyncio
async def test_health_check_includes_request_id_header(client):
    """Health endpoint should include X-Request-ID in response."""
    response = await client.get("/health")

    assert "X-Request-ID" in response.headers
    assert len(response.headers["X-Request-ID"]) > 0


@pytest.mark.asyncio
async def test_health_check_uses_provided_request_id(client):
    """Health endpoint should echo back provided X-Request-ID."""
    custom_id = "test-request-id-12345"
    response = await client.get("/health", headers={"X-Request-ID": custom_id})

    assert response.headers["X-Request-ID"] == custom_id


def _session_with_tables(*present: str) -> AsyncMock:
    """Session whose to_regclass lookups find only ``present`` tables."""
    session = AsyncMock()

    async def execute(_stmt, params):
        result = MagicMock()
        result.scalar.return_value = params["name"] if params["name"] in present else None
        return result

    session.execute.side_effect = execute
    return session


@pytest.mark.asyncio
async def test_readiness_reports_connected_database(client):
    """Readiness should report a reachable database with every catalog table."""
    session = _session_with_tables("store", "product", "sales")
    app.dependency_overrides[get_db] = lambda: session

    response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "connected"}
    assert session.execute.await_count == 3


@pytest.mark.asyncio
async def test_readiness_reports_missing_tables_as_degraded(client):
    """A reachable database without migrations is degraded."""
    app.dependency_overrides[get_db] = lambda: _session_with_tables("store")

    response = await client.get("/health/ready")

    assert response.json() == {
        "status": "degraded",
        "database": "connected",
        "missing_tables": ["product", "sales"],
    }


@pytest.mark.asyncio
async def test_readiness_reports_disconnected_database(client):
    """Readiness should report an unreachable database as unhealthy."""
    session = AsyncMock()
    session.execute.side_effect = OSError("connection refused")
    app.dependency_overrides[get_db] = lambda: session

    response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "unhealthy", "database": "disconnected"}
