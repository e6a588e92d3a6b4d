"""Health check endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "tradermind-api"
    assert data["version"] == "1.0.0"


@pytest.mark.asyncio
async def test_liveness(client):
    response = await client.get("/api/v1/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


@pytest.mark.asyncio
async def test_readiness_reports_database_and_analysis(client):
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["database"] == "ok"
    assert data["checks"]["storage"] == "ok"
    assert data["checks"]["analysis"] == "configured"


@pytest.mark.asyncio
async def test_readiness_without_analysis_client(app, client):
    app.state.analysis_client = None
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["analysis"] == "disabled"


@pytest.mark.asyncio
async def test_trace_id_is_echoed(client):
    response = await client.get("/api/v1/health", headers={"X-Trace-Id": "trc_test_echo"})
    assert response.headers["X-Trace-Id"] == "trc_test_echo"


@pytest.mark.asyncio
async def test_readiness_fails_without_storage(app, client, tmp_path):
    app.state.storage_dir = tmp_path / "missing"
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["checks"]["storage"].startswith("error")


@pytest.mark.asyncio
async def test_malformed_trace_id_is_replaced(client):
    response = await client.get("/api/v1/health", headers={"X-Trace-Id": "bad id with spaces"})
    assert response.headers["X-Trace-Id"].startswith("trc_")
