"""Health check endpoints."""

import os
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from tradermind.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Return service health status."""
    return {"status": "healthy", "service": "tradermind-api", "version": "1.0.0"}


@router.get("/health/live")
async def liveness():
    """Liveness probe: always 200 if the process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Readiness probe: database, artifact storage, analysis client.

    A missing analysis client is reported but does not fail readiness;
    report requests then fail with ANALYSIS_UNAVAILABLE.
    """
    state = request.app.state
    checks: dict[str, str] = {}
    overall_ok = True

    try:
        async with state.db_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"
        overall_ok = False

    storage_dir = Path(getattr(state, "storage_dir", settings.storage_dir))
    if storage_dir.is_dir() and os.access(storage_dir, os.W_OK):
        checks["storage"] = "ok"
    else:
        checks["storage"] = f"error: {storage_dir} is not a writable directory"
        overall_ok = False

    checks["analysis"] = "configured" if getattr(state, "analysis_client", None) is not None else "disabled"

    return JSONResponse(
        status_code=200 if overall_ok else 503,
        content={"status": "ready" if overall_ok else "not_ready", "checks": checks},
    )
