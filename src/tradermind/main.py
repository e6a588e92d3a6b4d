"""FastAPI application factory and lifespan management."""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tradermind.config import settings
from tradermind.db.engine import create_db_engine, create_session_factory
from tradermind.logging_config import configure_logging

# Configure logging at import time
_json_logs = os.environ.get("TRADERMIND_LOCAL", "0") != "1"
configure_logging(log_level=settings.log_level, json_output=_json_logs)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # Auto-create tables for SQLite (local dev, no migrations)
    if "sqlite" in db_url:
        from tradermind.db.base import Base
        import tradermind.db.models  # noqa: F401 register all ORM models

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)

    from tradermind.services.analysis import AnalysisClient
    from tradermind.services.pdf_renderer import FontCache, ReportRenderer
    from tradermind.services.report_pipeline import ReportPolicy

    if settings.openai_api_key:
        app.state.analysis_client = AnalysisClient.from_settings(settings)
    else:
        logger.warning("TRADERMIND_OPENAI_API_KEY not set, report generation will fail with ANALYSIS_UNAVAILABLE")
        app.state.analysis_client = None

    fonts = FontCache(settings.font_dir, settings.font_file_name, settings.font_url)
    app.state.report_renderer = ReportRenderer(fonts)
    app.state.report_policy = ReportPolicy.from_settings(settings)
    app.state.storage_dir = Path(settings.storage_dir)
    app.state.storage_dir.mkdir(parents=True, exist_ok=True)

    logger.info("TraderMind API started (db=%s)", "sqlite" if "sqlite" in db_url else "postgresql")
    yield

    # Shutdown
    if app.state.analysis_client is not None:
        await app.state.analysis_client.close()
    await engine.dispose()
    logger.info("TraderMind API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="TraderMind API",
        version="1.0.0",
        description="Trader questionnaires and AI-assisted personality analysis reports.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "Retry-After", "X-Trace-Id"],
    )

    # Add middleware (order matters: last added = first executed)
    from tradermind.api.middleware.trace_id import TraceIdMiddleware
    from tradermind.api.middleware.auth import AuthMiddleware
    app.add_middleware(AuthMiddleware)
    app.add_middleware(TraceIdMiddleware)

    # Register error handlers
    from tradermind.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    # Prometheus metrics (internal endpoint)
    try:
        from prometheus_fastapi_instrumentator import Instrumentator
        Instrumentator(
            should_group_status_codes=True,
            should_respect_env_var=False,
            excluded_handlers=["/api/v1/health.*", "/metrics"],
        ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    except ImportError:
        logger.debug("prometheus-fastapi-instrumentator not installed, /metrics disabled")

    from tradermind.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
