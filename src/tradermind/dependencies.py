"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request

from tradermind.config import settings
from tradermind.errors.exceptions import AuthenticationError, AuthorizationError
from tradermind.services.report_pipeline import ReportPipeline


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


async def get_current_user(request: Request) -> dict:
    """Return the authenticated user dict or raise 401."""
    user = getattr(request.state, "user", {})
    if "_auth_error" in (user or {}):
        raise AuthenticationError(user["_auth_error"])
    if not user or user.get("sub") in ("anonymous", ""):
        raise AuthenticationError("Authentication required")
    return user


def require_role(*roles: str):
    """Return a dependency that enforces one of the given roles."""

    async def _check(user: dict = Depends(get_current_user)) -> dict:
        user_roles = set(user.get("roles", []))
        if not user_roles.intersection(roles):
            raise AuthorizationError(f"Requires one of: {', '.join(roles)}")
        return user

    return _check


def get_report_pipeline(request: Request) -> ReportPipeline:
    """Assemble the pipeline from the long-lived collaborators held in app state.

    The pipeline opens its own short session per stage and never uses the
    request-scoped session from ``get_db``.
    """
    state = request.app.state
    return ReportPipeline(
        session_factory=state.db_session_factory,
        analysis_client=getattr(state, "analysis_client", None),
        renderer=state.report_renderer,
        storage_dir=getattr(state, "storage_dir", settings.storage_dir),
        policy=state.report_policy,
    )


# Type aliases for dependency injection
TraceId = Annotated[str, Depends(get_trace_id)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
Pipeline = Annotated[ReportPipeline, Depends(get_report_pipeline)]
RequireAdmin = Depends(require_role("admin"))
