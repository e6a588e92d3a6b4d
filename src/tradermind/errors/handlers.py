"""FastAPI exception handlers producing the ErrorResponse envelope."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tradermind.config import settings
from tradermind.errors.exceptions import AuthorizationError, TraderMindError
from tradermind.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def _error_body(request: Request, code: str, message: str, details=None) -> dict:
    trace_id = getattr(request.state, "trace_id", "unknown")
    error_response = ErrorResponse(
        schema_version="1.1",
        error=ErrorDetail(
            code=code,
            message=message,
            details=details if settings.expose_error_details else None,
            trace_id=trace_id,
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return error_response.model_dump(mode="json", exclude_none=True)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(TraderMindError)
    async def tradermind_error_handler(request: Request, exc: TraderMindError):
        if isinstance(exc, AuthorizationError):
            user = getattr(request.state, "user", {}) or {}
            logger.warning(
                "access_denied",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "user_sub": user.get("sub", "anonymous"),
                    "user_roles": user.get("roles", []),
                    "reason": str(exc),
                },
            )
        elif exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.details)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.code, exc.message, exc.details),
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body(request, "INTERNAL_ERROR", "服务器错误", str(exc)),
        )
