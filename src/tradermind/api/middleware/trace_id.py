"""Trace ID middleware for request/response propagation."""

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tradermind.logging_config import bind_request_context, clear_request_context

# Incoming ids end up in logs and error envelopes; anything else is replaced
_TRACE_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def _incoming_trace_id(request: Request) -> str | None:
    candidate = request.headers.get("x-trace-id") or request.headers.get("x-request-id")
    if candidate and _TRACE_ID_RE.match(candidate):
        return candidate
    return None


class TraceIdMiddleware(BaseHTTPMiddleware):
    """Accept a well-formed X-Trace-Id (or X-Request-Id) or mint one; echo it and bind it to logs."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace_id = _incoming_trace_id(request) or f"trc_{uuid.uuid4().hex[:16]}"
        request.state.trace_id = trace_id
        bind_request_context(trace_id)

        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Trace-Id"] = trace_id
        return response
