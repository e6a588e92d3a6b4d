"""JWT Bearer authentication middleware."""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tradermind.logging_config import bind_request_context
from tradermind.services.security import decode_token

_ANONYMOUS = {"sub": "anonymous", "roles": []}


class AuthMiddleware(BaseHTTPMiddleware):
    """Validate a Bearer token if present and attach user info to request.state.

    Routes enforce authentication themselves through ``get_current_user``.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            user_info = self._validate_jwt(auth_header[7:])
        else:
            user_info = dict(_ANONYMOUS)

        request.state.user = user_info
        if user_info.get("sub") not in ("anonymous", ""):
            bind_request_context(getattr(request.state, "trace_id", "unknown"), user_id=user_info["sub"])
        return await call_next(request)

    def _validate_jwt(self, token: str) -> dict:
        try:
            payload = decode_token(token)
        except ValueError:
            return {**_ANONYMOUS, "_auth_error": "invalid_token"}

        if payload.get("type") != "access":
            return {**_ANONYMOUS, "_auth_error": "not_access_token"}

        return {
            "sub": payload.get("sub", ""),
            "roles": payload.get("roles", []),
            "username": payload.get("username", ""),
        }
