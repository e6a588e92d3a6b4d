"""Custom exception classes for the TraderMind API."""


class TraderMindError(Exception):
    """Base exception for TraderMind."""

    def __init__(
        self,
        code: str,
        message: str,
        details=None,
        status_code: int = 500,
        headers: dict[str, str] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        self.headers = headers
        super().__init__(message)


class ValidationError(TraderMindError):
    """Request validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(TraderMindError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class AuthenticationError(TraderMindError):
    """Authentication required or token invalid."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)


class AuthorizationError(TraderMindError):
    """Insufficient permissions or not the resource owner."""

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__("AUTHORIZATION_ERROR", message, status_code=403)


class ConflictError(TraderMindError):
    """Resource state conflict."""

    def __init__(self, message: str):
        super().__init__("CONFLICT", message, status_code=409)


# ── Report pipeline ────────────────────────────────────────────────────────────

class RateLimitedError(TraderMindError):
    """Subject requested a report inside the cool-down window."""

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            "RATE_LIMITED",
            "您最近已经请求过报告，请稍后再试",
            details={"retry_after": retry_after},
            status_code=429,
            headers={"Retry-After": str(retry_after)},
        )


class InsufficientDataError(TraderMindError):
    """Subject has no questionnaire answers."""

    def __init__(self):
        super().__init__("INSUFFICIENT_DATA", "没有足够的问卷回答来生成报告", status_code=400)


class PersistenceError(TraderMindError):
    """The report record could not be written."""

    def __init__(self, details=None):
        super().__init__("PERSISTENCE_ERROR", "报告保存失败", details, status_code=500)


class AnalysisTimeoutError(TraderMindError):
    """The analysis deadline expired before the service answered."""

    def __init__(self, details=None):
        super().__init__("ANALYSIS_TIMEOUT", "AI分析超时", details, status_code=504)


class AnalysisUnavailableError(TraderMindError):
    """The analysis service failed on every attempt."""

    def __init__(self, last_error: BaseException | str | None = None):
        self.last_error = last_error
        details = str(last_error) if last_error is not None else None
        super().__init__("ANALYSIS_UNAVAILABLE", "AI分析服务暂时不可用", details, status_code=500)


class RenderingError(TraderMindError):
    """The report artifact could not be written completely."""

    def __init__(self, details=None):
        super().__init__("RENDERING_ERROR", "报告文件生成失败", details, status_code=500)
