"""Structured logging configuration using structlog."""

import logging
import sys
from contextlib import AbstractContextManager

import structlog

# Event keys whose values never reach the log output
_SECRET_KEYS = frozenset({"password", "hashed_password", "authorization", "access_token", "api_key"})

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore", "openai")


def _redact_secrets(logger, method_name, event_dict):
    for key in _SECRET_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Logging level string (debug/info/warning/error).
        json_output: If True, one JSON object per line (production). If False, colored console (dev).
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        _redact_secrets,
    ]

    if json_output:
        # Report names and analysis errors are Chinese text
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
        formatter_processors = [structlog.processors.format_exc_info, renderer]
    else:
        formatter_processors = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *formatter_processors],
        # stdlib records carry their ``extra=`` fields into the event dict
        foreign_pre_chain=[structlog.stdlib.ExtraAdder(), *shared_processors],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(trace_id: str, user_id: str | None = None) -> None:
    """Bind contextual variables to the current async context."""
    ctx = {"trace_id": trace_id}
    if user_id:
        ctx["user_id"] = user_id
    structlog.contextvars.bind_contextvars(**ctx)


def report_log_context(report_id: str) -> AbstractContextManager:
    """Tag every log line emitted inside the block with ``report_id``."""
    return structlog.contextvars.bound_contextvars(report_id=report_id)


def clear_request_context() -> None:
    """Clear bound context variables after a request."""
    structlog.contextvars.clear_contextvars()
