"""Structured logging with structlog.

Every event carries ``service`` and, inside a request, ``request_id``. The
bulk orchestrators bind ``operation`` and ``collection`` with
``structlog.contextvars`` so per-record events from a run can be grouped
without repeating them at each call site.
"""

import logging
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any

import structlog

from app.core.config import get_settings

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

# Store errors can embed whole SQL statements and parameter lists
MAX_LOG_VALUE_LENGTH = 500

EventDict = MutableMapping[str, Any]


def add_request_id(
    _logger: structlog.types.WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Copy the current request id into the event, if there is one."""
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_service_name(
    _logger: structlog.types.WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every event with the configured application name."""
    event_dict.setdefault("service", get_settings().app_name)
    return event_dict


def truncate_long_values(
    _logger: structlog.types.WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Shorten oversized string values, keeping the event name intact."""
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_LOG_VALUE_LENGTH:
            dropped = len(value) - MAX_LOG_VALUE_LENGTH
            event_dict[key] = f"{value[:MAX_LOG_VALUE_LENGTH]}... [{dropped} chars truncated]"
    return event_dict


def configure_logging() -> None:
    """Configure structlog from ``log_level`` and ``log_format`` settings."""
    settings = get_settings()

    if settings.log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            add_request_id,
            add_service_name,
            truncate_long_values,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structlog logger for ``name`` (usually the module's ``__name__``)."""
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger
