"""
Logging Configuration

Structured logging setup using structlog.

Connection keys and minted backend tokens pass through the gateway on every
request; the redaction processor masks any event field whose name marks it
as a credential before rendering.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from hubgate.config.settings import settings
from hubgate.core.utils import mask_sensitive_data

SENSITIVE_FIELDS = frozenset(
    {"api_key", "authorization", "token", "backend_token", "plain_key", "secret"}
)


def redact_secrets(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask credential-bearing fields in a log event."""
    for field in SENSITIVE_FIELDS.intersection(event_dict):
        value = event_dict[field]
        event_dict[field] = mask_sensitive_data(value) if isinstance(value, str) else "***"
    return event_dict


def setup_logging() -> None:
    """Configure structured logging for the application."""
    is_dev = settings.APP_ENV in ("development", "local")

    # PrintLoggerFactory has no stdlib logger name, so add_logger_name is omitted
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if is_dev:
        final_processors: list[Processor] = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        final_processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=final_processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # SQLAlchemy, httpx and alembic log through stdlib logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.upper()),
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, defaults to module name

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_context(**kwargs: Any) -> None:
    """Bind key-value pairs to every subsequent log call in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_log_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()


setup_logging()

logger = get_logger("hubgate")
