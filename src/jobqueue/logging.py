"""
Structured logging for jobqueue.

Configures structlog once per process and hands out named loggers.

Features:
    - Structured JSON output for log aggregation, coloured console for dev
    - Context propagation (run_id) through contextvars
    - Service-level metadata on every event
    - Defaults taken from :class:`~jobqueue.settings.RunnerSettings`

Examples:
    >>> from jobqueue.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.debug("runner.start", jobs=3, concurrency=2)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from jobqueue.settings import get_settings

_SERVICE_NAME = "jobqueue"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str | None = None,
    json_format: bool | None = None,
    service: str = "jobqueue",
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level; falls back to ``JOBQUEUE_LOG_LEVEL``
        json_format: True for JSON, False for console, None for the
            configured format (auto-detected from the TTY when unset)
        service: Service name included in every event
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper())

    if json_format is None:
        if settings.log_format is not None:
            json_format = settings.log_format == "json"
        else:
            json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


class LogContext:
    """Bind context keys for the duration of a ``with`` / ``async with`` block.

    Example:
        async with LogContext(run_id="abc123"):
            logger.info("runner.start")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._context)
        return self

    def __exit__(self, *args) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *args) -> None:
        self.__exit__(*args)


__all__ = [
    "LogContext",
    "configure_logging",
    "get_logger",
]
