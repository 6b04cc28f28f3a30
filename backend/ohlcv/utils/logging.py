"""structlog configuration and per-request log context.

Output is rendered by a stdlib handler on stderr, so stdout stays free for
CLI payloads. Two renderers:
- "json": one JSON object per line
- "console": colored key=value lines for local runs

Context travels through structlog.contextvars: request_context() tags a
whole CLI invocation with a request_id, and SourceResolver binds the
query (subject, interval, days, purpose) for the length of one resolve, so
ingestor and cache events carry it without passing loggers around.
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

LOG_FORMATS = ("json", "console")

# Chatty at INFO (one line per HTTP request); only shown when debugging.
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def request_context(request_id: str | None = None) -> Iterator[str]:
    """Bind a request_id to every event logged inside the block."""
    rid = request_id or new_request_id()
    with structlog.contextvars.bound_contextvars(request_id=rid):
        yield rid


def setup_logging(level: str = "INFO", log_format: str = "json") -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: One of LOG_FORMATS.

    Raises:
        ValueError: unknown level or format.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level {level!r}")
    if log_format not in LOG_FORMATS:
        raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")

    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    transport_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)
