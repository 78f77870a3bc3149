"""
Structured logging setup using structlog

Provides consistent, machine-readable logs with context.
"""
import logging
import sys

import structlog
from structlog.types import Processor


def setup_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure structured logging for the application.

    Output format:
    - Development: Colored console output with pretty printing
    - Production (json_logs=True): JSON lines for log aggregation
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        renderer: Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route uvicorn / firebase stdlib loggers to stdout at the same level
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
