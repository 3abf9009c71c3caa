"""
Structured logging configuration using structlog.

The gate logs one debug event per stage and one info event per verdict,
so a run can be traced document by document. Logs go to stderr; stdout
is left to CLI output (e.g. JSON verdicts).
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import Processor


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    document_id: Optional[str] = None
) -> None:
    """
    Configure structured logging for the gate.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output logs as JSON (for log shipping)
        document_id: Optional document slug/hash bound to every entry
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    if document_id:
        structlog.contextvars.bind_contextvars(document_id=document_id)


def get_logger(name: Optional[str] = None):
    """
    Get a lazily configured logger.

    Module-level loggers are created at import time, before the CLI calls
    setup_logging, so the proxy is only resolved on first use.

    Args:
        name: Optional logger name (usually __name__)
    """
    if name:
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()


def bind_context(**kwargs) -> None:
    """Bind additional context (e.g. document slug) to subsequent log entries."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()
