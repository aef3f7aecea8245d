"""
Structured Audit Logging
========================
structlog configuration for audit events (generation, publish, archive,
reassignment, sweeps).

Usage:
    from pharmrota.utils.structured_logging import get_structured_logger

    log = get_structured_logger("pharmrota.audit")
    log.info("week_published", week_start="2024-04-01", set_id="...")
"""
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional, TextIO

import structlog


def configure_structlog(json_output: bool = False, file: Optional[TextIO] = None) -> None:
    """
    Configure structlog for the application.

    Args:
        json_output: If True, output JSON logs (for production).
                    If False, use colored console output (for development).
        file: Stream to write to (defaults to stdout).
    """
    if json_output:
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(file=file),
            cache_logger_on_first_use=True,
        )
    else:
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="%H:%M:%S"),
                structlog.dev.ConsoleRenderer(colors=True),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(file=file),
            cache_logger_on_first_use=True,
        )


def get_structured_logger(name: str) -> Any:
    """
    Get a structured logger.

    Args:
        name: Logger name (e.g., "pharmrota.audit")
    """
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """
    Bind context variables for all subsequent log calls.

    Args:
        **kwargs: Context values (e.g., week_start="2024-04-01")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def audit_context(**kwargs) -> Iterator[None]:
    """
    Bind context for the duration of one operation, then clear it.

    Usage:
        with audit_context(week_start="2024-04-01", edited_by="alice"):
            log.info("week_published")
    """
    bind_context(**kwargs)
    try:
        yield
    finally:
        clear_context()
