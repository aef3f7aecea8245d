"""Utilities package for the pharmacy rota engine."""
from .logging_setup import (
    TRACE,
    GeneratorLogger,
    get_logger,
    log_eligibility,
    log_function_call,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_function_call",
    "log_eligibility",
    "GeneratorLogger",
    "TRACE",
]
