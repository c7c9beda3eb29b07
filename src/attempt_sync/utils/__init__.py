"""Shared utility functions for attempt synchronization."""

from .error_handling import ErrorContext, log_and_ignore
from .rich_logging import AttemptContextLogger, AttemptLogFormatter, setup_rich_logging

__all__ = [
    # Error handling
    "ErrorContext",
    "log_and_ignore",
    # Logging
    "AttemptContextLogger",
    "AttemptLogFormatter",
    "setup_rich_logging",
]
