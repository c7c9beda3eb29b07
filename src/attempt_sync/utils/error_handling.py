"""Standardized error handling utilities."""

import logging
from typing import Any, Optional, Tuple, Type

logger = logging.getLogger(__name__)


def log_and_ignore(
    error: Exception,
    message: str,
    *,
    logger_instance: Optional[logging.Logger] = None,
    level: int = logging.WARNING,
) -> None:
    """
    Log an error and ignore it (don't re-raise).

    Use for non-critical errors that should not interrupt the flow.

    Args:
        error: Exception to log
        message: Context message to log
        logger_instance: Logger to use (defaults to module logger)
        level: Log level (default: WARNING)
    """
    log = logger_instance or logger
    log.log(level, f"{message}: {error}")


class ErrorContext:
    """
    Context manager for handling errors with consistent logging.

    Only exceptions matching ``suppress`` are swallowed when
    ``raise_on_error`` is False; anything else always propagates.

    Usage:
        opened = False
        with ErrorContext("opening editor", raise_on_error=False,
                          suppress=(TaskServerError,)) as ctx:
            opened = await client.open_editor(attempt_id)
        return ctx.get_result(opened)
    """

    def __init__(
        self,
        operation: str,
        *,
        raise_on_error: bool = True,
        suppress: Tuple[Type[BaseException], ...] = (Exception,),
        default_value: Any = None,
        logger_instance: Optional[logging.Logger] = None,
        log_level: int = logging.ERROR,
    ):
        self.operation = operation
        self.raise_on_error = raise_on_error
        self.suppress = suppress
        self.default_value = default_value
        self.logger = logger_instance or logger
        self.log_level = log_level
        self.error: Optional[BaseException] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            return False

        self.error = exc_val
        self.logger.log(
            self.log_level,
            f"Error during {self.operation}: {exc_val}",
        )

        if self.raise_on_error or not issubclass(exc_type, self.suppress):
            return False  # Re-raise exception
        return True  # Suppress exception

    def get_result(self, result: Any = None) -> Any:
        """
        Get result or default value if error occurred.

        Args:
            result: The actual result (if operation succeeded)

        Returns:
            Result if no error, default_value if error occurred
        """
        if self.error is not None:
            return self.default_value
        return result
