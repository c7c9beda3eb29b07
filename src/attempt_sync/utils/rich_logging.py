"""Rich logging with attempt context and better formatting."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


class AttemptLogFormatter(logging.Formatter):
    """Custom formatter with attempt/process context."""

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with context."""
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        attempt_context = ""
        if hasattr(record, "attempt_id"):
            attempt_context = f"[{record.attempt_id[:8]}] "

        process_context = ""
        if hasattr(record, "process_id"):
            process_context = f"[{record.process_id[:8]}] "

        if self.use_colors:
            level_colors = {
                "DEBUG": "\033[36m",      # Cyan
                "INFO": "\033[32m",       # Green
                "WARNING": "\033[33m",    # Yellow
                "ERROR": "\033[31m",      # Red
                "CRITICAL": "\033[35m",   # Magenta
            }
            reset = "\033[0m"
            level_color = level_colors.get(record.levelname, "")
        else:
            level_color = ""
            reset = ""

        message = (
            f"{timestamp} {level_color}{record.levelname:8s}{reset} "
            f"{attempt_context}{process_context}{record.getMessage()}"
        )
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


class AttemptContextLogger(logging.LoggerAdapter):
    """Logger adapter that adds attempt context to all log messages."""

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})
        self.current_attempt_id: Optional[str] = None
        self.current_process_id: Optional[str] = None

    def set_attempt_context(
        self,
        attempt_id: Optional[str] = None,
        process_id: Optional[str] = None,
    ):
        """Set current attempt context for logging."""
        if attempt_id:
            self.current_attempt_id = attempt_id
        if process_id is not None:  # Allow clearing process with ""
            self.current_process_id = process_id or None

    def clear_context(self):
        """Clear attempt context."""
        self.current_attempt_id = None
        self.current_process_id = None

    def process(self, msg, kwargs):
        """Add context to log record."""
        extra = kwargs.get("extra", {})

        if self.current_attempt_id:
            extra["attempt_id"] = self.current_attempt_id
        if self.current_process_id:
            extra["process_id"] = self.current_process_id

        kwargs["extra"] = extra
        return msg, kwargs

    def attempt_selected(self, attempt_id: Optional[str]):
        """Log attempt selection change."""
        self.clear_context()
        if attempt_id is None:
            self.info("Attempt deselected")
            return
        self.set_attempt_context(attempt_id=attempt_id)
        self.info("📋 Attempt selected")

    def processes_synced(self, total: int, running: int):
        """Log a published reconciliation."""
        self.info(f"🔄 Synced {total} process(es), {running} running")

    def follow_up_sent(self, variant: Optional[str]):
        """Log a successful follow-up submission."""
        self.info(f"✅ Follow-up sent (variant: {variant or 'default'})")

    def follow_up_failed(self, error: str):
        """Log a failed follow-up submission."""
        self.error(f"❌ Follow-up failed: {error}")


def setup_rich_logging(
    log_level: str = "INFO",
    log_dir: Optional[Path] = None,
    logger_name: str = "attempt_sync",
) -> AttemptContextLogger:
    """
    Setup rich logging with better formatting.

    Handlers are attached to the package logger so every module-level
    ``logging.getLogger(__name__)`` below it inherits them.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for a log file; no file handler when None
        logger_name: Logger to configure

    Returns:
        AttemptContextLogger instance
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Close existing handlers before clearing (prevents file descriptor leak)
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter = AttemptLogFormatter(use_colors=sys.stderr.isatty())

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)

        # Use plain formatter for files (no ANSI codes)
        file_handler = logging.FileHandler(log_dir / "attempt-sync.log")
        file_handler.setFormatter(AttemptLogFormatter(use_colors=False))
        logger.addHandler(file_handler)

    return AttemptContextLogger(logger)
