"""Tests for attempt-aware logging helpers."""

import logging

from attempt_sync.utils.rich_logging import AttemptContextLogger, AttemptLogFormatter, setup_rich_logging


def _record(msg="hello", **extra):
    record = logging.LogRecord("attempt_sync.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestAttemptLogFormatter:

    def test_plain_format(self):
        output = AttemptLogFormatter(use_colors=False).format(_record())

        assert "INFO" in output
        assert output.endswith("hello")
        assert "\033[" not in output

    def test_context_is_truncated(self):
        output = AttemptLogFormatter(use_colors=False).format(
            _record(attempt_id="0123456789abcdef", process_id="fedcba9876543210")
        )

        assert "[01234567] [fedcba98] hello" in output

    def test_colors(self):
        output = AttemptLogFormatter(use_colors=True).format(_record())

        assert "\033[32m" in output


class TestAttemptContextLogger:

    def test_attempt_context_added_to_records(self, caplog):
        adapter = AttemptContextLogger(logging.getLogger("attempt_sync.test.ctx"))

        with caplog.at_level(logging.INFO, logger="attempt_sync.test.ctx"):
            adapter.attempt_selected("attempt-123")
            adapter.processes_synced(3, 1)

        assert caplog.records[0].attempt_id == "attempt-123"
        assert "Synced 3 process(es), 1 running" in caplog.records[1].getMessage()

    def test_deselect_clears_context(self, caplog):
        adapter = AttemptContextLogger(logging.getLogger("attempt_sync.test.ctx"))
        adapter.set_attempt_context(attempt_id="a", process_id="p")

        with caplog.at_level(logging.INFO, logger="attempt_sync.test.ctx"):
            adapter.attempt_selected(None)

        assert adapter.current_attempt_id is None
        assert not hasattr(caplog.records[0], "attempt_id")

    def test_follow_up_messages(self, caplog):
        adapter = AttemptContextLogger(logging.getLogger("attempt_sync.test.ctx"))

        with caplog.at_level(logging.INFO, logger="attempt_sync.test.ctx"):
            adapter.follow_up_sent(None)
            adapter.follow_up_failed("server said no")

        assert "variant: default" in caplog.records[0].getMessage()
        assert caplog.records[1].levelno == logging.ERROR
        assert "server said no" in caplog.records[1].getMessage()


class TestSetupRichLogging:

    def test_file_handler(self, tmp_path):
        adapter = setup_rich_logging("DEBUG", log_dir=tmp_path / "logs", logger_name="attempt_sync.test.setup")
        try:
            adapter.info("to file")
            for handler in adapter.logger.handlers:
                handler.flush()

            assert (tmp_path / "logs" / "attempt-sync.log").read_text().strip().endswith("to file")
            assert adapter.logger.level == logging.DEBUG
        finally:
            for handler in adapter.logger.handlers[:]:
                handler.close()
                adapter.logger.removeHandler(handler)

    def test_repeated_setup_replaces_handlers(self):
        name = "attempt_sync.test.repeat"
        setup_rich_logging("INFO", logger_name=name)
        adapter = setup_rich_logging("INFO", logger_name=name)

        assert len(adapter.logger.handlers) == 1
        adapter.logger.removeHandler(adapter.logger.handlers[0])

    def test_console_handler_uses_attempt_formatter(self):
        adapter = setup_rich_logging("WARNING", logger_name="attempt_sync.test.console")
        try:
            [handler] = adapter.logger.handlers
            assert isinstance(handler, logging.StreamHandler)
            assert isinstance(handler.formatter, AttemptLogFormatter)
            assert adapter.logger.level == logging.WARNING
        finally:
            handler.close()
            adapter.logger.removeHandler(handler)
