"""Tests for error_handling utilities."""

import logging

import pytest

from attempt_sync.errors import TaskServerError
from attempt_sync.utils.error_handling import ErrorContext, log_and_ignore


def test_log_and_ignore_does_not_raise(caplog):
    """log_and_ignore logs at WARNING and swallows nothing itself."""
    with caplog.at_level(logging.WARNING):
        try:
            raise TaskServerError("connection refused")
        except TaskServerError as e:
            log_and_ignore(e, "Failed to fetch attempt data")

    assert "Failed to fetch attempt data: connection refused" in caplog.text


def test_log_and_ignore_custom_level(caplog):
    log = logging.getLogger("attempt_sync.test")
    with caplog.at_level(logging.DEBUG, logger="attempt_sync.test"):
        log_and_ignore(ValueError("x"), "quiet", logger_instance=log, level=logging.DEBUG)

    assert caplog.records[0].levelno == logging.DEBUG


def test_error_context_no_error():
    with ErrorContext("test operation") as ctx:
        result = 42

    assert ctx.get_result(result) == 42
    assert ctx.error is None


def test_error_context_reraises_by_default():
    with pytest.raises(ValueError):
        with ErrorContext("test operation"):
            raise ValueError("test error")


def test_error_context_suppresses_matching_errors(caplog):
    with caplog.at_level(logging.ERROR):
        with ErrorContext(
            "opening editor",
            raise_on_error=False,
            suppress=(TaskServerError,),
            default_value=False,
        ) as ctx:
            raise TaskServerError("no editor")

    assert ctx.get_result(True) is False
    assert isinstance(ctx.error, TaskServerError)
    assert "Error during opening editor: no editor" in caplog.text


def test_error_context_propagates_non_matching_errors():
    with pytest.raises(KeyError):
        with ErrorContext("opening editor", raise_on_error=False, suppress=(TaskServerError,)):
            raise KeyError("bug")
