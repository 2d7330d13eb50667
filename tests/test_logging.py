"""Tests for lexhub._logging module."""

import logging

import pytest

import lexhub
from lexhub._logging import (
    LoggerProtocol,
    configure_logging,
    format_context,
    get_logger,
    log_operation,
)


class TestGetLogger:
    def test_default_is_stdlib(self):
        log = get_logger()
        assert isinstance(log, logging.Logger)
        assert log.name == "lexhub"

    def test_satisfies_protocol(self):
        assert isinstance(get_logger(), LoggerProtocol)


class TestConfigureLogging:
    def test_custom_logger(self, captured_log):
        log = get_logger()
        assert log is captured_log
        log.info("hello %s", "world")
        assert captured_log.calls[-1] == ("info", "hello world")

    def test_restore_default(self):
        """Default logger is stdlib again once the fixture has cleaned up."""
        assert isinstance(get_logger(), logging.Logger)


class TestFormatContext:
    def test_pairs_in_order(self):
        assert format_context(nsid="com.example.foo", cid="bafy") == (
            "nsid=com.example.foo, cid=bafy"
        )

    def test_empty(self):
        assert format_context() == ""

    def test_non_string_values(self):
        assert format_context(event_id=None, duplicate=False) == "event_id=None, duplicate=False"


class TestLogOperation:
    def test_logs_start_and_complete_with_context(self, captured_log):
        with log_operation("init_db", backend="sqlite"):
            pass
        infos = captured_log.messages("info")
        assert any("init_db: started" in m and "backend=sqlite" in m for m in infos)
        assert any("init_db: completed in" in m and "backend=sqlite" in m for m in infos)

    def test_logs_error_on_exception(self, captured_log):
        with pytest.raises(ValueError, match="boom"):
            with log_operation("fail_op"):
                raise ValueError("boom")
        errors = captured_log.messages("error")
        assert len(errors) == 1
        assert errors[0].startswith("fail_op: failed after")
        assert errors[0].endswith(": ValueError")

    def test_failure_keeps_context(self, captured_log):
        with pytest.raises(RuntimeError):
            with log_operation("init_db", backend="postgres"):
                raise RuntimeError("connection refused")
        (error,) = captured_log.messages("error")
        assert "RuntimeError" in error
        assert error.endswith("(backend=postgres)")
        assert not any("completed" in m for m in captured_log.messages("info"))

    def test_percent_in_context_is_literal(self, captured_log):
        with log_operation("lookup", repo_did="did:web:localhost%3A8080"):
            pass
        assert any("did:web:localhost%3A8080" in m for m in captured_log.messages("info"))

    def test_no_context(self, captured_log):
        with log_operation("bare"):
            pass
        start_msgs = [m for _, m in captured_log.calls if "bare: started" in m]
        assert len(start_msgs) == 1
        assert "(" not in start_msgs[0]

    def test_elapsed_time_is_non_negative(self, captured_log):
        with log_operation("timed"):
            pass
        completed = [m for _, m in captured_log.calls if "timed: completed in" in m]
        assert len(completed) == 1
        elapsed_str = completed[0].split("completed in ")[1].split("s")[0]
        assert float(elapsed_str) >= 0.0


class TestPublicApi:
    def test_configure_logging_exported(self):
        assert lexhub.configure_logging is configure_logging

    def test_get_logger_exported(self):
        assert lexhub.get_logger is get_logger

    def test_log_operation_exported(self):
        assert lexhub.log_operation is log_operation
