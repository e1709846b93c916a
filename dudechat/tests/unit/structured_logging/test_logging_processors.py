"""
Tests for the structlog processors and logging context helpers.
"""

from unittest.mock import Mock

from structlog.contextvars import get_contextvars

from dudechat.structured_logging.enhanced_logging_config import (
    bind_request_context,
    clear_request_context,
    get_logger,
    log_exception_once,
)
from dudechat.structured_logging.logging_file_setup import convert_max_size_to_bytes
from dudechat.structured_logging.logging_processors import add_correlation_id, sanitize_sensitive_data


class TestSanitizeSensitiveData:
    def test_redacts_secret_fields(self):
        event = {"event": "Admin request", "admin_key": "hunter2", "password": "x", "token": "t"}

        result = sanitize_sensitive_data(None, "info", event)

        assert result["admin_key"] == "[REDACTED]"
        assert result["password"] == "[REDACTED]"
        assert result["token"] == "[REDACTED]"
        assert result["event"] == "Admin request"

    def test_redacts_nested_and_bare_key(self):
        event = {"details": {"key": "abc", "reason": "spam"}}

        result = sanitize_sensitive_data(None, "info", event)

        assert result["details"] == {"key": "[REDACTED]", "reason": "spam"}

    def test_leaves_lookalike_fields(self):
        event = {"sort_key": 3, "key_present": True, "public_id": "abcd1234"}

        assert sanitize_sensitive_data(None, "info", event) == event


class TestCorrelationId:
    def test_adds_correlation_id_when_missing(self):
        result = add_correlation_id(None, "info", {"event": "x"})

        assert result["correlation_id"]

    def test_keeps_bound_correlation_id(self):
        result = add_correlation_id(None, "info", {"event": "x", "correlation_id": "abc"})

        assert result["correlation_id"] == "abc"


class TestRequestContext:
    def test_bind_and_clear(self):
        clear_request_context()
        bind_request_context(correlation_id="corr-1", connection_id="conn-1", public_id=None)

        context = get_contextvars()

        assert context["correlation_id"] == "corr-1"
        assert context["connection_id"] == "conn-1"
        assert "public_id" not in context

        clear_request_context()
        assert get_contextvars() == {}


class TestLogExceptionOnce:
    def test_skips_already_logged_exception(self):
        bound_logger = Mock()
        error = ValueError("boom")
        error._already_logged = True  # pylint: disable=protected-access

        log_exception_once(bound_logger, "error", "Failed", exc=error)

        bound_logger.error.assert_not_called()

    def test_logs_fresh_exception(self):
        bound_logger = Mock()

        log_exception_once(bound_logger, "warning", "Failed", exc=KeyError("k"), mark_logged=False)

        bound_logger.warning.assert_called_once()
        assert bound_logger.warning.call_args.kwargs["error_type"] == "KeyError"


def test_convert_max_size_to_bytes():
    assert convert_max_size_to_bytes("10MB") == 10 * 1024 * 1024
    assert convert_max_size_to_bytes("512KB") == 512 * 1024
    assert convert_max_size_to_bytes(2048) == 2048
    assert convert_max_size_to_bytes("4096") == 4096


def test_get_logger_returns_usable_logger():
    logger = get_logger("dudechat.tests")

    logger.info("Logger smoke test", connection_id="conn-1")
