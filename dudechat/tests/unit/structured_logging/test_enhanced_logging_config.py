"""
Tests for the logging setup entry point.
"""

import logging
from unittest.mock import patch

import pytest
import structlog

from dudechat.structured_logging.enhanced_logging_config import (
    configure_enhanced_structlog,
    get_logger,
    setup_enhanced_logging,
)


@pytest.fixture
def restore_root_handlers():
    """Remove the handlers installed by setup_enhanced_logging after the test."""
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, "_dudechat_handler", False):
            root_logger.removeHandler(handler)
            handler.close()


def _config(tmp_path, **overrides) -> dict:
    logging_config = {
        "environment": "unit_test",
        "level": "DEBUG",
        "format": "json",
        "log_base": str(tmp_path),
        "rotation": {"max_size": "1MB", "backup_count": 1},
        "disable_logging": False,
    }
    logging_config.update(overrides)
    return {"logging": logging_config}


def test_setup_writes_server_and_error_logs(tmp_path, restore_root_handlers):
    setup_enhanced_logging(_config(tmp_path), force_reconfigure=True)

    get_logger("dudechat.tests.setup").error("Something broke", admin_key="hunter2")
    for handler in logging.getLogger().handlers:
        handler.flush()

    server_log = (tmp_path / "unit_test" / "server.log").read_text(encoding="utf-8")
    errors_log = (tmp_path / "unit_test" / "errors.log").read_text(encoding="utf-8")
    assert "Something broke" in server_log
    assert "Something broke" in errors_log
    assert "hunter2" not in server_log


def test_reconfigure_does_not_stack_handlers(tmp_path, restore_root_handlers):
    setup_enhanced_logging(_config(tmp_path), force_reconfigure=True)
    setup_enhanced_logging(_config(tmp_path), force_reconfigure=True)

    ours = [h for h in logging.getLogger().handlers if getattr(h, "_dudechat_handler", False)]
    assert len(ours) == 3


def test_disabled_logging_creates_no_files(tmp_path, restore_root_handlers):
    setup_enhanced_logging(_config(tmp_path, disable_logging=True), force_reconfigure=True)

    assert not (tmp_path / "unit_test").exists()


def test_uvicorn_loggers_propagate(tmp_path, restore_root_handlers):
    setup_enhanced_logging(_config(tmp_path), force_reconfigure=True)

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        assert logging.getLogger(name).propagate is True
        assert logging.getLogger(name).handlers == []


@pytest.mark.parametrize(
    ("log_format", "renderer_type"),
    [
        ("json", structlog.processors.JSONRenderer),
        ("colored", structlog.dev.ConsoleRenderer),
    ],
)
def test_log_format_selects_renderer(log_format, renderer_type):
    with patch("dudechat.structured_logging.enhanced_logging_config.structlog.configure") as mock_configure:
        configure_enhanced_structlog("unit_test", "INFO", {"format": log_format, "disable_logging": True})

    processors = mock_configure.call_args.kwargs["processors"]
    assert isinstance(processors[-1], renderer_type)
