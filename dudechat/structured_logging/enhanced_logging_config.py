"""
Enhanced structlog-based logging configuration for the DudeChat server.

This module is the main entry point for the logging system: it configures
structlog on top of the standard library logging handlers, sanitizes
sensitive fields, carries correlation IDs and per-connection context, and
routes uvicorn's own loggers through the same pipeline.
"""

import json
import logging
import re
from typing import Any, cast

import structlog
from structlog.contextvars import merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

from dudechat.structured_logging.logging_context import (
    bind_request_context as _bind_request_context,
)
from dudechat.structured_logging.logging_context import (
    clear_request_context as _clear_request_context,
)
from dudechat.structured_logging.logging_file_setup import setup_enhanced_file_logging
from dudechat.structured_logging.logging_processors import add_correlation_id, sanitize_sensitive_data

bind_request_context = _bind_request_context
clear_request_context = _clear_request_context

# NOTE: infrastructure code may use structlog.get_logger() directly; all other
# modules must use get_logger() from this module.
logger = structlog.get_logger(__name__)

_ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


class _LoggingState:
    """State container for logging initialization to avoid global statements."""

    initialized: bool = False
    signature: str | None = None


_logging_state = _LoggingState()


def _strip_ansi_renderer(bound_logger: Any, name: str, event_dict: dict[str, Any]) -> str:
    """Render key=value pairs with ANSI escape sequences removed."""
    try:
        formatted = structlog.processors.KeyValueRenderer(key_order=["event"])(bound_logger, name, event_dict)
        return _ANSI_ESCAPE.sub("", formatted)
    except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: a renderer failure must not crash the caller
        return f"Logging renderer error: {type(e).__name__}: {str(e)}"


def configure_enhanced_structlog(
    environment: str = "local",
    log_level: str = "INFO",
    log_config: dict[str, Any] | None = None,
) -> None:
    """
    Configure structlog with sanitization, correlation IDs and context support.

    Args:
        environment: Environment name (log subdirectory)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_config: Logging configuration dictionary
    """
    processors: list[Any] = [
        sanitize_sensitive_data,
        merge_contextvars,
        add_correlation_id,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_config and not log_config.get("disable_logging", False):
        setup_enhanced_file_logging(environment, log_config, log_level)

    log_format = log_config.get("format") if log_config else None
    if log_format == "json":
        renderer: Any = structlog.processors.JSONRenderer(default=str)
    elif log_format == "colored":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = _strip_ansi_renderer

    structlog.configure(
        processors=processors + [renderer],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def setup_enhanced_logging(config: dict[str, Any], *, force_reconfigure: bool = False) -> None:
    """
    Set up the logging system from the server configuration dictionary.

    Args:
        config: Server configuration dictionary (see AppConfig.to_legacy_dict)
        force_reconfigure: When True, reconfigure even if already initialized
    """
    config_signature = json.dumps(config, sort_keys=True, default=str)

    if _logging_state.initialized and not force_reconfigure:
        get_logger("dudechat.structured_logging.setup").debug(
            "setup_enhanced_logging skipped; logging system already initialized",
            config_signature=_logging_state.signature,
        )
        return

    logging_config = config.get("logging", {})
    environment = logging_config.get("environment", "local")
    log_level = logging_config.get("level", "INFO")

    if logging_config.get("disable_logging", False):
        configure_enhanced_structlog(environment, log_level, {"disable_logging": True})
        return

    configure_enhanced_structlog(environment, log_level, logging_config)
    _configure_uvicorn_logging()

    get_logger("dudechat.structured_logging.enhanced").info(
        "Enhanced logging system initialized",
        environment=environment,
        log_level=log_level,
        log_base=logging_config.get("log_base", "logs"),
    )

    _logging_state.initialized = True
    _logging_state.signature = config_signature


def _configure_uvicorn_logging() -> None:
    """Route uvicorn loggers through the root handlers."""
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def get_logger(name: str) -> Any:  # Returns BoundLogger but typed as Any for flexibility
    """
    Get a structlog logger with the specified name.

    This is the public API for obtaining loggers. All application code
    should use this function rather than calling structlog.get_logger()
    directly.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def log_exception_once(
    bound_logger: BoundLogger,
    level: str,
    message: str,
    *,
    exc: Exception | None = None,
    mark_logged: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log an exception once, respecting exceptions that have already been logged.

    Args:
        bound_logger: Structlog bound logger instance.
        level: Logging level to use (for example, "error" or "warning").
        message: Log message to emit.
        exc: Optional exception to include in the log entry.
        mark_logged: When True, mark the exception as logged to prevent duplicates.
        **kwargs: Additional key-value pairs for structured logging.
    """
    if exc is not None:
        if getattr(exc, "already_logged", False) or getattr(exc, "_already_logged", False):
            return
        kwargs.setdefault("error_type", type(exc).__name__)
        kwargs.setdefault("error", str(exc))

    log_method = getattr(bound_logger, level.lower(), bound_logger.error)
    log_method(message, **kwargs)

    if exc is not None and mark_logged:
        marker = getattr(exc, "mark_logged", None)
        if callable(marker):
            marker()
        else:
            cast(Any, exc)._already_logged = True
