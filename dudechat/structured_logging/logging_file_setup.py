"""
File logging setup for the structured logging system.

Configures rotating file handlers under ``<log_base>/<environment>/`` plus a
console handler on the root logger.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

_SIZE_UNITS = {"KB": 1024, "MB": 1024 * 1024, "GB": 1024 * 1024 * 1024}


def resolve_log_base(log_base: str) -> Path:
    """Resolve the log base directory relative to the working directory."""
    path = Path(log_base)
    if path.is_absolute():
        return path
    return Path.cwd() / path


def convert_max_size_to_bytes(max_size: str | int) -> int:
    """Convert a size string such as '10MB' into a byte count."""
    if isinstance(max_size, int):
        return max_size
    value = max_size.strip().upper()
    for unit, multiplier in _SIZE_UNITS.items():
        if value.endswith(unit):
            return int(float(value[: -len(unit)]) * multiplier)
    return int(value)


def _create_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _create_file_handler(log_path: Path, max_bytes: int, backup_count: int, level: int) -> logging.Handler:
    try:
        handler: logging.Handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        # Logging must never keep the server from starting
        print(f"Warning: Failed to create log handler for {log_path}: {type(e).__name__}: {e}", file=sys.stderr)
        return logging.NullHandler()
    handler.setLevel(level)
    handler.setFormatter(_create_formatter())
    return handler


def setup_enhanced_file_logging(environment: str, log_config: dict[str, Any], log_level: str) -> None:
    """
    Set up file and console handlers on the root logger.

    Args:
        environment: Logging environment name, used as the log subdirectory
        log_config: Logging configuration dictionary
        log_level: Root log level
    """
    env_log_dir = resolve_log_base(log_config.get("log_base", "logs")) / environment
    env_log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))

    # Reconfiguration replaces our handlers instead of stacking them
    for handler in list(root_logger.handlers):
        if getattr(handler, "_dudechat_handler", False):
            root_logger.removeHandler(handler)
            handler.close()

    rotation_config = log_config.get("rotation", {})
    max_bytes = convert_max_size_to_bytes(rotation_config.get("max_size", "10MB"))
    backup_count = rotation_config.get("backup_count", 5)

    handlers = [
        _create_file_handler(env_log_dir / "server.log", max_bytes, backup_count, logging.DEBUG),
        _create_file_handler(env_log_dir / "errors.log", max_bytes, backup_count, logging.ERROR),
    ]

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))
    console_handler.setFormatter(_create_formatter())
    handlers.append(console_handler)

    for handler in handlers:
        handler._dudechat_handler = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)
