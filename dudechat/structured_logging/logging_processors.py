"""
Logging processors for structlog event processing.

This module provides processors for sanitizing sensitive data and adding
correlation IDs to every log entry.
"""

import re
import uuid
from typing import Any

# Sensitive patterns that should be redacted.
# These patterns match whole words or specific suffixes/prefixes.
SENSITIVE_PATTERNS = [
    r"\bpassword\b",
    r"\btoken\b",
    r"\bsecret\b",
    r"_key\b",  # api_key, admin_key, ...
    r"\bkey_\b",
    r"^key$",
    r"\bcredential\b",
    r"\bauthorization\b",
]

# Field names that look sensitive but are not
SAFE_FIELDS = {
    "sort_key",
}


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive data from log entries.

    Redacts values of fields such as the admin key so that a rejected
    admin request never writes the attempted secret into the logs.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to sanitize

    Returns:
        Sanitized event dictionary
    """

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            if isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
                continue
            key_lower = key.lower()
            if key_lower in SAFE_FIELDS:
                sanitized[key] = value
            elif any(re.search(pattern, key_lower) for pattern in SENSITIVE_PATTERNS):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


def add_correlation_id(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add a correlation ID to log entries if one is not already bound."""
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = str(uuid.uuid4())

    return event_dict
