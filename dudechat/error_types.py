"""
Centralized error types and constants for DudeChat.

Defines the error categories reported to WebSocket clients and the helper
that builds the error frame.
"""

from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Standardized error types for consistent categorization."""

    INVALID_FORMAT = "invalid_format"
    MESSAGE_TOO_LARGE = "message_too_large"
    UNKNOWN_EVENT = "unknown_event"

    INTERNAL_ERROR = "internal_error"


class ErrorMessages:
    """Common error messages for consistent user experience."""

    INVALID_FORMAT = "Invalid message format"
    MESSAGE_TOO_LARGE = "Message is too large"
    UNKNOWN_EVENT = "Unknown event type"
    INTERNAL_ERROR = "An internal error occurred. Please try again."


def create_websocket_error_response(
    error_type: ErrorType,
    message: str,
    user_friendly: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a standardized WebSocket error response.

    Args:
        error_type: The type of error
        message: Technical error message
        user_friendly: User-friendly error message (optional)
        details: Additional error details (optional)

    Returns:
        WebSocket error response dictionary
    """
    return {
        "type": "error",
        "error_type": error_type.value,
        "message": message,
        "user_friendly": user_friendly or message,
        "details": details or {},
    }
