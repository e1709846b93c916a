"""
Exception hierarchy for the DudeChat server.

The matchmaking engine itself never raises for missing state; these
exceptions cover the outer surfaces such as admin authentication.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Contextual information attached to an error for logging."""

    connection_id: str | None = None
    public_id: str | None = None
    event: str | None = None
    request_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "connection_id": self.connection_id,
            "public_id": self.public_id,
            "event": self.event,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class DudeChatError(Exception):
    """
    Base exception for all DudeChat errors.

    Logs itself with structured context on creation so that callers that
    translate it into a response do not need to log it again.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now(UTC)
        self._log_error()

    def _log_error(self) -> None:
        logger.warning(
            "DudeChat error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )
        self._already_logged = True

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class AuthenticationError(DudeChatError):
    """Authentication and authorization errors."""

    def __init__(self, message: str, context: ErrorContext | None = None, auth_type: str = "unknown", **kwargs):
        self.auth_type = auth_type
        details = kwargs.pop("details", None) or {}
        details["auth_type"] = auth_type
        super().__init__(message, context, details=details, **kwargs)

