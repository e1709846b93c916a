"""
WebSocket message validation for DudeChat.

Inbound frames are JSON objects of the form ``{"type": <event>, "data": ...}``.
This module enforces the frame size limit, parses the JSON, validates the
outer shape with pydantic and maps the type onto an InboundEvent.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from ..error_types import ErrorMessages, ErrorType
from ..structured_logging.enhanced_logging_config import get_logger
from .session_models import InboundEvent

logger = get_logger(__name__)


class MessageValidationError(Exception):
    """Raised when an inbound frame is rejected."""

    def __init__(self, message: str, error_type: ErrorType = ErrorType.INVALID_FORMAT):
        self.message = message
        self.error_type = error_type
        super().__init__(self.message)


class InboundMessage(BaseModel):
    """Outer shape of a client frame."""

    model_config = ConfigDict(extra="ignore")

    type: str
    data: Any = None


class WebSocketMessageValidator:
    """Validates client frames and resolves their event type."""

    MAX_MESSAGE_SIZE = 64 * 1024

    def __init__(self, max_message_size: int | None = None):
        self.max_message_size = max_message_size or self.MAX_MESSAGE_SIZE

    def validate_size(self, data: str) -> None:
        """
        Validate frame size in UTF-8 bytes.

        Raises:
            MessageValidationError: If the frame exceeds the size limit
        """
        size = len(data.encode("utf-8"))
        if size > self.max_message_size:
            logger.warning(
                "Message size exceeds limit",
                size=size,
                max_size=self.max_message_size,
                size_exceeded_by=size - self.max_message_size,
            )
            raise MessageValidationError(
                f"Message size {size} bytes exceeds maximum {self.max_message_size} bytes",
                error_type=ErrorType.MESSAGE_TOO_LARGE,
            )

    def parse_and_validate(self, data: str, connection_id: str | None = None) -> tuple[InboundEvent, Any]:
        """
        Parse and validate one text frame.

        Args:
            data: Raw frame text
            connection_id: Connection the frame arrived on, for logging

        Returns:
            tuple: The inbound event and its (unvalidated) payload

        Raises:
            MessageValidationError: If validation fails at any stage
        """
        self.validate_size(data)

        try:
            raw = json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON in message", connection_id=connection_id, error=str(e))
            raise MessageValidationError(f"Invalid JSON: {e}", error_type=ErrorType.INVALID_FORMAT) from e

        if not isinstance(raw, dict):
            raise MessageValidationError("Message must be a JSON object", error_type=ErrorType.INVALID_FORMAT)

        try:
            message = InboundMessage.model_validate(raw)
        except ValidationError as e:
            logger.warning("Schema validation failed", connection_id=connection_id, message_keys=list(raw.keys()))
            raise MessageValidationError(
                f"{ErrorMessages.INVALID_FORMAT}: {e.error_count()} error(s)",
                error_type=ErrorType.INVALID_FORMAT,
            ) from e

        try:
            event = InboundEvent(message.type)
        except ValueError as e:
            logger.warning("Unknown inbound event type", connection_id=connection_id, message_type=message.type)
            raise MessageValidationError(
                f"{ErrorMessages.UNKNOWN_EVENT}: {message.type}",
                error_type=ErrorType.UNKNOWN_EVENT,
            ) from e

        return event, message.data
