"""
WebSocket handler for DudeChat real-time communication.

Runs one client connection from accept to close: registers the session,
feeds validated frames into the connection manager and always tears the
session down when the socket goes away.
"""

import uuid

from fastapi import WebSocket, WebSocketDisconnect

from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..structured_logging.enhanced_logging_config import (
    bind_request_context,
    clear_request_context,
    get_logger,
    log_exception_once,
)
from .connection_manager import ConnectionManager
from .geo import resolve_client_address
from .message_validator import MessageValidationError, WebSocketMessageValidator

logger = get_logger(__name__)

_VALIDATION_USER_MESSAGES = {
    ErrorType.MESSAGE_TOO_LARGE: ErrorMessages.MESSAGE_TOO_LARGE,
    ErrorType.UNKNOWN_EVENT: ErrorMessages.UNKNOWN_EVENT,
}


async def _handle_websocket_message_loop(
    websocket: WebSocket,
    connection_id: str,
    connection_manager: ConnectionManager,
    validator: WebSocketMessageValidator,
) -> None:
    """Handle the main WebSocket message loop."""
    while True:
        try:
            data = await websocket.receive_text()

            try:
                event, payload = validator.parse_and_validate(data, connection_id=connection_id)
            except MessageValidationError as e:
                logger.warning(
                    "Message validation failed",
                    connection_id=connection_id,
                    error_type=e.error_type.value,
                    error_message=e.message,
                )
                error_response = create_websocket_error_response(
                    e.error_type,
                    f"Message validation failed: {e.message}",
                    _VALIDATION_USER_MESSAGES.get(e.error_type, ErrorMessages.INVALID_FORMAT),
                    {"connection_id": connection_id},
                )
                await websocket.send_json(error_response)
                continue

            await connection_manager.handle_event(connection_id, event, payload)

        except WebSocketDisconnect:
            logger.info("WebSocket disconnected", connection_id=connection_id)
            break

        except RuntimeError as e:
            error_message = str(e)
            if "WebSocket is not connected" in error_message or 'Need to call "accept" first' in error_message:
                logger.warning("WebSocket connection lost (not connected)", connection_id=connection_id, error=error_message)
                break
            raise

        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: one bad event must not end the session
            log_exception_once(
                logger,
                "error",
                "Error handling WebSocket message",
                exc=e,
                connection_id=connection_id,
                exc_info=True,
            )
            try:
                error_response = create_websocket_error_response(
                    ErrorType.INTERNAL_ERROR,
                    f"Internal server error: {type(e).__name__}",
                    ErrorMessages.INTERNAL_ERROR,
                    {"connection_id": connection_id},
                )
                await websocket.send_json(error_response)
            except (RuntimeError, WebSocketDisconnect) as send_error:
                logger.warning(
                    "WebSocket closed, breaking message loop",
                    connection_id=connection_id,
                    original_error=str(e),
                    send_error=str(send_error),
                )
                break


async def _cleanup_connection(connection_id: str, connection_manager: ConnectionManager) -> None:
    """Tear down the session; errors here are logged, never raised."""
    try:
        await connection_manager.disconnect(connection_id)
    except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: cleanup runs in finally
        log_exception_once(logger, "error", "Error disconnecting WebSocket", exc=e, connection_id=connection_id, exc_info=True)
    finally:
        clear_request_context()


async def handle_websocket_connection(
    websocket: WebSocket,
    connection_manager: ConnectionManager,
    validator: WebSocketMessageValidator | None = None,
) -> None:
    """
    Handle a WebSocket connection for one chat participant.

    Args:
        websocket: The WebSocket connection (not yet accepted)
        connection_manager: ConnectionManager instance (injected from endpoint)
        validator: Frame validator; defaults to one sized from the matchmaking config
    """
    if validator is None:
        validator = WebSocketMessageValidator(connection_manager.session_manager.config.max_message_size)

    await websocket.accept()

    connection_id = str(uuid.uuid4())
    correlation_id = str(uuid.uuid4())
    peer_host = websocket.client.host if websocket.client else None
    address = resolve_client_address(websocket.headers, peer_host)
    bind_request_context(correlation_id=correlation_id, connection_id=connection_id)

    try:
        session = await connection_manager.connect(websocket, address, connection_id=connection_id)
        bind_request_context(correlation_id=correlation_id, connection_id=connection_id, public_id=session.public_id)
        await _handle_websocket_message_loop(websocket, connection_id, connection_manager, validator)
    finally:
        await _cleanup_connection(connection_id, connection_manager)
