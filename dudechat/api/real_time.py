"""
Real-time communication API endpoint for DudeChat.

One WebSocket per chat participant; all matchmaking, relay and presence
traffic flows over it.
"""

from fastapi import APIRouter, WebSocket

from ..error_types import ErrorType, create_websocket_error_response
from ..realtime.connection_manager import ConnectionManager
from ..realtime.websocket_handler import handle_websocket_connection
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])


def _resolve_connection_manager_from_state(state) -> ConnectionManager | None:
    return getattr(state, "connection_manager", None) if state is not None else None


@realtime_router.websocket("/socket")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for matchmaking, signaling relay and chat."""
    websocket_app = getattr(websocket, "app", None)
    connection_manager = _resolve_connection_manager_from_state(getattr(websocket_app, "state", None))
    if connection_manager is None:
        logger.error("WebSocket rejected: connection manager is not configured")
        # Must accept before sending or closing
        await websocket.accept()
        await websocket.send_json(
            create_websocket_error_response(ErrorType.INTERNAL_ERROR, "Service temporarily unavailable")
        )
        await websocket.close(code=1013)
        return

    await handle_websocket_connection(websocket, connection_manager)
