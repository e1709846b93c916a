"""
Connection Manager for DudeChat real-time communication.

Holds the live WebSocket for every connection and turns the deliveries
produced by the SessionManager into envelope frames. Sends are best-effort:
a failed send is logged and the dead socket is dropped, but it never rolls
back a state change that has already been made.
"""

import uuid
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import build_event
from .session_manager import SessionManager
from .session_models import Delivery, InboundEvent, OutboundEvent, Session

logger = get_logger(__name__)


class ConnectionManager:
    """
    Bridges WebSocket transport and the session manager.

    Session state lives entirely in the SessionManager; this class only maps
    connection IDs to sockets and performs the I/O.
    """

    def __init__(self, session_manager: SessionManager | None = None) -> None:
        self.session_manager = session_manager or SessionManager()
        # Active WebSocket connections
        self.active_websockets: dict[str, WebSocket] = {}
        # Global event sequence counter
        self.sequence_counter = 0
        self.delivery_stats = {"delivered": 0, "failed": 0}

    def _get_next_sequence(self) -> int:
        """Get the next sequence number for events."""
        self.sequence_counter += 1
        return self.sequence_counter

    async def connect(self, websocket: WebSocket, address: str = "", connection_id: str | None = None) -> Session:
        """
        Register an accepted WebSocket and create its session.

        The new client receives a welcome frame with its public ID; everyone
        receives the updated presence count.
        """
        connection_id = connection_id or str(uuid.uuid4())
        self.active_websockets[connection_id] = websocket
        session, deliveries = self.session_manager.connect(connection_id, address)
        await self.send_personal_message(connection_id, OutboundEvent.WELCOME, {"id": session.public_id})
        await self.deliver(deliveries)
        return session

    async def disconnect(self, connection_id: str) -> None:
        """Forget the socket, tear down the session and notify whoever is affected."""
        self.active_websockets.pop(connection_id, None)
        deliveries = self.session_manager.disconnect(connection_id)
        await self.deliver(deliveries)

    async def handle_event(self, connection_id: str, event: InboundEvent, data: Any = None) -> None:
        """Apply one inbound client event and send the resulting frames."""
        deliveries = self.session_manager.dispatch(connection_id, event, data)
        await self.deliver(deliveries)

    async def deliver(self, deliveries: list[Delivery]) -> None:
        for delivery in deliveries:
            if delivery.is_broadcast:
                await self.broadcast(delivery.event_type, delivery.data)
            else:
                await self.send_personal_message(delivery.target, delivery.event_type, delivery.data)

    async def send_personal_message(
        self, connection_id: str, event_type: OutboundEvent, data: dict[str, Any] | None = None
    ) -> bool:
        """
        Send one event to a single connection.

        Returns:
            bool: True if the frame was written to the socket
        """
        websocket = self.active_websockets.get(connection_id)
        if websocket is None:
            logger.debug("No active websocket for delivery", connection_id=connection_id, event_type=event_type.value)
            return False
        event = build_event(event_type.value, data, connection_manager=self)
        return await self._send(connection_id, websocket, event)

    async def broadcast(self, event_type: OutboundEvent, data: dict[str, Any] | None = None) -> dict[str, int]:
        """
        Send one event to every live connection.

        Returns:
            dict: Broadcast delivery statistics
        """
        event = build_event(event_type.value, data, connection_manager=self)
        targets = list(self.active_websockets.items())
        delivered = 0
        for connection_id, websocket in targets:
            if await self._send(connection_id, websocket, event):
                delivered += 1
        stats = {"total_connections": len(targets), "successful_deliveries": delivered, "failed_deliveries": len(targets) - delivered}
        logger.debug("Broadcast delivery status", event_type=event_type.value, **stats)
        return stats

    async def _send(self, connection_id: str, websocket: WebSocket, event: dict[str, Any]) -> bool:
        if getattr(websocket, "application_state", None) == WebSocketState.DISCONNECTED:
            self._drop_dead_websocket(connection_id, websocket)
            return False
        try:
            await websocket.send_json(event)
        except (RuntimeError, ConnectionError, WebSocketDisconnect) as ws_error:
            error_message = str(ws_error)
            # Expected while a socket is closing
            if "close message has been sent" not in error_message.lower():
                logger.warning(
                    "WebSocket send failed",
                    connection_id=connection_id,
                    event_type=event.get("event_type"),
                    error=error_message,
                )
            self.delivery_stats["failed"] += 1
            self._drop_dead_websocket(connection_id, websocket)
            return False
        self.delivery_stats["delivered"] += 1
        return True

    def _drop_dead_websocket(self, connection_id: str, websocket: WebSocket) -> None:
        # The session itself is torn down by the handler's disconnect path
        if self.active_websockets.get(connection_id) is websocket:
            del self.active_websockets[connection_id]

    def get_active_connection_count(self) -> int:
        return len(self.active_websockets)
