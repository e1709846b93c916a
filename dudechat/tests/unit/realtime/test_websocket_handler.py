"""
Tests for the WebSocket connection handler.

The message loop is driven with an AsyncMock websocket whose receive_text
yields scripted frames and finally raises WebSocketDisconnect.
"""

import json
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi import WebSocketDisconnect

from dudechat.realtime.websocket_handler import handle_websocket_connection


def _scripted_websocket(*frames: str) -> AsyncMock:
    websocket = AsyncMock()
    websocket.headers = {"x-forwarded-for": "203.0.113.10"}
    websocket.client = Mock(host="10.0.0.1")
    websocket.receive_text.side_effect = [*frames, WebSocketDisconnect(code=1000)]
    return websocket


def _sent(websocket: AsyncMock) -> list[dict]:
    return [call.args[0] for call in websocket.send_json.call_args_list]


class TestHandleWebsocketConnection:
    @pytest.mark.asyncio
    async def test_lifecycle_connects_and_cleans_up(self, connection_manager):
        websocket = _scripted_websocket(json.dumps({"type": "startSearch", "data": {"name": "Neo"}}))

        await handle_websocket_connection(websocket, connection_manager)

        websocket.accept.assert_awaited_once()
        assert _sent(websocket)[0]["event_type"] == "welcome"
        assert connection_manager.session_manager.online_count == 0
        assert connection_manager.session_manager.queue_length == 0
        assert connection_manager.active_websockets == {}

    @pytest.mark.asyncio
    async def test_forwarded_address_is_used_for_geo(self, connection_manager):
        websocket = _scripted_websocket()

        with patch.object(
            connection_manager.session_manager, "connect", wraps=connection_manager.session_manager.connect
        ) as connect:
            await handle_websocket_connection(websocket, connection_manager)

        assert connect.call_args.args[1] == "203.0.113.10"

    @pytest.mark.asyncio
    async def test_invalid_frames_get_error_and_loop_continues(self, connection_manager):
        websocket = _scripted_websocket(
            "not json",
            json.dumps({"type": "teleport"}),
            json.dumps({"type": "searchAgain"}),
        )

        await handle_websocket_connection(websocket, connection_manager)

        errors = [frame for frame in _sent(websocket) if frame.get("type") == "error"]
        assert [error["error_type"] for error in errors] == ["invalid_format", "unknown_event"]
        assert all("connection_id" in error["details"] for error in errors)

    @pytest.mark.asyncio
    async def test_oversized_frame_gets_error(self, connection_manager):
        websocket = _scripted_websocket(json.dumps({"type": "chatMessage", "data": {"text": "x" * 70000}}))

        await handle_websocket_connection(websocket, connection_manager)

        errors = [frame for frame in _sent(websocket) if frame.get("type") == "error"]
        assert errors[0]["error_type"] == "message_too_large"

    @pytest.mark.asyncio
    async def test_handler_exception_reports_internal_error(self, connection_manager):
        websocket = _scripted_websocket(json.dumps({"type": "next"}), json.dumps({"type": "stop"}))
        original = connection_manager.session_manager.dispatch
        calls = []

        def flaky_dispatch(connection_id, event, data=None):
            calls.append(event)
            if len(calls) == 1:
                raise KeyError("boom")
            return original(connection_id, event, data)

        connection_manager.session_manager.dispatch = flaky_dispatch

        await handle_websocket_connection(websocket, connection_manager)

        errors = [frame for frame in _sent(websocket) if frame.get("type") == "error"]
        assert errors[0]["error_type"] == "internal_error"
        assert len(calls) == 2
        assert connection_manager.session_manager.online_count == 0

    @pytest.mark.asyncio
    async def test_runtime_error_when_not_connected_ends_loop(self, connection_manager):
        websocket = AsyncMock()
        websocket.headers = {}
        websocket.client = None
        websocket.receive_text.side_effect = RuntimeError('WebSocket is not connected. Need to call "accept" first.')

        await handle_websocket_connection(websocket, connection_manager)

        assert connection_manager.session_manager.online_count == 0

    @pytest.mark.asyncio
    async def test_correlation_id_is_stable_for_the_connection(self, connection_manager):
        websocket = _scripted_websocket()

        with patch("dudechat.realtime.websocket_handler.bind_request_context") as mock_bind:
            await handle_websocket_connection(websocket, connection_manager)

        assert mock_bind.call_count == 2
        first, second = (call.kwargs for call in mock_bind.call_args_list)
        assert first["correlation_id"]
        assert first["correlation_id"] == second["correlation_id"]
        assert second["public_id"]

    @pytest.mark.asyncio
    async def test_handler_exception_is_logged_once(self, connection_manager):
        websocket = _scripted_websocket(json.dumps({"type": "next"}))
        error = KeyError("boom")
        connection_manager.session_manager.dispatch = Mock(side_effect=error)

        with patch("dudechat.realtime.websocket_handler.log_exception_once") as mock_log:
            await handle_websocket_connection(websocket, connection_manager)

        mock_log.assert_called_once()
        assert mock_log.call_args.kwargs["exc"] is error
