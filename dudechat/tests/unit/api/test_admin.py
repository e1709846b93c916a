"""
Tests for the admin statistics endpoint.
"""

import json
from unittest.mock import Mock

import pytest

from dudechat.api.admin import verify_admin_key
from dudechat.exceptions import AuthenticationError

TEST_ADMIN_KEY = "test-admin-key"


class TestAdminStatsAuthentication:
    @pytest.mark.parametrize("params", [{}, {"key": ""}, {"key": "wrong"}, {"key": TEST_ADMIN_KEY + "x"}])
    def test_rejects_missing_or_wrong_key(self, client, params):
        response = client.get("/api/admin/stats", params=params)

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_accepts_configured_key(self, client):
        response = client.get("/api/admin/stats", params={"key": TEST_ADMIN_KEY})

        assert response.status_code == 200

    def test_verify_admin_key_raises_authentication_error(self):
        request = Mock()
        request.client.host = "192.0.2.44"

        with pytest.raises(AuthenticationError) as exc_info:
            verify_admin_key("nope", "secret", request)

        assert exc_info.value.auth_type == "admin_key"
        assert exc_info.value.context.metadata == {"client": "192.0.2.44", "key_present": True}

    def test_verify_admin_key_accepts_match(self):
        assert verify_admin_key("secret", "secret") is None


class TestAdminStatsPayload:
    def test_empty_server_stats(self, client):
        body = client.get("/api/admin/stats", params={"key": TEST_ADMIN_KEY}).json()

        assert body["totalConnected"] == 0
        assert body["activePairs"] == 0
        assert body["users"] == []
        assert body["serverStarted"].endswith("Z")
        assert set(body) == {
            "totalConnected",
            "activeChatting",
            "activePairs",
            "waiting",
            "idle",
            "queueLength",
            "totalConnectionsEver",
            "totalMatchesEver",
            "totalReportsEver",
            "serverStarted",
            "countryBreakdown",
            "cityBreakdown",
            "users",
        }

    def test_stats_describe_live_sessions(self, client):
        with client.websocket_connect("/socket") as websocket:
            public_id = websocket.receive_json()["data"]["id"]
            websocket.send_text(json.dumps({"type": "startSearch", "data": {"name": "Trinity"}}))
            websocket.send_text(json.dumps({"type": "report", "data": {"reason": "spam"}}))
            websocket.send_text(json.dumps({"type": "sync"}))
            while websocket.receive_json().get("type") != "error":
                pass

            body = client.get("/api/admin/stats", params={"key": TEST_ADMIN_KEY}).json()

        assert body["totalConnected"] == 1
        assert body["waiting"] == 1
        assert body["queueLength"] == 1
        assert body["totalConnectionsEver"] == 1
        assert body["totalReportsEver"] == 1
        assert body["countryBreakdown"] == {"Unknown": 1}
        user = body["users"][0]
        assert user["id"] == public_id
        assert user["name"] == "Trinity"
        assert user["status"] == "waiting"
        assert user["joinedAt"].endswith("Z")
        assert set(user) == {"id", "name", "country", "city", "region", "status", "joinedAt", "ip"}
