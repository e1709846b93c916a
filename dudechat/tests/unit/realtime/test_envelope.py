"""
Tests for the outbound event envelope.
"""

from unittest.mock import Mock

from dudechat.realtime.envelope import build_event, utc_now_z


def test_build_event_shape():
    event = build_event("onlineCount", {"count": 3}, sequence_number=7)

    assert event["event_type"] == "onlineCount"
    assert event["sequence_number"] == 7
    assert event["data"] == {"count": 3}
    assert event["timestamp"].endswith("Z")


def test_build_event_defaults_to_empty_payload():
    assert build_event("partnerDisconnected")["data"] == {}


def test_connection_manager_counter_is_used():
    manager = Mock()
    manager._get_next_sequence.return_value = 42  # pylint: disable=protected-access

    assert build_event("iceRestart", connection_manager=manager)["sequence_number"] == 42


def test_global_counter_is_monotonic():
    first = build_event("welcome")["sequence_number"]
    second = build_event("welcome")["sequence_number"]

    assert second > first


def test_utc_now_z_has_no_offset():
    stamp = utc_now_z()

    assert stamp.endswith("Z")
    assert "+00:00" not in stamp
