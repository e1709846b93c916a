"""
Tests for client address resolution and geo tagging.
"""

from unittest.mock import Mock

import pytest

from dudechat.realtime.geo import (
    StaticGeoTagProvider,
    UnknownGeoTagProvider,
    resolve_client_address,
    tag_address,
)
from dudechat.realtime.session_models import GeoTag


class TestResolveClientAddress:
    def test_forwarded_for_takes_first_entry(self):
        headers = {"x-forwarded-for": "203.0.113.5, 10.0.0.1", "x-real-ip": "10.0.0.2"}

        assert resolve_client_address(headers, "10.0.0.3") == "203.0.113.5"

    def test_real_ip_used_without_forwarded_for(self):
        assert resolve_client_address({"x-real-ip": "203.0.113.7"}, "10.0.0.3") == "203.0.113.7"

    def test_peer_host_is_last_resort(self):
        assert resolve_client_address({}, "198.51.100.1") == "198.51.100.1"

    def test_ipv4_mapped_prefix_is_stripped(self):
        assert resolve_client_address({}, "::ffff:198.51.100.1") == "198.51.100.1"

    @pytest.mark.parametrize("peer", ["127.0.0.1", "::1", "::ffff:127.0.0.1", None])
    def test_loopback_and_missing_resolve_to_empty(self, peer):
        assert resolve_client_address({}, peer) == ""


class TestTagAddress:
    def test_empty_address_is_localhost(self):
        assert tag_address(StaticGeoTagProvider(), "") == GeoTag(ip="localhost")

    def test_unknown_provider_keeps_address(self):
        tag = tag_address(UnknownGeoTagProvider(), "203.0.113.5")

        assert tag == GeoTag(country="Unknown", region="", city="Unknown", ip="203.0.113.5")

    def test_mapping_result_fills_missing_fields(self):
        provider = StaticGeoTagProvider({"203.0.113.5": {"country": "FR"}})

        tag = tag_address(provider, "203.0.113.5")

        assert tag == GeoTag(country="FR", region="", city="Unknown", ip="203.0.113.5")

    def test_geo_tag_result_is_used_as_is(self):
        found = GeoTag(country="JP", region="13", city="Tokyo", ip="203.0.113.5")
        provider = Mock()
        provider.lookup.return_value = found

        assert tag_address(provider, "203.0.113.5") is found

    def test_lookup_failure_falls_back(self):
        provider = Mock()
        provider.lookup.side_effect = ValueError("corrupt database")

        assert tag_address(provider, "203.0.113.5") == GeoTag(ip="203.0.113.5")
