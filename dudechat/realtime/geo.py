"""
Geo tagging of connecting addresses.

The actual location lookup is an injected capability: anything with a
``lookup(address)`` method returning a mapping (or GeoTag) with country,
region and city, or None when the address is unknown. Tagging never blocks
or fails a connect; every problem degrades to the "Unknown" fallback.
"""

from collections.abc import Mapping
from typing import Any, Protocol

from ..structured_logging.enhanced_logging_config import get_logger
from .session_models import GeoTag

logger = get_logger(__name__)

LOOPBACK_ADDRESSES = frozenset({"::1", "127.0.0.1"})


class GeoTagProvider(Protocol):
    """Location lookup capability."""

    def lookup(self, address: str) -> GeoTag | Mapping[str, Any] | None: ...


class UnknownGeoTagProvider:
    """Provider used when no location database is configured."""

    def lookup(self, address: str) -> None:
        return None


class StaticGeoTagProvider:
    """Dictionary-backed provider, keyed by address."""

    def __init__(self, table: Mapping[str, Mapping[str, Any]] | None = None):
        self.table = dict(table or {})

    def lookup(self, address: str) -> Mapping[str, Any] | None:
        return self.table.get(address)


def resolve_client_address(headers: Mapping[str, str], peer_host: str | None) -> str:
    """
    Resolve the originating address of a connection.

    Proxy headers take precedence over the socket peer: the first entry of
    X-Forwarded-For, then X-Real-IP. IPv4-mapped IPv6 prefixes are stripped
    and loopback addresses resolve to the empty string.
    """
    candidate = headers.get("x-forwarded-for") or headers.get("x-real-ip") or peer_host or ""
    address = candidate.split(",")[0].strip().replace("::ffff:", "")
    if address in LOOPBACK_ADDRESSES:
        return ""
    return address


def tag_address(provider: GeoTagProvider | None, address: str) -> GeoTag:
    """Build the GeoTag for an address, falling back to Unknown values."""
    if not address:
        return GeoTag()
    if provider is None:
        return GeoTag(ip=address)

    try:
        found = provider.lookup(address)
    except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: a lookup failure must never block connect
        logger.warning("Geo lookup failed", address=address, error=str(e), error_type=type(e).__name__)
        return GeoTag(ip=address)

    if found is None:
        return GeoTag(ip=address)
    if isinstance(found, GeoTag):
        return found

    return GeoTag(
        country=found.get("country") or "Unknown",
        region=found.get("region") or "",
        city=found.get("city") or "Unknown",
        ip=address,
    )
