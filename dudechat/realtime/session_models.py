"""
Data models for the session lifecycle.

A Session is the server-side record of one live participant and its pairing
state. Delivery describes one outbound event produced by the session
manager for the connection layer to send.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .envelope import utc_now_z


class SessionStatus(str, Enum):
    """Pairing state of a session."""

    IDLE = "idle"
    WAITING = "waiting"
    CHATTING = "chatting"


class InboundEvent(str, Enum):
    """Events a client may send over its connection, by wire name."""

    START_SEARCH = "startSearch"
    SIGNAL = "signal"
    ICE_RESTART = "iceRestart"
    CHAT_MESSAGE = "chatMessage"
    NEXT = "next"
    STOP = "stop"
    SEARCH_AGAIN = "searchAgain"
    REPORT = "report"


class OutboundEvent(str, Enum):
    """Events the server pushes to clients, by wire name."""

    ONLINE_COUNT = "onlineCount"
    MATCHED = "matched"
    SIGNAL = "signal"
    ICE_RESTART = "iceRestart"
    CHAT_MESSAGE = "chatMessage"
    PARTNER_DISCONNECTED = "partnerDisconnected"
    WELCOME = "welcome"


@dataclass(frozen=True)
class GeoTag:
    """Location metadata attached to a session at connect time."""

    country: str = "Unknown"
    region: str = ""
    city: str = "Unknown"
    ip: str = "localhost"

    def to_dict(self) -> dict[str, str]:
        return {"country": self.country, "region": self.region, "city": self.city, "ip": self.ip}


@dataclass
class Session:
    """
    One live connection and its pairing state.

    partner_id is only ever set while status is CHATTING.
    """

    connection_id: str
    public_id: str
    geo_tag: GeoTag = field(default_factory=GeoTag)
    display_name: str = "Anonymous"
    status: SessionStatus = SessionStatus.IDLE
    partner_id: str | None = None
    joined_at: str = field(default_factory=utc_now_z)

    @property
    def is_chatting(self) -> bool:
        return self.status is SessionStatus.CHATTING

    def to_admin_dict(self) -> dict[str, Any]:
        """Per-session entry of the admin listing."""
        return {
            "id": self.public_id,
            "name": self.display_name,
            "country": self.geo_tag.country or "Unknown",
            "city": self.geo_tag.city or "Unknown",
            "region": self.geo_tag.region or "",
            "status": self.status.value,
            "joined_at": self.joined_at,
            "ip": self.geo_tag.ip or "unknown",
        }


@dataclass(frozen=True)
class Delivery:
    """
    One outbound event.

    A target of None addresses every live connection (broadcast).
    """

    target: str | None
    event_type: OutboundEvent
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_broadcast(self) -> bool:
        return self.target is None
