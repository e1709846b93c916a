"""
Session manager: matchmaking and session lifecycle for DudeChat.

The SessionManager owns the session registry, the waiting queue and the
lifetime counters, and is the only code that mutates them. Every operation
runs to completion under a single lock and returns the outbound deliveries
it produced; the connection layer sends them once the lock is released, so
no state change ever waits on network I/O.

Pairing policy: when one side of a chat skips, stops, searches again or
disconnects, the abandoned partner is told and left idle. It is never
re-queued or re-matched until it asks for a partner itself.
"""

import threading
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from ..config.models import MatchmakingConfig
from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import utc_now_z
from .geo import GeoTagProvider, UnknownGeoTagProvider, tag_address
from .session_models import Delivery, InboundEvent, OutboundEvent, Session, SessionStatus
from .session_registry import SessionRegistry
from .waiting_queue import WaitingQueue

logger = get_logger(__name__)


def _scalar_text(value: Any) -> str | None:
    """Text form of a string or number payload field; None for any other type."""
    # bool is an int subclass but never a valid name or message
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, int | float):
        return str(value)
    return None


@dataclass
class SessionStats:
    """Lifetime counters since process start."""

    total_connections: int = 0
    total_matches: int = 0
    total_reports: int = 0
    started_at: str = field(default_factory=utc_now_z)


class SessionManager:
    """
    Owns all pairing state and implements the session state machine.

    Public operations take a connection ID, treat a missing session as a
    no-op, and return the list of deliveries to send.
    """

    def __init__(
        self,
        geo_provider: GeoTagProvider | None = None,
        config: MatchmakingConfig | None = None,
    ) -> None:
        self.config = config or MatchmakingConfig()
        self.geo_provider: GeoTagProvider = geo_provider or UnknownGeoTagProvider()
        self._registry = SessionRegistry(
            public_id_length=self.config.public_id_length,
            default_name=self.config.default_name,
        )
        self._queue = WaitingQueue()
        self._stats = SessionStats()
        self._lock = threading.RLock()
        self._handlers: dict[InboundEvent, Callable[[str, Any], list[Delivery]]] = {
            InboundEvent.START_SEARCH: self.start_search,
            InboundEvent.SIGNAL: self.relay_signal,
            InboundEvent.ICE_RESTART: lambda connection_id, _data: self.relay_ice_restart(connection_id),
            InboundEvent.CHAT_MESSAGE: self.relay_chat,
            InboundEvent.NEXT: lambda connection_id, _data: self.skip(connection_id),
            InboundEvent.STOP: lambda connection_id, _data: self.stop(connection_id),
            InboundEvent.SEARCH_AGAIN: lambda connection_id, _data: self.search_again(connection_id),
            InboundEvent.REPORT: self.report,
        }

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self, connection_id: str, address: str = "") -> tuple[Session, list[Delivery]]:
        """Create an idle, geo-tagged session and announce the new presence count."""
        geo_tag = tag_address(self.geo_provider, address)
        with self._lock:
            session = self._registry.create(connection_id, geo_tag)
            self._stats.total_connections += 1
            logger.info(
                "Session connected",
                connection_id=connection_id,
                public_id=session.public_id,
                city=geo_tag.city,
                country=geo_tag.country,
                online=len(self._registry),
            )
            return replace(session), [self.broadcast_online()]

    def disconnect(self, connection_id: str) -> list[Delivery]:
        """
        Tear down a closed connection.

        The partner, if any, is told and left idle; the session leaves the
        queue and the registry; everyone left gets the new presence count.
        """
        with self._lock:
            session = self._registry.get(connection_id)
            if session is None:
                return []
            deliveries = self._notify_partner_lost(self.unpair(connection_id))
            self._queue.remove(connection_id)
            self._registry.remove(connection_id)
            logger.info(
                "Session disconnected",
                connection_id=connection_id,
                public_id=session.public_id,
                online=len(self._registry),
            )
            deliveries.append(self.broadcast_online())
            return deliveries

    # ------------------------------------------------------------------
    # Matchmaking
    # ------------------------------------------------------------------

    def request_match(self, connection_id: str) -> list[Delivery]:
        """
        Pair the requester with the longest-waiting valid candidate, or queue it.

        The requester triggered the match, so it is the initiator (offer
        maker) of the peer connection negotiation that follows.
        """
        with self._lock:
            requester = self._registry.get(connection_id)
            if requester is None or requester.is_chatting:
                return []

            self._queue.remove(connection_id)
            candidate_id = self._queue.pop_first_valid(connection_id, self._is_waiting_candidate)

            if candidate_id is None:
                requester.status = SessionStatus.WAITING
                requester.partner_id = None
                self._queue.enqueue(connection_id)
                logger.debug("Session waiting for a partner", connection_id=connection_id, queue_length=len(self._queue))
                return []

            candidate = self._registry.get(candidate_id)
            assert candidate is not None  # guaranteed by _is_waiting_candidate
            requester.status = SessionStatus.CHATTING
            requester.partner_id = candidate_id
            candidate.status = SessionStatus.CHATTING
            candidate.partner_id = connection_id
            self._stats.total_matches += 1

            logger.info(
                "Sessions matched",
                requester=requester.display_name,
                requester_city=requester.geo_tag.city,
                candidate=candidate.display_name,
                candidate_city=candidate.geo_tag.city,
                total_matches=self._stats.total_matches,
            )
            # partnerId is the public id; connection ids never leave the server
            return [
                Delivery(
                    connection_id,
                    OutboundEvent.MATCHED,
                    {"partnerId": candidate.public_id, "partnerName": candidate.display_name, "initiator": True},
                ),
                Delivery(
                    candidate_id,
                    OutboundEvent.MATCHED,
                    {"partnerId": requester.public_id, "partnerName": requester.display_name, "initiator": False},
                ),
                self.broadcast_online(),
            ]

    def unpair(self, connection_id: str) -> str | None:
        """
        Break the session's current pair, leaving both sides idle.

        Returns the former partner's connection ID so the caller can notify
        it. Never queues or matches either side.
        """
        with self._lock:
            session = self._registry.get(connection_id)
            if session is None or session.partner_id is None:
                return None

            partner_id = session.partner_id
            session.status = SessionStatus.IDLE
            session.partner_id = None

            partner = self._registry.get(partner_id)
            if partner is not None:
                partner.status = SessionStatus.IDLE
                partner.partner_id = None
            return partner_id

    # ------------------------------------------------------------------
    # Client events
    # ------------------------------------------------------------------

    def dispatch(self, connection_id: str, event: InboundEvent, data: Any = None) -> list[Delivery]:
        """Route one inbound client event to its handler."""
        handler = self._handlers.get(event)
        if handler is None:
            logger.warning("No handler for inbound event", connection_id=connection_id, inbound_event=str(event))
            return []
        return handler(connection_id, data)

    def start_search(self, connection_id: str, data: Any = None) -> list[Delivery]:
        """Set the display name, leave any current chat and look for a partner."""
        with self._lock:
            session = self._registry.get(connection_id)
            if session is None:
                return []
            raw_name = data.get("name") if isinstance(data, dict) else None
            session.display_name = self.clamp_name(raw_name)
            deliveries = self._notify_partner_lost(self.unpair(connection_id))
            deliveries.extend(self.request_match(connection_id))
            return deliveries

    def skip(self, connection_id: str) -> list[Delivery]:
        """Leave the current chat and look for the next partner."""
        with self._lock:
            if connection_id not in self._registry:
                return []
            deliveries = self._notify_partner_lost(self.unpair(connection_id))
            deliveries.extend(self.request_match(connection_id))
            return deliveries

    def stop(self, connection_id: str) -> list[Delivery]:
        """Leave the current chat or the queue and go idle."""
        with self._lock:
            session = self._registry.get(connection_id)
            if session is None:
                return []
            deliveries = self._notify_partner_lost(self.unpair(connection_id))
            self._queue.remove(connection_id)
            session.status = SessionStatus.IDLE
            session.partner_id = None
            return deliveries

    def search_again(self, connection_id: str) -> list[Delivery]:
        """Look for a partner without changing the name; never interrupts a chat."""
        with self._lock:
            session = self._registry.get(connection_id)
            if session is None or session.is_chatting:
                return []
            return self.request_match(connection_id)

    def relay_signal(self, connection_id: str, data: Any = None) -> list[Delivery]:
        """Forward an opaque negotiation payload to the partner."""
        with self._lock:
            partner_id = self._partner_of(connection_id)
            if partner_id is None:
                return []
            return [Delivery(partner_id, OutboundEvent.SIGNAL, {"payload": data})]

    def relay_ice_restart(self, connection_id: str) -> list[Delivery]:
        """Forward a negotiation restart request to the partner."""
        with self._lock:
            partner_id = self._partner_of(connection_id)
            if partner_id is None:
                return []
            return [Delivery(partner_id, OutboundEvent.ICE_RESTART)]

    def relay_chat(self, connection_id: str, data: Any = None) -> list[Delivery]:
        """Forward chat text, truncated, tagged with the sender's display name."""
        with self._lock:
            partner_id = self._partner_of(connection_id)
            if partner_id is None:
                return []
            text = self.clamp_chat(data.get("text") if isinstance(data, dict) else None)
            if text is None:
                return []
            sender = self._registry.get(connection_id)
            assert sender is not None  # _partner_of found it
            return [
                Delivery(
                    partner_id,
                    OutboundEvent.CHAT_MESSAGE,
                    {"text": text, "from": sender.display_name},
                )
            ]

    def report(self, connection_id: str, data: Any = None) -> list[Delivery]:
        """Record a report about the current partner. Logging only."""
        with self._lock:
            session = self._registry.get(connection_id)
            reason = data.get("reason") if isinstance(data, dict) else None
            self._stats.total_reports += 1
            logger.warning(
                "Session report received",
                reporter=session.display_name if session else None,
                reporter_public_id=session.public_id if session else None,
                reason=str(reason) if reason else "?",
            )
            return []

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def get_session(self, connection_id: str) -> Session | None:
        """Return a copy of the session, or None."""
        with self._lock:
            session = self._registry.get(connection_id)
            return replace(session) if session is not None else None

    @property
    def online_count(self) -> int:
        with self._lock:
            return len(self._registry)

    @property
    def queue_length(self) -> int:
        with self._lock:
            return len(self._queue)

    def waiting_ids(self) -> list[str]:
        with self._lock:
            return self._queue.snapshot()

    def connection_ids(self) -> list[str]:
        with self._lock:
            return self._registry.connection_ids()

    def get_stats(self) -> dict[str, Any]:
        """Aggregate counts, geo breakdowns and the per-session listing."""
        with self._lock:
            sessions = self._registry.snapshot()
            by_status = Counter(session.status for session in sessions)
            chatting = by_status[SessionStatus.CHATTING]
            return {
                "total_connected": len(sessions),
                "active_chatting": chatting,
                "active_pairs": chatting // 2,
                "waiting": by_status[SessionStatus.WAITING],
                "idle": by_status[SessionStatus.IDLE],
                "queue_length": len(self._queue),
                "total_connections_ever": self._stats.total_connections,
                "total_matches_ever": self._stats.total_matches,
                "total_reports_ever": self._stats.total_reports,
                "server_started": self._stats.started_at,
                "country_breakdown": dict(Counter(s.geo_tag.country or "Unknown" for s in sessions)),
                "city_breakdown": dict(Counter(s.geo_tag.city or "Unknown" for s in sessions)),
                "users": [session.to_admin_dict() for session in sessions],
            }

    def validate_consistency(self) -> list[str]:
        """
        Check the pairing invariants and return a description of each violation.

        An empty list means the registry and queue are consistent.
        """
        issues: list[str] = []
        with self._lock:
            queued = self._queue.snapshot()
            if len(queued) != len(set(queued)):
                issues.append("Waiting queue contains duplicate entries")
            for connection_id in queued:
                session = self._registry.get(connection_id)
                if session is None:
                    issues.append(f"Queued connection {connection_id} has no session")
                elif session.status is not SessionStatus.WAITING:
                    issues.append(f"Queued connection {connection_id} is {session.status.value}")
                elif session.partner_id is not None:
                    issues.append(f"Queued connection {connection_id} has a partner")
            for session in self._registry.snapshot():
                if session.status is SessionStatus.WAITING and session.connection_id not in queued:
                    issues.append(f"Waiting session {session.connection_id} is not queued")
                if session.status is not SessionStatus.CHATTING:
                    if session.partner_id is not None:
                        issues.append(f"{session.status.value} session {session.connection_id} has a partner")
                    continue
                partner = self._registry.get(session.partner_id) if session.partner_id else None
                if partner is None:
                    issues.append(f"Chatting session {session.connection_id} has no live partner")
                elif not partner.is_chatting or partner.partner_id != session.connection_id:
                    issues.append(f"Pairing of {session.connection_id} is not symmetric")
        return issues

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def clamp_name(self, name: Any) -> str:
        """
        Display name from client input, clamped to the maximum length.

        Strings and numbers are accepted; anything else, or an empty value,
        yields the default name.
        """
        text = _scalar_text(name)
        if not text:
            return self.config.default_name
        return text[: self.config.max_name_length]

    def clamp_chat(self, text: Any) -> str | None:
        """Chat text clamped to the maximum length, or None when it is not text."""
        value = _scalar_text(text)
        if not value:
            return None
        return value[: self.config.max_chat_length]

    def _is_waiting_candidate(self, connection_id: str) -> bool:
        session = self._registry.get(connection_id)
        return session is not None and session.status is SessionStatus.WAITING and session.partner_id is None

    def _partner_of(self, connection_id: str) -> str | None:
        session = self._registry.get(connection_id)
        return session.partner_id if session is not None else None

    def _notify_partner_lost(self, partner_id: str | None) -> list[Delivery]:
        if partner_id is None or partner_id not in self._registry:
            return []
        return [Delivery(partner_id, OutboundEvent.PARTNER_DISCONNECTED)]

    def broadcast_online(self) -> Delivery:
        """Presence broadcast carrying the live session count."""
        with self._lock:
            return Delivery(None, OutboundEvent.ONLINE_COUNT, {"count": len(self._registry)})
