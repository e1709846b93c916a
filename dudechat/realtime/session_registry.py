"""
Session registry: the set of live sessions keyed by connection ID.

The registry only tracks membership. Status and partner transitions are
made by the session manager.
"""

import uuid

from .session_models import GeoTag, Session


class SessionRegistry:
    """Live sessions by connection ID."""

    def __init__(self, public_id_length: int = 8, default_name: str = "Anonymous") -> None:
        self.public_id_length = public_id_length
        self.default_name = default_name
        self._sessions: dict[str, Session] = {}

    def create(self, connection_id: str, geo_tag: GeoTag | None = None, display_name: str | None = None) -> Session:
        """Create an idle session with a fresh public ID, replacing any previous record."""
        session = Session(
            connection_id=connection_id,
            public_id=uuid.uuid4().hex[: self.public_id_length],
            geo_tag=geo_tag or GeoTag(),
            display_name=display_name or self.default_name,
        )
        self._sessions[connection_id] = session
        return session

    def get(self, connection_id: str) -> Session | None:
        return self._sessions.get(connection_id)

    def remove(self, connection_id: str) -> Session | None:
        return self._sessions.pop(connection_id, None)

    def snapshot(self) -> list[Session]:
        return list(self._sessions.values())

    def connection_ids(self) -> list[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions
