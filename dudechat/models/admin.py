"""
Admin statistics models for DudeChat.

Fields are snake_case in Python and serialized in camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionSummary(_CamelModel):
    """One live session as shown to the operator."""

    id: str = Field(..., description="Public session ID")
    name: str
    country: str
    city: str
    region: str
    status: str = Field(..., description="idle, waiting or chatting")
    joined_at: str = Field(..., description="ISO 8601 UTC connect time")
    ip: str


class AdminStatsResponse(_CamelModel):
    """Operator view of the matchmaking engine."""

    total_connected: int
    active_chatting: int
    active_pairs: int
    waiting: int
    idle: int
    queue_length: int
    total_connections_ever: int
    total_matches_ever: int
    total_reports_ever: int
    server_started: str
    country_breakdown: dict[str, int]
    city_breakdown: dict[str, int]
    users: list[SessionSummary]


class UnauthorizedResponse(BaseModel):
    """Body of a rejected admin request."""

    error: str = "Unauthorized"
