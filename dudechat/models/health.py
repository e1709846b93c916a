"""
Health monitoring models for DudeChat.

Pydantic models for the liveness endpoint response.
"""

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Liveness response: process uptime and current population."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"status": "ok", "uptime": 3600.5, "users": 12, "waiting": 1}}
    )

    status: str = Field("ok", description="Always 'ok' while the process is serving")
    uptime: float = Field(..., description="Seconds since the server started")
    users: int = Field(..., description="Live sessions")
    waiting: int = Field(..., description="Entries in the waiting queue")
