"""
Monitoring API endpoints for DudeChat.
"""

import time

from fastapi import APIRouter, Request

from ..models.health import HealthResponse

monitoring_router = APIRouter(prefix="/api", tags=["monitoring"])


@monitoring_router.get("/health", response_model=HealthResponse)
async def get_health(request: Request) -> HealthResponse:
    """Unauthenticated liveness check with current population counts."""
    session_manager = request.app.state.connection_manager.session_manager
    started = getattr(request.app.state, "started_monotonic", time.monotonic())
    return HealthResponse(
        status="ok",
        uptime=round(time.monotonic() - started, 3),
        users=session_manager.online_count,
        waiting=session_manager.queue_length,
    )
