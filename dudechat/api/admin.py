"""
Admin API endpoints for DudeChat.

The statistics endpoint is guarded by a shared secret passed as the ``key``
query parameter.
"""

import hmac

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from ..exceptions import AuthenticationError, ErrorContext
from ..models.admin import AdminStatsResponse, UnauthorizedResponse
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


def verify_admin_key(provided: str | None, expected: str, request: Request | None = None) -> None:
    """
    Compare the provided key against the configured secret in constant time.

    Raises:
        AuthenticationError: If the key is missing or wrong
    """
    if provided and hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        return
    client_host = request.client.host if request is not None and request.client else None
    raise AuthenticationError(
        "Invalid admin key",
        context=ErrorContext(event="admin_stats", metadata={"client": client_host, "key_present": bool(provided)}),
        auth_type="admin_key",
    )


@admin_router.get(
    "/stats",
    response_model=AdminStatsResponse,
    response_model_by_alias=True,
    responses={401: {"model": UnauthorizedResponse}},
)
async def get_admin_stats(request: Request, key: str | None = Query(None)):
    """Operator statistics: counts, lifetime totals, geo breakdowns and live sessions."""
    config = request.app.state.config
    try:
        verify_admin_key(key, config.security.admin_key, request)
    except AuthenticationError:
        return JSONResponse(status_code=401, content=UnauthorizedResponse().model_dump())

    session_manager = request.app.state.connection_manager.session_manager
    return AdminStatsResponse.model_validate(session_manager.get_stats())
