"""
Pydantic response models for the DudeChat HTTP API.
"""

from .admin import AdminStatsResponse, SessionSummary, UnauthorizedResponse
from .health import HealthResponse

__all__ = [
    "AdminStatsResponse",
    "HealthResponse",
    "SessionSummary",
    "UnauthorizedResponse",
]
