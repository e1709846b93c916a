"""
API module for DudeChat.

HTTP and WebSocket routers: the real-time socket, liveness and admin
statistics.
"""

from .admin import admin_router
from .monitoring import monitoring_router
from .real_time import realtime_router

__all__ = [
    "admin_router",
    "monitoring_router",
    "realtime_router",
]
