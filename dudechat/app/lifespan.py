"""Application lifecycle management for the DudeChat server."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger("dudechat.lifespan")

__all__ = ["lifespan"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    The session and connection managers are built by the app factory, so
    startup only reports the effective configuration.
    """
    config = app.state.config
    logger.info(
        "DudeChat server started",
        host=config.server.host,
        port=config.server.port,
        environment=config.logging.environment,
        geo_provider=type(app.state.connection_manager.session_manager.geo_provider).__name__,
    )
    if config.security.uses_default_admin_key:
        logger.warning("Admin statistics are protected by the default admin key; set ADMIN_KEY")

    yield

    connection_manager = app.state.connection_manager
    session_manager = connection_manager.session_manager
    logger.info(
        "Shutting down DudeChat server",
        online=session_manager.online_count,
        waiting=session_manager.queue_length,
        open_sockets=connection_manager.get_active_connection_count(),
        frames_delivered=connection_manager.delivery_stats["delivered"],
        frames_failed=connection_manager.delivery_stats["failed"],
    )
