"""
FastAPI application factory for the DudeChat server.

This module handles FastAPI app creation, middleware configuration,
router registration and construction of the matchmaking engine.
"""

import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..api.admin import admin_router
from ..api.monitoring import monitoring_router
from ..api.real_time import realtime_router
from ..config import get_config
from ..config.models import AppConfig
from ..middleware.correlation_middleware import CorrelationMiddleware
from ..realtime.connection_manager import ConnectionManager
from ..realtime.geo import GeoTagProvider
from ..realtime.session_manager import SessionManager
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app(geo_provider: GeoTagProvider | None = None, config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    The session and connection managers are attached to ``app.state`` here
    rather than in the lifespan, so the app is usable without running
    startup events.

    Args:
        geo_provider: Location lookup used to tag connecting addresses
        config: Application configuration; loaded from the environment when omitted

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    config = config or get_config()

    app = FastAPI(
        title="DudeChat API",
        description="Anonymous one-on-one video and text chat matchmaking",
        version="0.1.0",
        lifespan=lifespan,
    )

    cors_cfg = config.cors
    logger.info(
        "CORS configuration",
        allow_origins=cors_cfg.allow_origins,
        allow_methods=cors_cfg.allow_methods,
        allow_headers=cors_cfg.allow_headers,
        allow_credentials=cors_cfg.allow_credentials,
        max_age=cors_cfg.max_age,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_cfg.allow_origins,
        allow_credentials=cors_cfg.allow_credentials,
        allow_methods=cors_cfg.allow_methods,
        allow_headers=cors_cfg.allow_headers,
        max_age=cors_cfg.max_age,
    )
    app.add_middleware(CorrelationMiddleware)

    session_manager = SessionManager(geo_provider=geo_provider, config=config.matchmaking)
    app.state.config = config
    app.state.connection_manager = ConnectionManager(session_manager)
    app.state.started_monotonic = time.monotonic()

    app.include_router(monitoring_router)
    app.include_router(admin_router)
    app.include_router(realtime_router)

    return app
