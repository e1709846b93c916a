"""
DudeChat Server - Main Application Entry Point

Configures logging from the application configuration and exposes the
ASGI application for uvicorn.
"""

import uvicorn
from fastapi import FastAPI

from .app.factory import create_app
from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

config = get_config()
setup_enhanced_logging(config.to_legacy_dict())

logger = get_logger(__name__)
logger.info("Logging setup completed", environment=config.logging.environment)


def main() -> FastAPI:
    """Build the DudeChat application."""
    logger.info("Starting DudeChat server...")
    return create_app(config=config)


app = main()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(
        "dudechat.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=False,
        # Logging goes through structlog
        access_log=True,
        use_colors=False,
    )


if __name__ == "__main__":
    run()
