"""
Test configuration and fixtures for the DudeChat test suite.

Environment variables are set before any dudechat import so that
module-level configuration loading sees test values.
"""

import os
from collections.abc import Generator

import pytest

os.environ.setdefault("SERVER_PORT", "54731")
os.environ.setdefault("SERVER_HOST", "127.0.0.1")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_DISABLE_LOGGING", "true")
TEST_ADMIN_KEY = "test-admin-key"
os.environ["SECURITY_ADMIN_KEY"] = TEST_ADMIN_KEY

# Imports must come after environment variables to prevent config loading failures
from fastapi.testclient import TestClient  # noqa: E402

from dudechat.app.factory import create_app  # noqa: E402
from dudechat.config import reset_config  # noqa: E402
from dudechat.config.models import MatchmakingConfig  # noqa: E402
from dudechat.realtime.connection_manager import ConnectionManager  # noqa: E402
from dudechat.realtime.session_manager import SessionManager  # noqa: E402


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """
    Reset config singleton before and after each test.

    In test mode, get_config() always returns fresh instances (no caching),
    but we still clear global state for consistency.
    """
    reset_config()
    yield
    reset_config()


@pytest.fixture
def session_manager() -> SessionManager:
    """Session manager with default limits and no geo lookup."""
    return SessionManager(config=MatchmakingConfig())


@pytest.fixture
def connection_manager(session_manager: SessionManager) -> ConnectionManager:
    return ConnectionManager(session_manager)


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """TestClient with the app lifespan running."""
    with TestClient(app) as test_client:
        yield test_client
