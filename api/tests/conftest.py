"""Pytest configuration and shared fixtures.

This module provides:
- An in-memory SQLite database behind a real ConnectionCache
- Async session fixtures for repository/service tests
- FastAPI test client for route tests
- Clerk auth mocks
"""

# Set environment variables BEFORE any imports that read Settings
import os

from tests.factories import TEST_SIGNING_SECRET

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CLERK_WEBHOOK_SIGNING_SECRET", TEST_SIGNING_SECRET)
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import AsyncGenerator, Generator
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from core.config import clear_settings_cache
from core.database import ConnectionCache
from core.middleware import _wide_event

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_USER_ID = "user_test_123456789"


# =============================================================================
# Database Fixtures
# =============================================================================


def make_sqlite_cache() -> ConnectionCache:
    """A cache over a private in-memory database (one per call)."""
    return ConnectionCache(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest_asyncio.fixture
async def connection_cache() -> AsyncGenerator[ConnectionCache, None]:
    """Connected cache with the schema created."""
    cache = make_sqlite_cache()
    engine = await cache.get_connection()
    assert engine is not None

    yield cache

    await cache.dispose()


@pytest_asyncio.fixture
async def db_session(
    connection_cache: ConnectionCache,
) -> AsyncGenerator[AsyncSession, None]:
    """A session that commits on exit, like a request would."""
    async with connection_cache.session() as session:
        yield session


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest.fixture
def app(connection_cache: ConnectionCache) -> FastAPI:
    """FastAPI app wired to the test database.

    ASGITransport does not run the lifespan, so app state is set here.
    """
    from main import app as fastapi_app

    fastapi_app.state.connection_cache = connection_cache
    return fastapi_app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing routes."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# =============================================================================
# Auth Fixtures
# =============================================================================


@pytest.fixture
def test_user_id() -> str:
    """Default test user ID (matches Clerk's format)."""
    return TEST_USER_ID


@pytest.fixture
def mock_clerk_auth(test_user_id: str) -> Generator[MagicMock, None, None]:
    """Mock Clerk so every request is signed in as ``test_user_id``."""
    with patch("core.auth._clerk_client") as mock_client:
        mock_state = MagicMock()
        mock_state.is_signed_in = True
        mock_state.payload = {"sub": test_user_id, "sid": "sess_test"}

        mock_client.authenticate_request = MagicMock(return_value=mock_state)

        with patch("core.auth._clerk_initialized", True):
            yield mock_client


@pytest.fixture
def mock_clerk_unauthenticated() -> Generator[MagicMock, None, None]:
    """Mock Clerk to return unauthenticated state."""
    with patch("core.auth._clerk_client") as mock_client:
        mock_state = MagicMock()
        mock_state.is_signed_in = False
        mock_state.payload = None
        mock_state.reason = None

        mock_client.authenticate_request = MagicMock(return_value=mock_state)

        with patch("core.auth._clerk_initialized", True):
            yield mock_client


# =============================================================================
# Utility Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_wide_event() -> Generator[None, None, None]:
    """Each test starts outside any request."""
    token = _wide_event.set({})
    yield
    _wide_event.reset(token)
