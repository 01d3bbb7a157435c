"""
Servekit — Test Configuration
=============================

Shared fixtures:

    mock_db_session   AsyncMock session for repository unit tests
    database          fresh SQLite schema (created before, dropped after a test)
    test_client       httpx AsyncClient bound to the real app (needs `database`)
    build_app         factory for small throwaway apps exercising the core
"""

import os
import tempfile

# Must run before any servekit import: settings and the engine read these
_test_dir = tempfile.mkdtemp(prefix="servekit_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_test_dir}/test.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DB_CONNECT_ATTEMPTS"] = "1"

from typing import Callable  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import APIRouter, FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402


@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession.

    Usage:
        mock_db_session.execute.return_value.scalars.return_value.first.return_value = user
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def database():
    """Create every table before the test and drop them afterwards."""
    from servekit.database import Base, engine
    from servekit import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def test_client(database):
    """HTTP client for the full application (lifespan is not run)."""
    from servekit.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def build_app() -> Callable[..., FastAPI]:
    """
    Build a minimal app: the production exception handlers plus whatever the
    `register` callbacks add to an APIRouter.

    Usage:
        app = build_app(lambda router: MyController.get(router, "/things"))
    """
    from servekit.main import register_exception_handlers
    from servekit.middleware.request_id import RequestIDMiddleware

    def _build(*register: Callable[[APIRouter], object]) -> FastAPI:
        app = FastAPI()
        app.add_middleware(RequestIDMiddleware)
        register_exception_handlers(app)
        router = APIRouter()
        for callback in register:
            callback(router)
        app.include_router(router)
        return app

    return _build


@pytest.fixture
def client_for():
    """Open an httpx AsyncClient against an arbitrary app."""

    def _client(app: FastAPI) -> AsyncClient:
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    return _client
