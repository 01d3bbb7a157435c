"""
Servekit — Database Session Management
======================================

What:  Async SQLAlchemy engine, session factory, request dependencies and
       lifecycle helpers.
How:   One engine per process with connection pooling. Each request gets its
       own session which commits on success and rolls back on error.

Dependencies offered to routes:
    get_db_session   → yields an AsyncSession (plain FastAPI Depends usage)
    use_db_session   → same session, also exposed as `request.state.db` so
                       MasterController subclasses find it in `all_data["db"]`
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    stop_after_attempt,
    wait_exponential_jitter,
)

from servekit.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if settings.database_dialect == "sqlite":
        # SQLite files need no pool; a fresh connection per session also keeps
        # aiosqlite connections from outliving the event loop that opened them
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


engine = create_async_engine(settings.database_url, **_engine_options())

# expire_on_commit=False: attributes stay readable after the request commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata is what Alembic tracks."""
    pass


# ── Session Scope ─────────────────────────────────────────────────────────
@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """
    One unit of work: commit when the block finishes without raising, roll
    back otherwise, and always return the connection to the pool.

    Also usable outside HTTP requests, e.g. in socket controllers:
        async with session_scope() as db:
            user = await user_repository.find(db, email=email)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Session Dependencies ──────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency providing one session per request."""
    async with session_scope() as session:
        yield session


async def use_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Middleware form of `get_db_session` for MasterController routes.

    Usage:
        CreateUser.post(router, "/users", [use_db_session])
        ...
        db = all_data["db"]
    """
    async with session_scope() as session:
        request.state.db = session
        yield session


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def verify_connection() -> None:
    """
    Run `SELECT 1`, retrying with backoff.

    Raises the last connection error once `db_connect_attempts` is exhausted
    so the server refuses to start against an unreachable database.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(settings.db_connect_attempts),
        wait=wait_exponential_jitter(initial=1, max=10, jitter=1),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
    logger.info("Database connection verified (%s)", settings.database_dialect)


async def create_tables() -> None:
    """Create any missing tables for the registered models."""
    # Imported for its side effect: registering models on Base.metadata
    from servekit import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close every pooled connection; called on shutdown."""
    await engine.dispose()
