"""
Helios — Database Engine & Session Management
===============================================

What:  Async SQLAlchemy engine factories, the declarative Base, and a
       transactional session scope.
How:   The Helios application handle owns one engine; handlers open a
       session per unit of work with `session_scope()` (through
       `Helios.db_session()`), which commits on success and rolls back on
       error.
When:  Engines are created by Helios.initialize() / Helios.before_test();
       sessions are created per request.

Engines:
    create_engine()         Durable store (DATABASE_URL)
    create_memory_engine()  In-memory SQLite for tests; StaticPool keeps the
                            single connection (and its data) alive between
                            checkouts
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """
    Base class for Helios ORM models.

    Models register with the application handle via Helios.register_model();
    only registered models are migrated and reset between tests.
    """
    pass


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the engine of the durable store (no connection is opened yet)."""
    return create_async_engine(database_url, echo=echo)


def create_memory_engine(database_url: str = "sqlite+aiosqlite:///:memory:") -> AsyncEngine:
    """Create an in-memory SQLite engine whose data survives across sessions."""
    return create_async_engine(
        database_url,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # expire_on_commit=False: objects stay readable after the scope commits
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def session_scope(factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a transactional session.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the caller
        3. On success: commits
        4. On error: rolls back and re-raises
        5. Always: closes the session (returns the connection to the pool)
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
