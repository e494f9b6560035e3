"""
Agora Backend: Database Session Management
===========================================

What:  Async SQLAlchemy engine, session factory, base model and the
       per-request session dependency.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.

Two ways to get a session:
    1. `get_db_session` (FastAPI dependency): one session per request,
       committed after the handler returns. Used by simple create paths
       (posts, comments, likes) where nothing happens after the commit.
    2. `async_session_factory` directly: used by services that must do work
       AFTER the commit (cascade deletion, file detach, orphan sweep). Those
       services open `async with factory() as s, s.begin():` themselves so
       the filesystem step provably runs after the transaction is durable.

Connection Pooling Strategy (PostgreSQL):
    pool_size=20, max_overflow=10, pool_pre_ping, pool_recycle=3600
    SQLite URLs (development, tests) use SQLAlchemy's default pool instead.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options only apply to server databases; SQLite rejects them."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


def create_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    """
    Build an async engine for `database_url`.

    SQLite ignores foreign keys unless asked per connection; the listener
    below turns them on so a files.post_id can never point at a missing post.
    """
    options = _engine_options(database_url)
    options.update(overrides)
    new_engine = create_async_engine(database_url, **options)
    if database_url.startswith("sqlite"):
        event.listen(new_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return new_engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: rows loaded inside a cascade are still readable
    # after the commit, when the response snapshot is built
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = create_engine(settings.database_url)
async_session_factory = create_session_factory(engine)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for migrations.
    """
    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: closes the session (returns connection to pool)
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


async def dispose_engine() -> None:
    """Close every pooled connection; called from the lifespan shutdown."""
    await engine.dispose()

