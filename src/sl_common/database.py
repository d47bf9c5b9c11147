"""Async SQLAlchemy engine, session factory and the per-request session dependency.

The pool is created lazily: asyncpg opens no connection until first use, so
importing this module (unit tests, alembic) needs no running database.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


class Base(DeclarativeBase):
    """Mappings for users, events, ledger_entries and payments."""


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

# expire_on_commit=False: rows read before commit stay usable for the response
async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request.

    The application service decides commit or rollback; the session is only
    closed here.
    """
    async with async_session_factory() as session:
        yield session


async def ping_database() -> None:
    """Fail fast at startup when PostgreSQL is unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
