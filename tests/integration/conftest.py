"""Integration-test fixtures (require running PG with migrations applied).

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool stays valid across the whole session. When the
database is unreachable the tests are skipped rather than failed.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from src.main import app
from src.sl_common.database import engine

_INSERT_USER_SQL = text("""
    INSERT INTO users (id, username, is_active)
    VALUES (:id, :username, TRUE)
    ON CONFLICT (id) DO NOTHING
""")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def user_ids() -> list[str]:
    """Four fresh users in the users table; skips the module if PG is down."""
    ids = [f"it_{uuid.uuid4().hex[:10]}" for _ in range(4)]
    try:
        async with engine.begin() as conn:
            for uid in ids:
                await conn.execute(_INSERT_USER_SQL, {"id": uid, "username": uid})
    except (OSError, DBAPIError) as exc:
        pytest.skip(f"database unavailable: {exc}")
    return ids
