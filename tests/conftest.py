"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Environment is pointed at SQLite (aiosqlite) BEFORE tasktrack is
   imported, because settings and the engine are module-level singletons.
2. Each test gets its own in-memory database. StaticPool keeps a single
   connection alive so every session sees the same tables.
3. The app's get_db dependency is overridden to hand out sessions from
   that test database.

bcrypt rounds are turned down so registration doesn't dominate runtime.
"""

import os

os.environ.setdefault("TASKTRACK_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TASKTRACK_BCRYPT_ROUNDS", "4")
os.environ.setdefault("TASKTRACK_JWT_SECRET", "test-secret-with-enough-length-for-hs256")

import uuid  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from tasktrack.db.engine import get_db  # noqa: E402
from tasktrack.db.models import Base  # noqa: E402
from tasktrack.main import app  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite://"
PASSWORD = "password_123"


@pytest_asyncio.fixture()
async def session_factory():
    """Session factory bound to a brand-new in-memory database."""
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """Session for service-level tests (no HTTP)."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with get_db overridden; the real auth pipeline runs.

    Learn: Unlike a mocked identity, tests register/login through the API
    and send real bearer tokens, because the token → principal path is
    exactly what we want covered.
    """
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    """Register a user through the API; returns the {token, user} body."""

    async def _make(username: str = "alice", role=None, email=None, password=PASSWORD) -> dict:
        body = {
            "username": username,
            "email": email or f"{username}-{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
        }
        if role:
            body["role"] = role
        r = await client.post("/api/register", json=body)
        assert r.status_code == 201, r.text
        return r.json()

    return _make
