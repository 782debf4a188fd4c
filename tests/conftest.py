"""
Serenity Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite with a
       StaticPool so all sessions share one connection). Service tests use
       `db_session` directly; API tests use `test_client`, whose requests
       run against the same database through a get_db_session override.

Fixture Hierarchy:
    Function-scoped:
    ├── db_engine:       in-memory engine with every table created
    ├── db_session:      AsyncSession for service-level tests
    ├── make_user:       factory that inserts a User into db_session
    ├── user / other_user
    ├── mock_db_session: AsyncMock session for pure unit tests
    ├── test_client:     HTTPX AsyncClient bound to a fresh app
    └── register:        helper that registers through the API and
                         returns (auth headers, user json)
"""

import os

# Override settings for testing BEFORE any serenity imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import serenity.models  # noqa: F401
from serenity.database import Base, get_db_session
from serenity.models.user import User


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(db_session):
    """
    Insert a user without going through bcrypt.

    Usage:
        async def test_x(make_user):
            bob = await make_user("bob", current_streak=6)
    """
    async def _make(username: str = "alice", **kwargs) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash="not-a-real-hash",
            **kwargs,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest_asyncio.fixture
async def user(make_user):
    return await make_user("alice")


@pytest_asyncio.fixture
async def other_user(make_user):
    return await make_user("bob")


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = row
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# API
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(db_engine):
    """
    HTTPX AsyncClient talking to a fresh app over ASGITransport.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from serenity.main import create_app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_db_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register(test_client):
    """Register through the API; returns (headers, user_json)."""
    async def _register(username: str = "alice", password: str = "password123"):
        response = await test_client.post(
            "/api/auth/register",
            json={"username": username, "email": f"{username}@example.com", "password": password},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]

    return _register
