"""
Test fixtures for the SkillLink API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - file_sessions: Session factory over a per-test SQLite file, for races
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Test client with a pre-registered user and JWT
  - register: Factory that registers a user and returns their id + auth headers
  - learner / teacher: Two registered users for connection tests
  - fund: Buys credits for a user through POST /credits/purchase
  - make_user: Inserts a user row directly, for service-level tests

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database — no state leaks between tests.
  - We override FastAPI's get_db dependency to inject our test session. The
    override commits on domain errors exactly like the real get_db, so a
    compensated ledger fault is persisted the same way in tests.
  - Multi-user tests pass per-request headers instead of mutating the shared
    client's default headers, so one client can act as several users.
"""

import os
import uuid

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.database import Base, get_db
from app.exceptions import SkillLinkError
from app.main import app
from app.models.user import User
from app.security import hash_password


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def file_sessions(tmp_path):
    """
    Session factory over a file-backed SQLite database.

    The in-memory engine shares one connection between all sessions, so
    two sessions there see each other's uncommitted writes. Tests that
    race two requests need real, independent connections.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'skilllink.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_engine):
    """
    Async HTTP test client with the test database injected.

    This overrides the get_db dependency so all requests hit the
    in-memory test database instead of the real one.
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except SkillLinkError:
                await session.commit()
                raise
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def register(client):
    """
    Factory fixture: register a user through the real endpoint.

    Returns a dict with the user's id, email, and ready-to-use headers:

        alice = await register("alice@example.com", "Alice Example")
        await client.get("/credits/balance", headers=alice["headers"])
    """

    async def _register(email: str, full_name: str, password: str = "SecurePass123!") -> dict:
        response = await client.post(
            "/auth/register",
            json={"email": email, "password": password, "full_name": full_name},
        )
        assert response.status_code == 201, f"Register failed: {response.text}"
        data = response.json()
        return {
            "id": data["user"]["id"],
            "email": email,
            "token": data["token"],
            "headers": {"Authorization": f"Bearer {data['token']}"},
        }

    return _register


@pytest_asyncio.fixture
async def authenticated_client(client, register):
    """
    Test client with a pre-registered user and JWT token.

    Registers a test user via the real endpoint, then sets the
    Authorization header on the client for all subsequent requests.
    """
    user = await register("testuser@example.com", "Test User")
    client.headers["Authorization"] = user["headers"]["Authorization"]
    return client


@pytest_asyncio.fixture
async def learner(register):
    """A registered user who requests skills."""
    return await register("learner@example.com", "Lena Learner")


@pytest_asyncio.fixture
async def teacher(register):
    """A registered user who offers skills."""
    return await register("teacher@example.com", "Theo Teacher")


@pytest_asyncio.fixture
async def fund(client):
    """Factory fixture: purchase credits for a user (amount as a decimal string)."""

    async def _fund(user: dict, amount: str) -> dict:
        response = await client.post(
            "/credits/purchase",
            json={"amount": amount},
            headers=user["headers"],
        )
        assert response.status_code == 200, f"Purchase failed: {response.text}"
        return response.json()

    return _fund


@pytest_asyncio.fixture
async def make_user(db_session):
    """Factory fixture: insert a user row directly (no HTTP, no token)."""

    async def _make_user(full_name: str = "Sam Sample") -> User:
        user = User(
            email=f"{uuid.uuid4().hex[:12]}@example.com",
            hashed_password=hash_password("SecurePass123!"),
            full_name=full_name,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user
