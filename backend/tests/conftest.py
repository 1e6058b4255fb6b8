"""Pytest fixtures for testing."""
from collections.abc import AsyncGenerator
from pathlib import Path

import jwt
import pytest
from fakeredis import FakeAsyncRedis, FakeServer
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import Settings, get_settings
from core.redis import RedisClient
from db.session import create_session_factory
from models.base import Base
from models.user import User

TEST_JWT_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


def make_token(user_id: int | str, secret: str = TEST_JWT_SECRET) -> str:
    """Create a signed bearer token for a user id."""
    return jwt.encode({"sub": str(user_id)}, secret, algorithm="HS256")


def auth_headers(user_id: int | str) -> dict[str, str]:
    """Authorization header for a user id."""
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """
    File-backed SQLite database, fresh for every test.

    A file (rather than :memory:) lets separate sessions and connections see
    each other's committed writes, as they would against a real server.
    """
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def settings(database_url: str) -> Settings:
    """Settings for tests, ignoring any local .env file."""
    return Settings(
        _env_file=None,
        database_url=database_url,
        jwt_secret=TEST_JWT_SECRET,
    )


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine with all tables."""
    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return create_session_factory(async_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """
    Session for arranging and inspecting test data.

    Tests commit explicitly when other sessions (user stores, API requests)
    need to see their writes.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
async def redis_client() -> AsyncGenerator[RedisClient]:
    """
    RedisClient backed by an in-process fake Redis server.

    Each test gets its own FakeServer, so no state leaks between tests.
    """
    client = RedisClient("redis://localhost:6379", enabled=True)
    client._client = FakeAsyncRedis(server=FakeServer())
    yield client
    await client.close()


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A committed user row."""
    user = User(
        auth0_id="auth0|cache-test-user",
        email="cachetest@example.com",
        name="Cache Test",
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def app(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    redis_client: RedisClient,
) -> FastAPI:
    """Application wired to the test database and fake Redis."""
    from api.main import configure_app_state, create_app

    application = create_app()
    configure_app_state(application, settings, session_factory, redis_client)
    application.dependency_overrides[get_settings] = lambda: settings
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create a test client for the wired application."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client
