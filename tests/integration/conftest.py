"""Integration test fixtures using Docker.

Provides containerized Redis and PostgreSQL so locks, Lua scripts, SCAN
and the product repository run against the real servers.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from cacheaside.cache.redis import RedisStore
from cacheaside.models import Product
from cacheaside.persistence.repositories import ProductRepository
from tests.integration.docker_utils import DockerService, get_docker_client, run_container


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="session")
def docker_client():
    """Create a Docker client or skip if Docker is unavailable."""
    try:
        client = get_docker_client()
        client.ping()
    except Exception as exc:
        pytest.skip(f"Docker not available: {exc}")
    yield client
    client.close()


@pytest.fixture(scope="session")
def postgres_container(docker_client) -> Iterator[DockerService]:
    """Start PostgreSQL container for the test session."""
    env = {
        "POSTGRES_USER": "cacheaside",
        "POSTGRES_PASSWORD": "cacheaside",
        "POSTGRES_DB": "cacheaside",
    }
    with run_container(docker_client, "postgres:16-alpine", env=env, ports={"5432/tcp": None}) as pg:
        yield pg


@pytest.fixture(scope="session")
def redis_container(docker_client) -> Iterator[DockerService]:
    """Start Redis container for the test session."""
    with run_container(docker_client, "redis:7-alpine", ports={"6379/tcp": None}) as redis:
        yield redis


@pytest.fixture(scope="session")
def database_url(postgres_container: DockerService) -> str:
    return postgres_container.url(
        "postgresql+asyncpg", 5432, "/cacheaside", credentials="cacheaside:cacheaside"
    )


@pytest.fixture(scope="session")
def redis_url(redis_container: DockerService) -> str:
    return redis_container.url("redis", 6379, "/0")


@pytest_asyncio.fixture
async def redis_client(redis_url: str) -> AsyncIterator[Redis]:
    """Create a Redis client for tests, flushing the database afterwards."""
    import redis.asyncio as redis

    client = redis.from_url(redis_url, decode_responses=True)
    await _wait_for_redis(client)
    yield client
    await client.flushdb()
    await client.aclose()


@pytest_asyncio.fixture
async def redis_store(redis_client: Redis) -> RedisStore:
    return RedisStore(redis_client)


@pytest_asyncio.fixture
async def db_engine(database_url: str) -> AsyncIterator[AsyncEngine]:
    """Create async database engine with a fresh products table."""
    from cacheaside.persistence.tables import Base

    engine = create_async_engine(database_url, echo=False)
    await _wait_for_engine(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with product 42 already stored."""
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await ProductRepository(session).save(Product(id="42", name="Widget", price="9.99"))
        await session.commit()
    return factory


@pytest_asyncio.fixture
async def test_client(
    redis_client: Redis,
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncClient]:
    """API client wired to the real Redis and PostgreSQL containers."""
    from cacheaside.api.app import create_app
    from cacheaside.api.deps import get_store
    from cacheaside.persistence import db as db_module

    app = create_app()

    async def get_test_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[db_module.get_session] = get_test_session
    app.dependency_overrides[get_store] = lambda: RedisStore(redis_client)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


async def _wait_for_engine(engine: AsyncEngine, timeout: float = 30.0) -> None:
    """Wait for the database engine to accept connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            async with engine.connect():
                return
        except Exception:
            if time.monotonic() >= deadline:
                raise
            await asyncio.sleep(0.5)


async def _wait_for_redis(client: Redis, timeout: float = 30.0) -> None:
    """Wait for Redis to accept connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            await client.ping()
            return
        except Exception:
            if time.monotonic() >= deadline:
                raise
            await asyncio.sleep(0.5)
