"""API test fixtures.

Runs the real application over httpx ASGITransport with the store and
source dependencies pointed at in-memory doubles.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from cacheaside.api.app import create_app
from cacheaside.api.deps import get_source, get_store
from cacheaside.cache.redis import RedisStore
from tests.fakes import CountingSource


@pytest_asyncio.fixture
async def app(store: RedisStore, source: CountingSource) -> AsyncIterator[FastAPI]:
    application = create_app()
    application.dependency_overrides[get_store] = lambda: store
    application.dependency_overrides[get_source] = lambda: source
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def api_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Create an API client against the app (lifespan is not run)."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
