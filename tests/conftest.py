"""Global pytest configuration and fixtures."""

import pytest

from cacheaside.cache.redis import RedisStore
from cacheaside.models import Product
from tests.fakes import WIDGET, CountingSource, FakeRedis


@pytest.fixture
def fake_redis() -> FakeRedis:
    """Fresh in-memory Redis double."""
    return FakeRedis()


@pytest.fixture
def store(fake_redis: FakeRedis) -> RedisStore:
    """RedisStore over the fake client."""
    return RedisStore(fake_redis)  # type: ignore[arg-type]


@pytest.fixture
def widget() -> Product:
    return WIDGET


@pytest.fixture
def source() -> CountingSource:
    """Backing source holding product 42."""
    return CountingSource([WIDGET])
