"""Pytest fixtures for store integration tests.

Tests skip gracefully when Redis is unavailable.
"""

import os
from collections.abc import AsyncIterator
from uuid import uuid4

import pytest
import pytest_asyncio
import redis.asyncio as redis


@pytest.fixture(scope="session")
def redis_url() -> str:
    """Get Redis URL for tests."""
    return os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/0")


@pytest_asyncio.fixture(scope="function")
async def redis_client(redis_url: str) -> AsyncIterator[redis.Redis]:
    """Create Redis client for tests.

    Skips tests if Redis is not available.
    Uses function scope to avoid event loop issues across tests.
    """
    client = redis.from_url(redis_url, decode_responses=True)

    try:
        await client.ping()
    except (redis.ConnectionError, OSError):
        await client.aclose()
        pytest.skip("Redis not available (set TEST_REDIS_URL)")

    yield client

    await client.aclose()


@pytest.fixture
def key_prefix() -> str:
    """Unique key prefix for test isolation."""
    return f"switchboard-test-{uuid4().hex}"


@pytest_asyncio.fixture
async def clean_redis(redis_client: redis.Redis, key_prefix: str) -> AsyncIterator[None]:
    """Clean up Redis keys for the test prefix after each test."""
    yield

    async for key in redis_client.scan_iter(match=f"{key_prefix}*"):
        await redis_client.delete(key)
