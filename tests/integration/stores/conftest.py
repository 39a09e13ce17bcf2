"""Pytest fixtures for store integration tests.

Tests skip gracefully when Redis is unavailable. Point
FRONTDESK_TEST_REDIS_URL at a disposable instance to run them.
"""

import os
from collections.abc import AsyncIterator
from uuid import uuid4

import pytest
import pytest_asyncio
import redis.asyncio as redis


@pytest.fixture(scope="session")
def redis_url() -> str | None:
    """Get Redis URL for tests."""
    return os.environ.get("FRONTDESK_TEST_REDIS_URL")


@pytest_asyncio.fixture(scope="function")
async def redis_client(redis_url: str | None) -> AsyncIterator[redis.Redis]:
    """Create Redis client for tests.

    Skips tests if Redis is not configured or not reachable.
    Uses function scope to avoid event loop issues across tests.
    """
    if not redis_url:
        pytest.skip("FRONTDESK_TEST_REDIS_URL not set")

    client = redis.from_url(redis_url, decode_responses=True)
    try:
        await client.ping()
    except redis.ConnectionError:
        await client.aclose()
        pytest.skip("Redis connection failed")

    yield client

    await client.aclose()


@pytest.fixture
def key_prefix() -> str:
    """Unique key prefix for test isolation."""
    return f"test_session_{uuid4().hex[:8]}"


@pytest_asyncio.fixture
async def clean_redis(redis_client: redis.Redis, key_prefix: str) -> AsyncIterator[None]:
    """Remove this test's keys afterwards."""
    yield
    keys = [key async for key in redis_client.scan_iter(match=f"{key_prefix}:*")]
    if keys:
        await redis_client.delete(*keys)
