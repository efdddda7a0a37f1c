"""Pytest fixtures for store integration tests.

Provides Docker-based Redis fixtures.
Tests skip gracefully when infrastructure is unavailable.
"""

import os
import subprocess
from collections.abc import AsyncIterator
from uuid import uuid4

import pytest
import pytest_asyncio
import redis.asyncio as redis


def docker_available() -> bool:
    """Check if Docker is available and running."""
    try:
        result = subprocess.run(
            ["docker", "info"],
            capture_output=True,
            timeout=5,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return False


def redis_available() -> bool:
    """Check if a Redis container is running, or TEST_REDIS_URL is set."""
    if os.environ.get("TEST_REDIS_URL"):
        return True
    if not docker_available():
        return False

    try:
        result = subprocess.run(
            ["docker", "compose", "ps", "--services", "--filter", "status=running"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        return "redis" in result.stdout
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return False


@pytest.fixture(scope="session")
def redis_url() -> str:
    """Get Redis URL for tests."""
    return os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/0")


async def _connect(redis_url: str, decode_responses: bool) -> redis.Redis:
    if not redis_available():
        pytest.skip("Redis not available (run 'docker compose up -d redis')")

    client = redis.from_url(redis_url, decode_responses=decode_responses)
    try:
        await client.ping()
    except (redis.ConnectionError, OSError):
        await client.aclose()
        pytest.skip("Redis connection failed")
    return client


@pytest_asyncio.fixture(scope="function")
async def redis_client(redis_url: str) -> AsyncIterator[redis.Redis]:
    """Text-mode Redis client, as used by the remote store."""
    client = await _connect(redis_url, decode_responses=True)
    yield client
    await client.aclose()


@pytest_asyncio.fixture(scope="function")
async def redis_bytes_client(redis_url: str) -> AsyncIterator[redis.Redis]:
    """Bytes-mode Redis client, as used by the device key-value store."""
    client = await _connect(redis_url, decode_responses=False)
    yield client
    await client.aclose()


@pytest.fixture
def namespace() -> str:
    """A unique key prefix for test isolation."""
    return f"test_{uuid4().hex[:12]}"


@pytest_asyncio.fixture
async def clean_redis(redis_client: redis.Redis, namespace: str):
    """Clean up Redis keys for the test namespace after each test."""
    yield

    async for key in redis_client.scan_iter(match=f"{namespace}*"):
        await redis_client.delete(key)
