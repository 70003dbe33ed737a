"""Pytest fixtures and test utilities for the redis_qparser test suite."""

from typing import Any, Callable

import pytest
import redis
from loguru import logger

from tests.test_utils import FakePool

REDIS_TEST_URL = "redis://localhost:6379/15"


# ============================================================================
# FAKE POOL FIXTURES
# ============================================================================


@pytest.fixture
def fake_pool() -> Callable[..., FakePool]:
    """
    Factory fixture: ``fake_pool(client1, client2, ...)``.

    Returns:
        Callable creating a FakePool that leases the given clients in order
    """

    def _make(*clients: Any) -> FakePool:
        return FakePool(clients)

    return _make


# ============================================================================
# LOG CAPTURE FIXTURES
# ============================================================================


@pytest.fixture
def log_messages():
    """
    Capture loguru output at TRACE level and above.

    Yields:
        List of (level_name, message) tuples, appended as records arrive
    """
    messages = []
    handler_id = logger.add(
        lambda message: messages.append(
            (message.record["level"].name, message.record["message"])
        ),
        level="TRACE",
    )
    try:
        yield messages
    finally:
        logger.remove(handler_id)


# ============================================================================
# REDIS FIXTURES
# ============================================================================


@pytest.fixture
def redis_client():
    """
    Provide clean Redis connection with flush before and after test.

    Skips the test when no Redis server is reachable.

    Yields:
        Redis client on the dedicated test database
    """
    client = redis.Redis.from_url(
        REDIS_TEST_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
    )
    try:
        client.ping()
    except (redis.ConnectionError, redis.TimeoutError):
        client.close()
        pytest.skip("Redis server not available")

    try:
        client.flushdb()
        yield client
    finally:
        client.flushdb()
        client.close()
