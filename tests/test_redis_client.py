"""
Unit Tests for the pooled Redis client

Tests:
- lease() releases SUCCESS on clean exit and BROKEN on exceptions
- broken connections are disconnected before going back to the pool
- acquire failures surface as TransientStoreError
- from_url builds a blocking pool with lenient decoding
- health check and metrics instrumentation
"""

from unittest.mock import MagicMock, patch

import pytest
import redis

from src.redis_qparser import redis_client as redis_client_module
from src.redis_qparser.errors import TransientStoreError
from src.redis_qparser.redis_client import (
    InstrumentedRedis,
    RedisConnectionPool,
    ReleaseOutcome,
    check_redis_health,
    set_redis_metrics_handler,
    translate_redis_errors,
)


@pytest.fixture
def pool():
    return RedisConnectionPool(MagicMock(spec=redis.ConnectionPool))


@pytest.mark.unit
def test_lease_success_releases_for_reuse(pool):
    client = MagicMock()
    with patch.object(pool, "acquire", return_value=client), patch.object(
        pool, "release"
    ) as release:
        with pool.lease() as leased:
            assert leased is client

    release.assert_called_once_with(client, ReleaseOutcome.SUCCESS)


@pytest.mark.unit
def test_lease_exception_releases_broken(pool):
    client = MagicMock()
    with patch.object(pool, "acquire", return_value=client), patch.object(
        pool, "release"
    ) as release:
        with pytest.raises(RuntimeError):
            with pool.lease():
                raise RuntimeError("boom")

    release.assert_called_once_with(client, ReleaseOutcome.BROKEN)


@pytest.mark.unit
def test_release_broken_disconnects_then_closes(pool):
    client = MagicMock()
    connection = client.connection

    pool.release(client, ReleaseOutcome.BROKEN)

    connection.disconnect.assert_called_once()
    client.close.assert_called_once()


@pytest.mark.unit
def test_release_success_keeps_connection(pool):
    client = MagicMock()
    connection = client.connection

    pool.release(client, ReleaseOutcome.SUCCESS)

    connection.disconnect.assert_not_called()
    client.close.assert_called_once()


@pytest.mark.unit
def test_acquire_failure_is_transient(pool):
    with patch.object(
        redis_client_module,
        "InstrumentedRedis",
        side_effect=redis.ConnectionError("Connection refused"),
    ):
        with pytest.raises(TransientStoreError, match="connection acquire"):
            pool.acquire()


@pytest.mark.unit
def test_acquire_builds_single_connection_client(pool):
    with patch.object(redis_client_module, "InstrumentedRedis") as client_cls:
        pool.acquire()

    kwargs = client_cls.call_args.kwargs
    assert kwargs["connection_pool"] is pool.connection_pool
    assert kwargs["single_connection_client"] is True


@pytest.mark.unit
def test_from_url_disables_library_retries():
    pool = RedisConnectionPool.from_url("redis://localhost:6379", db=3, max_connections=4)

    kwargs = pool.connection_pool.connection_kwargs
    assert kwargs["db"] == 3
    assert kwargs["decode_responses"] is True
    assert kwargs["retry"]._retries == 0
    assert pool.connection_pool.max_connections == 4


@pytest.mark.unit
def test_from_url_builds_blocking_pool():
    pool = RedisConnectionPool.from_url("redis://localhost:6379", pool_timeout=1.5)

    assert isinstance(pool.connection_pool, redis.BlockingConnectionPool)
    assert pool.connection_pool.timeout == 1.5


@pytest.mark.unit
def test_from_url_pool_timeout_defaults_to_config():
    pool = RedisConnectionPool.from_url("redis://localhost:6379")

    assert pool.connection_pool.timeout == redis_client_module.Config.REDIS_POOL_TIMEOUT


@pytest.mark.unit
def test_from_url_decodes_invalid_utf8_leniently():
    """Replies that are not valid UTF-8 decode with replacement characters."""
    pool = RedisConnectionPool.from_url("redis://localhost:6379")

    assert pool.connection_pool.connection_kwargs["encoding_errors"] == "replace"
    encoder = pool.connection_pool.get_encoder()
    assert encoder.decode(b"a\xff") == "a\ufffd"


@pytest.mark.unit
@pytest.mark.parametrize(
    "error",
    [redis.ConnectionError("reset"), redis.TimeoutError("timeout")],
)
def test_translate_redis_errors_wraps_transient(error):
    with pytest.raises(TransientStoreError) as exc_info:
        with translate_redis_errors("SMEMBERS"):
            raise error

    assert exc_info.value.__cause__ is error


@pytest.mark.unit
def test_translate_redis_errors_passes_through_response_errors():
    with pytest.raises(redis.ResponseError):
        with translate_redis_errors("SMEMBERS"):
            raise redis.ResponseError("WRONGTYPE")


@pytest.mark.unit
def test_health_check_success(fake_pool):
    client = MagicMock()
    client.ping.return_value = True

    ok, message = check_redis_health(fake_pool(client))

    assert ok is True
    assert message == "Redis ping succeeded"


@pytest.mark.unit
def test_health_check_connection_failure(fake_pool):
    client = MagicMock()
    client.ping.side_effect = redis.ConnectionError("down")
    pool = fake_pool(client)

    ok, message = check_redis_health(pool)

    assert ok is False
    assert "Redis connection failed" in message
    assert pool.outcomes == [ReleaseOutcome.BROKEN]


@pytest.mark.unit
def test_instrumented_client_reports_metrics():
    handler = MagicMock()
    set_redis_metrics_handler(handler)
    try:
        with patch.object(redis.Redis, "execute_command", return_value="PONG"):
            client = InstrumentedRedis(connection_pool=MagicMock())
            assert client.execute_command("PING") == "PONG"
    finally:
        set_redis_metrics_handler(None)

    timing_call = handler.timing.call_args
    assert timing_call.args[0] == "redis.operation.duration_ms"
    assert timing_call.args[2] == {"command": "PING"}
    handler.increment.assert_called_once_with("redis.operation.count", 1, {"command": "PING"})
    handler.gauge.assert_not_called()
