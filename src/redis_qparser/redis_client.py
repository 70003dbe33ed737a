"""Shared Redis connection pool with scoped, outcome-tagged leases."""

import threading
import time
from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterator, Optional, Protocol, Tuple

import redis
from loguru import logger
from redis.backoff import NoBackoff
from redis.exceptions import InvalidResponse
from redis.retry import Retry

from .config import Config
from .errors import TransientStoreError

# Failures worth another try on a fresh connection
TRANSIENT_REDIS_ERRORS = (redis.ConnectionError, redis.TimeoutError, InvalidResponse)

_shared_pool: Optional["RedisConnectionPool"] = None
_shared_pool_lock = threading.Lock()
_redis_metrics_handler: Optional["RedisMetricsHandler"] = None


class RedisMetricsHandler(Protocol):
    """Optional metrics sink for Redis operation instrumentation."""

    def timing(self, name: str, value_ms: float, tags: dict[str, str]) -> None:
        """Record a timing metric in milliseconds."""

    def increment(self, name: str, value: int, tags: dict[str, str]) -> None:
        """Increment a counter metric."""


def set_redis_metrics_handler(handler: Optional["RedisMetricsHandler"]) -> None:
    """
    Register a metrics handler for Redis instrumentation.

    This can be used to integrate with Prometheus/StatsD clients without
    introducing a hard dependency in this module.
    """
    global _redis_metrics_handler
    _redis_metrics_handler = handler


def _safe_len(value: Any) -> int:
    if value is None:
        return 0
    try:
        return len(value)
    except TypeError:
        return 0


def _get_pool_stats(pool: redis.ConnectionPool) -> dict[str, float]:
    queue = getattr(pool, "pool", None)
    if queue is not None and hasattr(queue, "queue"):
        # BlockingConnectionPool: idle connections sit in the queue, empty
        # slots are None placeholders
        available = sum(1 for connection in list(queue.queue) if connection is not None)
        in_use = _safe_len(getattr(pool, "_connections", None)) - available
    else:
        in_use = _safe_len(getattr(pool, "_in_use_connections", None))
        available = _safe_len(getattr(pool, "_available_connections", None))
    max_connections = getattr(pool, "max_connections", None)
    return {
        "in_use": float(in_use),
        "available": float(available),
        "max": float(max_connections) if isinstance(max_connections, int) else 0.0,
    }


def _record_metrics(command: str, duration_ms: float) -> None:
    if _redis_metrics_handler is None:
        return
    tags = {"command": command}
    _redis_metrics_handler.timing("redis.operation.duration_ms", duration_ms, tags)
    _redis_metrics_handler.increment("redis.operation.count", 1, tags)


class InstrumentedRedis(redis.Redis):
    """Redis client that records per-command timing metrics."""

    def execute_command(self, *args: Any, **options: Any) -> Any:
        command = "unknown"
        if args:
            command = args[0]
            if isinstance(command, bytes):
                command = command.decode("utf-8", errors="ignore")
            else:
                command = str(command)
        start_time = time.perf_counter()
        try:
            return super().execute_command(*args, **options)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000.0
            _record_metrics(command, duration_ms)
            if duration_ms > Config.REDIS_SLOW_OPERATION_MS:
                logger.warning(
                    "Slow Redis operation detected (command={}, duration_ms={:.2f})",
                    command,
                    duration_ms,
                )


@contextmanager
def translate_redis_errors(operation: str) -> Iterator[None]:
    """Re-raise connection/protocol failures as TransientStoreError."""
    try:
        yield
    except TRANSIENT_REDIS_ERRORS as exc:
        raise TransientStoreError(f"Redis {operation} failed: {exc}") from exc


def _no_retry() -> Retry:
    # RetrievalPolicy owns the try budget
    return Retry(NoBackoff(), 0)


class ReleaseOutcome(str, Enum):
    """How a leased connection goes back to the pool."""

    SUCCESS = "success"
    BROKEN = "broken"


class RedisConnectionPool:
    """
    Thread-safe pool handing out single-connection Redis clients.

    Each lease owns exactly one connection between acquire and release.
    Acquire waits for a free connection while all of them are leased.
    A lease that exits with an exception is released as BROKEN: its socket
    is closed before the slot returns to the pool, so the next acquire
    gets a fresh connection.
    """

    def __init__(self, pool: redis.ConnectionPool):
        self._pool = pool

    @classmethod
    def from_url(
        cls,
        url: str,
        db: Optional[int] = None,
        password: Optional[str] = None,
        max_connections: Optional[int] = None,
        socket_connect_timeout: Optional[float] = None,
        socket_timeout: Optional[float] = None,
        pool_timeout: Optional[float] = None,
    ) -> "RedisConnectionPool":
        """
        Create a pool from a redis:// URL.

        Values embedded in the URL win over keyword arguments. When every
        connection is leased, acquire waits up to ``pool_timeout`` seconds
        for one to be released before failing.
        """
        kwargs: dict[str, Any] = {
            "encoding": "utf-8",
            "encoding_errors": "replace",
            "decode_responses": True,
            "max_connections": max_connections or Config.REDIS_MAX_CONNECTIONS,
            "socket_connect_timeout": socket_connect_timeout or Config.REDIS_SOCKET_CONNECT_TIMEOUT,
            "socket_timeout": socket_timeout or Config.REDIS_SOCKET_TIMEOUT,
            "retry": _no_retry(),
        }
        if db is not None:
            kwargs["db"] = db
        if password:
            kwargs["password"] = password
        return cls(
            redis.BlockingConnectionPool.from_url(
                url, timeout=pool_timeout or Config.REDIS_POOL_TIMEOUT, **kwargs
            )
        )

    @property
    def connection_pool(self) -> redis.ConnectionPool:
        return self._pool

    def acquire(self) -> InstrumentedRedis:
        """
        Check out one connection wrapped in a client.

        Raises:
            TransientStoreError: If no connection could be established
                or none was released within the pool timeout
        """
        with translate_redis_errors("connection acquire"):
            client = InstrumentedRedis(
                connection_pool=self._pool,
                single_connection_client=True,
                retry=_no_retry(),
            )
        _log_pool_stats(self._pool, "acquire")
        return client

    def release(self, client: redis.Redis, outcome: ReleaseOutcome) -> None:
        """Return a leased connection, discarding its socket when BROKEN."""
        connection = client.connection
        if outcome is ReleaseOutcome.BROKEN and connection is not None:
            logger.debug("Discarding broken Redis connection")
            connection.disconnect()
        client.close()

    @contextmanager
    def lease(self) -> Iterator[InstrumentedRedis]:
        """
        Scoped acquisition: released on every exit path.

        Yields:
            Client bound to a single pooled connection
        """
        client = self.acquire()
        outcome = ReleaseOutcome.BROKEN
        try:
            yield client
            outcome = ReleaseOutcome.SUCCESS
        finally:
            self.release(client, outcome)

    def stats(self) -> dict[str, float]:
        return _get_pool_stats(self._pool)

    def disconnect(self) -> None:
        self._pool.disconnect()


def _log_pool_stats(pool: redis.ConnectionPool, context: str) -> None:
    stats = _get_pool_stats(pool)
    logger.trace(
        "Redis pool {}: in_use={}, idle={}, max={}",
        context,
        int(stats["in_use"]),
        int(stats["available"]),
        int(stats["max"]),
    )


def get_connection_pool() -> RedisConnectionPool:
    """Get or create the process-wide pool configured from Config."""
    global _shared_pool

    with _shared_pool_lock:
        if _shared_pool is None:
            _shared_pool = RedisConnectionPool.from_url(
                Config.REDIS_URL,
                db=Config.REDIS_DB,
                password=Config.REDIS_PASSWORD,
                max_connections=Config.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=Config.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
            )
            logger.debug("Created shared Redis pool for {}", Config.REDIS_URL)
        return _shared_pool


def close_connection_pool() -> None:
    """Disconnect and forget the process-wide pool."""
    global _shared_pool

    with _shared_pool_lock:
        if _shared_pool is not None:
            _shared_pool.disconnect()
            _shared_pool = None


def check_redis_health(pool: Optional[RedisConnectionPool] = None) -> Tuple[bool, str]:
    """Ping Redis to verify connectivity and return status."""
    try:
        with (pool or get_connection_pool()).lease() as client:
            result = client.ping()
        if result is True or result == "PONG":
            return True, "Redis ping succeeded"
        return False, f"Unexpected Redis ping response: {result}"
    except (TransientStoreError, redis.ConnectionError, redis.TimeoutError) as exc:
        return False, f"Redis connection failed: {exc}"
    except redis.RedisError as exc:
        return False, f"Redis health check error: {exc}"
