"""
Host-facing adapter: plugin lifecycle and per-request parser.

The plugin owns the connection pool for its lifetime and hands out one
RedisQueryParser per request. Parsing itself is delegated to
compile_query.
"""

from typing import Any, Mapping, Optional

from loguru import logger

from .analysis import Analyzer, TermTokenizer
from .config import Config
from .errors import ConfigurationError
from .models import CompiledQuery, QueryConfig
from .query import compile_query
from .redis_client import RedisConnectionPool
from .retrieval import RetrievalPolicy

DEFAULT_PORT = 6379


def _int_arg(args: Mapping[str, Any], name: str, default: int, minimum: int) -> int:
    raw = args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.error("Invalid {} init argument: {!r}", name, raw)
        raise ConfigurationError(f"Invalid {name} init argument: {raw!r}")
    if value < minimum:
        logger.error("{} init argument must be >= {}, got {}", name, minimum, value)
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


class RedisQueryParser:
    """
    Prepares a query based on data fetched from Redis.

    The request is validated on construction, so a bad ``method`` or
    ``key`` fails before Redis is contacted.
    """

    def __init__(
        self,
        params: Mapping[str, Optional[str]],
        pool: RedisConnectionPool,
        field_name: Optional[str] = None,
        schema: Optional[Analyzer] = None,
        max_retries: int = 0,
    ):
        self.config = QueryConfig.from_params(params, field_name=field_name, max_retries=max_retries)
        self._policy = RetrievalPolicy(pool)
        self._tokenizer = TermTokenizer.for_config(self.config, schema)

    def parse(self) -> CompiledQuery:
        return compile_query(self.config, self._policy, self._tokenizer)


class RedisQueryParserPlugin:
    """
    Long-lived factory for RedisQueryParser instances.

    Init arguments (all optional, strings accepted):
    - host / port: Redis endpoint; REDIS_URL is used when host is absent
    - database: Redis DB index
    - password: Redis AUTH password
    - timeout: socket and connect timeout in milliseconds
    - maxConnections: pool size
    - retries: extra retrieval tries per query (maxRetries)
    """

    def __init__(
        self,
        init_args: Optional[Mapping[str, Any]] = None,
        pool: Optional[RedisConnectionPool] = None,
        schema: Optional[Analyzer] = None,
    ):
        args = dict(init_args or {})
        self.max_retries = _int_arg(args, "retries", Config.REDIS_MAX_RETRIES, minimum=0)
        self.schema = schema
        self._pool = pool or self._create_pool(args)
        logger.info("Initialized RedisQParser plugin (retries={})", self.max_retries)

    @staticmethod
    def _create_pool(args: Mapping[str, Any]) -> RedisConnectionPool:
        host = args.get("host")
        if host:
            port = _int_arg(args, "port", DEFAULT_PORT, minimum=1)
            url = f"redis://{host}:{port}"
        else:
            url = Config.REDIS_URL

        timeout_ms = _int_arg(args, "timeout", 0, minimum=0)
        timeout = timeout_ms / 1000.0 if timeout_ms else None

        return RedisConnectionPool.from_url(
            url,
            db=_int_arg(args, "database", Config.REDIS_DB, minimum=0),
            password=args.get("password") or Config.REDIS_PASSWORD,
            max_connections=_int_arg(
                args, "maxConnections", Config.REDIS_MAX_CONNECTIONS, minimum=1
            ),
            socket_connect_timeout=timeout,
            socket_timeout=timeout,
        )

    @property
    def pool(self) -> RedisConnectionPool:
        return self._pool

    def create_parser(
        self,
        params: Mapping[str, Optional[str]],
        field_name: Optional[str] = None,
        schema: Optional[Analyzer] = None,
    ) -> RedisQueryParser:
        """Build a parser on the shared pool; ``schema`` overrides the plugin schema."""
        return RedisQueryParser(
            params,
            self._pool,
            field_name=field_name,
            schema=schema if schema is not None else self.schema,
            max_retries=self.max_retries,
        )

    def close(self) -> None:
        self._pool.disconnect()

    def __enter__(self) -> "RedisQueryParserPlugin":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
