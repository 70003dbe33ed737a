"""Term retrieval with a bounded number of tries."""

from typing import Callable

import redis
from loguru import logger

from .errors import FatalRetrievalError, TransientStoreError
from .models import QueryConfig, RetrievedTermSet
from .redis_client import RedisConnectionPool
from .store import RedisTermStore


class RetrievalPolicy:
    """
    Fetch a RetrievedTermSet for a QueryConfig, tolerating transient failures.

    Behaviour:
    - At most config.max_retries + 1 tries, each on a freshly leased connection
    - A successful fetch ends the loop, even when it returned no terms
    - Transient failures release the connection as broken and try again
    - Other Redis errors are not retried
    - Exhausting the tries raises FatalRetrievalError chained to the last failure

    The pool is the only shared state; the policy itself holds none and may
    be used from many threads at once.
    """

    def __init__(
        self,
        pool: RedisConnectionPool,
        store_factory: Callable[[redis.Redis], RedisTermStore] = RedisTermStore,
    ):
        self._pool = pool
        self._store_factory = store_factory

    def retrieve(self, config: QueryConfig) -> RetrievedTermSet:
        """
        Args:
            config: Validated query configuration

        Returns:
            Terms (and scores for sorted-set methods) from the first successful try

        Raises:
            FatalRetrievalError: If every try failed or Redis rejected the command
        """
        attempts = config.max_attempts
        last_error = None

        for attempt in range(1, attempts + 1):
            try:
                with self._pool.lease() as client:
                    return self._store_factory(client).fetch(config)
            except TransientStoreError as exc:
                last_error = exc
                logger.warning(
                    "Error fetching data from Redis for key {} (try {}/{}): {}",
                    config.store_key,
                    attempt,
                    attempts,
                    exc,
                )
            except redis.RedisError as exc:
                logger.error(
                    "Redis rejected {} for key {}: {}", config.method.value, config.store_key, exc
                )
                raise FatalRetrievalError(
                    f"Redis rejected {config.method.value} for key {config.store_key!r}: {exc}",
                    attempts=attempt,
                    key=config.store_key,
                ) from exc

        logger.error(
            "Giving up fetching data from Redis for key {} after {} tries",
            config.store_key,
            attempts,
        )
        raise FatalRetrievalError(
            f"Could not fetch {config.method.value} for key {config.store_key!r} "
            f"after {attempts} tries",
            attempts=attempts,
            key=config.store_key,
        ) from last_error
