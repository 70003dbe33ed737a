"""Read operations that fetch query terms from Redis."""

from typing import Union

import redis
from loguru import logger

from .models import QueryConfig, RetrievalMethod, RetrievedTermSet, format_bound
from .redis_client import translate_redis_errors


def _text(value: Union[str, bytes]) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class RedisTermStore:
    """
    Term lookups bound to a single leased connection.

    Connection and protocol failures surface as TransientStoreError;
    other Redis errors (e.g. WRONGTYPE) propagate unchanged.
    """

    def __init__(self, client: redis.Redis):
        self._client = client

    def members(self, key: str) -> RetrievedTermSet:
        """SMEMBERS: every member of the set, no scores."""
        logger.debug("Fetching smembers from Redis for key: {}", key)
        with translate_redis_errors("SMEMBERS"):
            members = self._client.smembers(key)
        return RetrievedTermSet.from_members(_text(member) for member in members)

    def range_by_score(
        self, key: str, score_min: float, score_max: float, descending: bool
    ) -> RetrievedTermSet:
        """
        Sorted-set members with score in [score_min, score_max], with scores.

        Args:
            key: Sorted set key
            score_min: Inclusive lower bound
            score_max: Inclusive upper bound
            descending: Walk from score_max down to score_min when True
        """
        low, high = format_bound(score_min), format_bound(score_max)
        if descending:
            logger.debug("Fetching zrevrangebyscore from Redis for key: {} ({}, {})", key, low, high)
            with translate_redis_errors("ZREVRANGEBYSCORE"):
                pairs = self._client.zrevrangebyscore(key, high, low, withscores=True)
        else:
            logger.debug("Fetching zrangebyscore from Redis for key: {} ({}, {})", key, low, high)
            with translate_redis_errors("ZRANGEBYSCORE"):
                pairs = self._client.zrangebyscore(key, low, high, withscores=True)
        return RetrievedTermSet.from_scored((_text(member), score) for member, score in pairs)

    def fetch(self, config: QueryConfig) -> RetrievedTermSet:
        """Run the read operation selected by config.method."""
        method = config.method
        if method is RetrievalMethod.SET_MEMBERS:
            return self.members(config.store_key)
        if method is RetrievalMethod.RANGE_BY_SCORE_DESC:
            return self.range_by_score(
                config.store_key, config.score_min, config.score_max, descending=True
            )
        if method is RetrievalMethod.RANGE_BY_SCORE_ASC:
            return self.range_by_score(
                config.store_key, config.score_min, config.score_max, descending=False
            )
        raise AssertionError(f"Unhandled retrieval method: {method}")
