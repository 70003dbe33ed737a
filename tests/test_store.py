"""Unit tests for RedisTermStore read operations."""

import math

import pytest
import redis

from src.redis_qparser.errors import TransientStoreError
from src.redis_qparser.models import QueryConfig, RetrievalMethod
from src.redis_qparser.store import RedisTermStore
from tests.test_utils import make_client


def _config(method: RetrievalMethod, **kwargs) -> QueryConfig:
    return QueryConfig(field_name="tag", store_key="terms", method=method, **kwargs)


@pytest.mark.unit
def test_fetch_smembers():
    client = make_client(smembers={"a", "b", "c"})

    term_set = RedisTermStore(client).fetch(_config(RetrievalMethod.SET_MEMBERS))

    client.smembers.assert_called_once_with("terms")
    assert set(term_set) == {"a", "b", "c"}
    assert term_set.scores is None


@pytest.mark.unit
def test_fetch_smembers_decodes_bytes():
    client = make_client(smembers={b"caf\xc3\xa9"})

    term_set = RedisTermStore(client).members("terms")

    assert list(term_set) == ["café"]


@pytest.mark.unit
def test_members_with_invalid_utf8_are_replaced_not_raised():
    client = make_client(smembers={b"a", b"\xff"})

    term_set = RedisTermStore(client).members("terms")

    assert set(term_set) == {"a", "\ufffd"}


@pytest.mark.unit
def test_fetch_zrevrangebyscore_walks_max_to_min():
    client = make_client(zrevrangebyscore=[("y", 2.5), ("x", 1.0)])

    term_set = RedisTermStore(client).fetch(_config(RetrievalMethod.RANGE_BY_SCORE_DESC))

    client.zrevrangebyscore.assert_called_once_with("terms", "+inf", "-inf", withscores=True)
    assert list(term_set) == ["y", "x"]
    assert dict(term_set.scores) == {"y": 2.5, "x": 1.0}


@pytest.mark.unit
def test_fetch_zrangebyscore_walks_min_to_max_within_bounds():
    client = make_client(zrangebyscore=[("x", 0.5)])
    config = _config(RetrievalMethod.RANGE_BY_SCORE_ASC, score_min=0.0, score_max=1.0)

    term_set = RedisTermStore(client).fetch(config)

    client.zrangebyscore.assert_called_once_with("terms", "0.0", "1.0", withscores=True)
    assert list(term_set) == ["x"]
    assert dict(term_set.scores) == {"x": 0.5}


@pytest.mark.unit
def test_fetch_range_empty_result():
    client = make_client(zrangebyscore=[])

    term_set = RedisTermStore(client).range_by_score("terms", -math.inf, math.inf, descending=False)

    assert len(term_set) == 0
    assert not term_set.has_scores


@pytest.mark.unit
@pytest.mark.parametrize(
    "error", [redis.ConnectionError("Connection reset by peer"), redis.TimeoutError("Timeout")]
)
def test_connection_failures_become_transient(error):
    client = make_client(smembers=error)

    with pytest.raises(TransientStoreError, match="SMEMBERS"):
        RedisTermStore(client).fetch(_config(RetrievalMethod.SET_MEMBERS))


@pytest.mark.unit
def test_wrong_type_error_is_not_transient():
    client = make_client(
        zrevrangebyscore=redis.ResponseError(
            "WRONGTYPE Operation against a key holding the wrong kind of value"
        )
    )

    with pytest.raises(redis.ResponseError):
        RedisTermStore(client).fetch(_config(RetrievalMethod.RANGE_BY_SCORE_DESC))
