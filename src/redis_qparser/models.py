"""Data models for query configuration, retrieved terms and compiled queries."""

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple

from loguru import logger

from .errors import ConfigurationError

DEFAULT_WEIGHT = 1.0

# Request parameter names understood by the parser
PARAM_METHOD = "method"
PARAM_KEY = "key"
PARAM_OPERATOR = "operator"
PARAM_USE_ANALYZER = "useAnalyzer"
PARAM_MIN = "min"
PARAM_MAX = "max"
PARAM_FIELD = "v"

_INFINITY_ALIASES = {
    "-inf": -math.inf,
    "+inf": math.inf,
    "inf": math.inf,
}


class RetrievalMethod(str, Enum):
    """Redis read operation used to fetch the terms."""

    SET_MEMBERS = "smembers"
    RANGE_BY_SCORE_DESC = "zrevrangebyscore"
    RANGE_BY_SCORE_ASC = "zrangebyscore"

    @property
    def uses_scores(self) -> bool:
        return self is not RetrievalMethod.SET_MEMBERS


class ClauseOperator(str, Enum):
    """How clauses are combined: every clause required, or any clause."""

    AND = "AND"
    OR = "OR"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ClauseOperator":
        """AND (any case) selects AND; everything else, including None, is OR."""
        if value is not None and value.strip().upper() == cls.AND.value:
            return cls.AND
        return cls.OR


def _fail(message: str) -> ConfigurationError:
    logger.error(message)
    return ConfigurationError(message)


def _parse_bound(name: str, raw: Optional[str], default: float) -> float:
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _INFINITY_ALIASES:
        return _INFINITY_ALIASES[value]
    try:
        parsed = float(value)
    except ValueError:
        raise _fail(f"Invalid {name} argument passed to RedisQParser: {raw!r}")
    if math.isnan(parsed):
        raise _fail(f"Invalid {name} argument passed to RedisQParser: {raw!r}")
    return parsed


def _parse_bool(raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() == "true"


def format_bound(value: float) -> str:
    """Render a score bound the way Redis expects it on the wire."""
    if value == math.inf:
        return "+inf"
    if value == -math.inf:
        return "-inf"
    return repr(float(value))


@dataclass(frozen=True)
class QueryConfig:
    """
    Immutable per-request configuration.

    Invariants (enforced at construction):
    - field_name and store_key are non-empty
    - method is a RetrievalMethod
    - max_retries >= 0
    """

    field_name: str
    store_key: str
    method: RetrievalMethod
    operator: ClauseOperator = ClauseOperator.OR
    use_field_analyzer: bool = True
    score_min: float = -math.inf
    score_max: float = math.inf
    max_retries: int = 0

    def __post_init__(self):
        if not isinstance(self.method, RetrievalMethod):
            raise _fail(f"Wrong Redis method: {self.method}")
        if not self.store_key:
            raise _fail("No key argument passed to RedisQParser")
        if not self.field_name:
            raise _fail("No field name passed to RedisQParser")
        if self.max_retries < 0:
            raise _fail(f"maxRetries must be >= 0, got {self.max_retries}")

    @classmethod
    def from_params(
        cls,
        params: Mapping[str, Optional[str]],
        field_name: Optional[str] = None,
        max_retries: int = 0,
    ) -> "QueryConfig":
        """
        Build a QueryConfig from string request parameters.

        Args:
            params: Request parameters (method, key, operator, useAnalyzer, min, max, v)
            field_name: Target field; falls back to the ``v`` parameter
            max_retries: Extra retrieval tries after the first one

        Returns:
            Validated QueryConfig

        Raises:
            ConfigurationError: If method, key, field or bounds are invalid
        """
        raw_method = params.get(PARAM_METHOD)
        if raw_method is None:
            raise _fail("No method argument passed to RedisQParser.")
        try:
            method = RetrievalMethod(raw_method)
        except ValueError:
            raise _fail(f"Wrong Redis method: {raw_method}")

        return cls(
            field_name=field_name or params.get(PARAM_FIELD) or "",
            store_key=params.get(PARAM_KEY) or "",
            method=method,
            operator=ClauseOperator.parse(params.get(PARAM_OPERATOR)),
            use_field_analyzer=_parse_bool(params.get(PARAM_USE_ANALYZER), True),
            score_min=_parse_bound(PARAM_MIN, params.get(PARAM_MIN), -math.inf),
            score_max=_parse_bound(PARAM_MAX, params.get(PARAM_MAX), math.inf),
            max_retries=max_retries,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


@dataclass(frozen=True)
class RetrievedTermSet:
    """
    Distinct terms fetched from Redis, with scores for sorted-set methods.

    ``terms`` keeps retrieval order; ``scores`` is None for SMEMBERS.
    """

    terms: Tuple[str, ...] = ()
    scores: Optional[Mapping[str, float]] = None

    @classmethod
    def from_members(cls, members) -> "RetrievedTermSet":
        return cls(terms=tuple(dict.fromkeys(members)))

    @classmethod
    def from_scored(cls, pairs) -> "RetrievedTermSet":
        scores = {}
        for member, score in pairs:
            scores[member] = float(score)
        return cls(terms=tuple(scores), scores=MappingProxyType(scores))

    @property
    def has_scores(self) -> bool:
        return bool(self.scores)

    def __len__(self) -> int:
        return len(self.terms)

    def __iter__(self) -> Iterator[str]:
        return iter(self.terms)


@dataclass(frozen=True)
class Clause:
    """One weighted term match against a field."""

    field_name: str
    term: bytes
    weight: float = DEFAULT_WEIGHT

    @property
    def text(self) -> str:
        return self.term.decode("utf-8")


@dataclass(frozen=True)
class CompiledQuery:
    """Boolean query over a single field; zero clauses matches nothing."""

    field_name: str
    operator: ClauseOperator
    clauses: Tuple[Clause, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.clauses)

    @property
    def is_empty(self) -> bool:
        return not self.clauses

    def pairs(self) -> frozenset:
        """Order-independent view: set of (token, weight) pairs."""
        return frozenset((clause.text, clause.weight) for clause in self.clauses)

    def to_dict(self) -> dict:
        return {
            "field": self.field_name,
            "operator": self.operator.value,
            "clauses": [
                {"term": clause.text, "weight": clause.weight} for clause in self.clauses
            ],
        }

    def __str__(self) -> str:
        prefix = "+" if self.operator is ClauseOperator.AND else ""
        parts = []
        for clause in self.clauses:
            part = f"{prefix}{clause.field_name}:{clause.text}"
            if clause.weight != DEFAULT_WEIGHT:
                part += f"^{clause.weight}"
            parts.append(part)
        return " ".join(parts)
