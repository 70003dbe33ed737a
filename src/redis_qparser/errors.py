"""Error taxonomy for Redis-backed query parsing."""

from typing import Optional


class QueryParserError(Exception):
    """Base class for every error raised by redis_qparser."""


class ConfigurationError(QueryParserError, ValueError):
    """
    Invalid request or plugin configuration.

    Raised synchronously while building a QueryConfig or plugin, before
    the store is ever contacted. Never retried.
    """


class TransientStoreError(QueryParserError):
    """Connection or protocol failure during a single retrieval try."""


class FatalRetrievalError(QueryParserError):
    """
    Retrieval could not produce a term set.

    Raised once the retry bound is exhausted, or immediately for
    store errors that retrying cannot fix (e.g. WRONGTYPE).
    """

    def __init__(self, message: str, attempts: int, key: Optional[str] = None):
        super().__init__(message)
        self.attempts = attempts
        self.key = key


class TokenizationError(QueryParserError):
    """Failure while consuming the token stream of one term."""

    def __init__(self, message: str, term: str):
        super().__init__(message)
        self.term = term
