"""redis_qparser - boolean queries built from terms stored in Redis."""

__version__ = "0.1.0"

from .analysis import FieldAnalyzers, KeywordAnalyzer, StandardAnalyzer, TermTokenizer
from .errors import (
    ConfigurationError,
    FatalRetrievalError,
    QueryParserError,
    TokenizationError,
    TransientStoreError,
)
from .models import (
    Clause,
    ClauseOperator,
    CompiledQuery,
    QueryConfig,
    RetrievalMethod,
    RetrievedTermSet,
)
from .parser import RedisQueryParser, RedisQueryParserPlugin
from .query import QueryAssembler, compile_query
from .redis_client import RedisConnectionPool, ReleaseOutcome
from .retrieval import RetrievalPolicy

__all__ = [
    "Clause",
    "ClauseOperator",
    "CompiledQuery",
    "ConfigurationError",
    "FatalRetrievalError",
    "FieldAnalyzers",
    "KeywordAnalyzer",
    "QueryAssembler",
    "QueryConfig",
    "QueryParserError",
    "RedisConnectionPool",
    "RedisQueryParser",
    "RedisQueryParserPlugin",
    "ReleaseOutcome",
    "RetrievalMethod",
    "RetrievalPolicy",
    "RetrievedTermSet",
    "StandardAnalyzer",
    "TermTokenizer",
    "TokenizationError",
    "TransientStoreError",
    "compile_query",
    "__version__",
]
