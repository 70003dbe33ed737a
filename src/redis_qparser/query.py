"""Assembly of retrieved terms into a single-field boolean query."""

from typing import Optional

from loguru import logger

from .analysis import Analyzer, TermTokenizer
from .errors import TokenizationError
from .models import DEFAULT_WEIGHT, Clause, CompiledQuery, QueryConfig, RetrievedTermSet
from .retrieval import RetrievalPolicy


class QueryAssembler:
    """
    Folds every token of every retrieved term into one CompiledQuery.

    All clauses share config.operator. A clause's weight is its source
    term's score when the term set carries a non-empty score map, and
    1.0 otherwise. A term whose token stream fails is logged and skipped
    as a whole.
    """

    def __init__(self, config: QueryConfig):
        self.config = config

    @staticmethod
    def weight_for(term: str, term_set: RetrievedTermSet) -> float:
        if term_set.has_scores:
            return term_set.scores.get(term, DEFAULT_WEIGHT)
        return DEFAULT_WEIGHT

    def assemble(self, term_set: RetrievedTermSet, tokenizer: TermTokenizer) -> CompiledQuery:
        field_name = self.config.field_name
        logger.debug(
            "Preparing a query for {} redis objects for field: {}", len(term_set), field_name
        )

        clauses = []
        for term in term_set:
            try:
                tokens = list(tokenizer.tokenize(term))
            except TokenizationError as exc:
                logger.error("Skipping term {!r}: {}", exc.term, exc)
                continue

            weight = self.weight_for(term, term_set)
            for counter, token in enumerate(tokens, start=1):
                logger.trace(
                    "Taking {} token from query string from {} for field: {}",
                    counter,
                    term,
                    field_name,
                )
                clauses.append(Clause(field_name, token.encode("utf-8"), weight))

        logger.debug(
            "Prepared a query for field {} with {} boolean clauses", field_name, len(clauses)
        )
        return CompiledQuery(field_name, self.config.operator, tuple(clauses))


def compile_query(
    config: QueryConfig,
    policy: RetrievalPolicy,
    tokenizer: Optional[TermTokenizer] = None,
    schema: Optional[Analyzer] = None,
) -> CompiledQuery:
    """
    Retrieve terms for ``config`` and compile them into a boolean query.

    Args:
        config: Validated query configuration
        policy: Retrieval policy bound to a connection pool
        tokenizer: Explicit tokenizer; built from config and schema when omitted
        schema: Field analyzers used when no tokenizer is given

    Returns:
        CompiledQuery with zero or more clauses

    Raises:
        FatalRetrievalError: If terms could not be fetched
    """
    term_set = policy.retrieve(config)
    if tokenizer is None:
        tokenizer = TermTokenizer.for_config(config, schema)
    return QueryAssembler(config).assemble(term_set, tokenizer)
