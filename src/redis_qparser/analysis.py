"""
Term analysis: turning a raw Redis term into normalized field tokens.

The field analyzer is normally supplied by the host (its schema); a
small regex-based StandardAnalyzer is provided for standalone use.
"""

import re
from dataclasses import dataclass, field
from typing import Iterator, Mapping, Optional, Protocol

from .errors import TokenizationError
from .models import QueryConfig

_WORD_PATTERN = re.compile(r"\w+")


class Analyzer(Protocol):
    """Produces the token stream for a piece of text in a given field."""

    def tokens(self, field_name: str, text: str) -> Iterator[str]:
        ...


class KeywordAnalyzer:
    """Emits the whole input as a single, untouched token."""

    def tokens(self, field_name: str, text: str) -> Iterator[str]:
        yield text


@dataclass
class StandardAnalyzer:
    """
    Lowercasing word tokenizer with optional stop words.

    Example:
        StandardAnalyzer(stop_words=frozenset({"the"})).tokens("title", "The Quick-Fox")
        # yields "quick", "fox"
    """

    stop_words: frozenset = field(default_factory=frozenset)
    lowercase: bool = True

    def tokens(self, field_name: str, text: str) -> Iterator[str]:
        if not text:
            return
        if self.lowercase:
            text = text.lower()
        for match in _WORD_PATTERN.finditer(text):
            token = match.group(0)
            if token not in self.stop_words:
                yield token


class FieldAnalyzers:
    """Per-field analyzer lookup with a default for unlisted fields."""

    def __init__(
        self,
        default: Optional[Analyzer] = None,
        fields: Optional[Mapping[str, Analyzer]] = None,
    ):
        self._default = default or StandardAnalyzer()
        self._fields = dict(fields or {})

    def for_field(self, field_name: str) -> Analyzer:
        return self._fields.get(field_name, self._default)

    def tokens(self, field_name: str, text: str) -> Iterator[str]:
        return self.for_field(field_name).tokens(field_name, text)


class TermTokenizer:
    """
    Lazily expands one raw term into the tokens that become clauses.

    With use_field_analyzer the field's analyzer runs (zero or more tokens);
    otherwise the term is passed through verbatim as exactly one token.
    """

    def __init__(self, field_name: str, analyzer: Analyzer, use_field_analyzer: bool = True):
        self.field_name = field_name
        self._analyzer = analyzer if use_field_analyzer else KeywordAnalyzer()

    @classmethod
    def for_config(cls, config: QueryConfig, schema: Optional[Analyzer] = None) -> "TermTokenizer":
        return cls(config.field_name, schema or FieldAnalyzers(), config.use_field_analyzer)

    def tokenize(self, term: str) -> Iterator[str]:
        """
        Yields:
            Normalized tokens for ``term``

        Raises:
            TokenizationError: If the analyzer fails while the stream is consumed
        """
        try:
            yield from self._analyzer.tokens(self.field_name, term)
        except Exception as exc:
            raise TokenizationError(
                f"Error processing token stream for {term!r} in field {self.field_name}: {exc}",
                term,
            ) from exc
