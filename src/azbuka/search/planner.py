"""Turn raw queries into plans the evaluator can execute.

A plan carries an optional candidate set drawn from one of the indexes and a
residual predicate the evaluator must still check against each candidate's
normalized text. ``candidate_ids=None`` means the indexes could not narrow
the search and every document has to be scanned.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging

from azbuka.errors import CandidatesUnavailable
from azbuka.search.inverted_index import InvertedIndex, TokenOperator
from azbuka.search.normalize import NormalizationSettings, normalize_query
from azbuka.search.repository import SearchRepository
from azbuka.search.tokenizer import token_texts
from azbuka.search.transliteration import coerce_text
from azbuka.search.trigram_index import TrigramIndex


logger = logging.getLogger(__name__)


class SearchMode(str, Enum):
    SUBSTRING = "substring"
    LEXEME = "lexeme"
    PREFIX = "prefix"


@dataclass(frozen=True, slots=True)
class SubstringPredicate:
    needle: str

    def matches(self, normalized_text: str, tokens: list[str]) -> bool:
        return self.needle in normalized_text


@dataclass(frozen=True, slots=True)
class TokenPredicate:
    terms: tuple[str, ...]
    operator: TokenOperator = TokenOperator.AND

    def matches(self, normalized_text: str, tokens: list[str]) -> bool:
        present = set(tokens)
        if self.operator is TokenOperator.OR:
            return any(term in present for term in self.terms)
        return all(term in present for term in self.terms)


@dataclass(frozen=True, slots=True)
class PrefixPredicate:
    prefix: str
    terms: tuple[str, ...] = ()

    def matches(self, normalized_text: str, tokens: list[str]) -> bool:
        present = set(tokens)
        if not all(term in present for term in self.terms):
            return False
        return any(token.startswith(self.prefix) for token in tokens)


ResidualPredicate = SubstringPredicate | TokenPredicate | PrefixPredicate


@dataclass(frozen=True, slots=True)
class QueryPlan:
    mode: SearchMode
    raw_query: str
    normalized_query: str
    residual: ResidualPredicate | None
    candidate_ids: frozenset[int] | None = None

    @property
    def is_empty(self) -> bool:
        return self.residual is None

    @property
    def full_scan(self) -> bool:
        return self.residual is not None and self.candidate_ids is None

    def to_dict(self) -> dict[str, object]:
        return {
            "mode": self.mode.value,
            "raw_query": self.raw_query,
            "normalized_query": self.normalized_query,
            "full_scan": self.full_scan,
            "candidates": None if self.candidate_ids is None else sorted(self.candidate_ids),
        }


class QueryPlanner:
    """Normalizes queries exactly like documents and consults the indexes.

    Reads postings only; never writes.
    """

    def __init__(
        self,
        repository: SearchRepository,
        *,
        settings: NormalizationSettings,
        trigram_index: TrigramIndex | None = None,
        inverted_index: InvertedIndex | None = None,
    ) -> None:
        self._repository = repository
        self._settings = settings
        self._trigrams = trigram_index or TrigramIndex()
        self._tokens = inverted_index or InvertedIndex()

    def plan(
        self,
        raw_query: str | bytes,
        mode: SearchMode | str = SearchMode.SUBSTRING,
        *,
        operator: TokenOperator | str = TokenOperator.AND,
    ) -> QueryPlan:
        search_mode = SearchMode(mode)
        token_operator = TokenOperator(operator)
        raw_text = coerce_text(raw_query)
        normalized = normalize_query(raw_text, self._settings)

        if search_mode is SearchMode.SUBSTRING:
            return self._plan_substring(raw_text, normalized)
        if search_mode is SearchMode.LEXEME:
            return self._plan_lexeme(raw_text, normalized, token_operator)
        return self._plan_prefix(raw_text, normalized)

    def _plan_substring(self, raw_query: str, normalized: str) -> QueryPlan:
        needle = normalized.strip()
        if not needle:
            return QueryPlan(SearchMode.SUBSTRING, raw_query, normalized, residual=None)

        residual = SubstringPredicate(needle)
        try:
            with self._repository.reading() as connection:
                candidates = self._trigrams.candidates_for_substring(connection, needle)
        except CandidatesUnavailable:
            logger.warning("Substring query %r too short for trigram lookup; falling back to full scan", needle)
            return QueryPlan(SearchMode.SUBSTRING, raw_query, normalized, residual=residual)

        return QueryPlan(
            SearchMode.SUBSTRING,
            raw_query,
            normalized,
            residual=residual,
            candidate_ids=frozenset(candidates),
        )

    def _plan_lexeme(self, raw_query: str, normalized: str, operator: TokenOperator) -> QueryPlan:
        terms = tuple(dict.fromkeys(token_texts(normalized)))
        if not terms:
            return QueryPlan(SearchMode.LEXEME, raw_query, normalized, residual=None)

        with self._repository.reading() as connection:
            candidates = self._tokens.documents_for_token_set(connection, terms, operator)
        return QueryPlan(
            SearchMode.LEXEME,
            raw_query,
            normalized,
            residual=TokenPredicate(terms, operator),
            candidate_ids=frozenset(candidates),
        )

    def _plan_prefix(self, raw_query: str, normalized: str) -> QueryPlan:
        words = list(dict.fromkeys(token_texts(normalized)))
        if not words:
            return QueryPlan(SearchMode.PREFIX, raw_query, normalized, residual=None)

        prefix = words[-1]
        terms = tuple(word for word in words[:-1] if word != prefix)
        with self._repository.reading() as connection:
            candidates = self._tokens.documents_for_prefix(connection, prefix)
            if terms:
                candidates &= self._tokens.documents_for_token_set(connection, terms, TokenOperator.AND)
        return QueryPlan(
            SearchMode.PREFIX,
            raw_query,
            normalized,
            residual=PrefixPredicate(prefix, terms),
            candidate_ids=frozenset(candidates),
        )
