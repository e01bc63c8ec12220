"""Reference evaluator: runs a query plan against the document store."""

from __future__ import annotations

from dataclasses import dataclass

from azbuka.search.planner import PrefixPredicate, QueryPlan, SubstringPredicate, TokenPredicate
from azbuka.search.repository import DocumentRecord, SearchRepository
from azbuka.search.scoring import Scorer, normalize_scores, occurrence_score, order_scores
from azbuka.search.tokenizer import tokenize


DEFAULT_EXCERPT_CHARS = 80
MAX_RESULT_LIMIT = 100
_FULL_SCAN_BATCH = 500


@dataclass(slots=True)
class SearchHit:
    document_id: int
    source_key: str | None
    original_text: str
    excerpt: str
    score: float
    raw_score: float

    def to_dict(self) -> dict[str, str | int | float | None]:
        return {
            "document_id": self.document_id,
            "source_key": self.source_key,
            "original_text": self.original_text,
            "excerpt": self.excerpt,
            "score": self.score,
            "raw_score": self.raw_score,
        }


def _match_span(plan: QueryPlan, normalized_text: str) -> tuple[int, int] | None:
    residual = plan.residual
    if isinstance(residual, SubstringPredicate):
        start = normalized_text.find(residual.needle)
        return None if start < 0 else (start, start + len(residual.needle))

    for token in tokenize(normalized_text):
        if isinstance(residual, TokenPredicate) and token.text in residual.terms:
            return token.start, token.stop
        if isinstance(residual, PrefixPredicate) and token.text.startswith(residual.prefix):
            return token.start, token.stop
    return None


def build_excerpt(plan: QueryPlan, normalized_text: str, *, width: int = DEFAULT_EXCERPT_CHARS) -> str:
    """Window of normalized text around the first match, marked with «»."""

    span = _match_span(plan, normalized_text)
    if span is None:
        return normalized_text[:width]

    start, stop = span
    left = max(0, start - width // 2)
    right = min(len(normalized_text), stop + width // 2)
    prefix = " … " if left > 0 else ""
    suffix = " … " if right < len(normalized_text) else ""
    return (
        f"{prefix}{normalized_text[left:start]}"
        f"«{normalized_text[start:stop]}»"
        f"{normalized_text[stop:right]}{suffix}"
    ).strip()


class PlanEvaluator:
    """Resolves candidates, applies the residual check, scores, and orders."""

    def __init__(self, repository: SearchRepository, *, scorer: Scorer = occurrence_score) -> None:
        self._repository = repository
        self._scorer = scorer

    def _iter_documents(self, plan: QueryPlan):
        if plan.candidate_ids is not None:
            yield from self._repository.fetch_documents(sorted(plan.candidate_ids))
            return

        offset = 0
        while True:
            batch = self._repository.iter_documents(limit=_FULL_SCAN_BATCH, offset=offset)
            yield from batch
            if len(batch) < _FULL_SCAN_BATCH:
                return
            offset += _FULL_SCAN_BATCH

    def matching(self, plan: QueryPlan) -> dict[int, tuple[DocumentRecord, float]]:
        """All documents passing the residual predicate with their raw scores."""

        if plan.residual is None:
            return {}

        matches: dict[int, tuple[DocumentRecord, float]] = {}
        for record in self._iter_documents(plan):
            tokens = [token.text for token in tokenize(record.normalized_text)]
            if not plan.residual.matches(record.normalized_text, tokens):
                continue
            matches[record.document_id] = (record, self._scorer(plan, record.normalized_text, tokens))
        return matches

    def execute(self, plan: QueryPlan, *, limit: int = 10) -> list[SearchHit]:
        safe_limit = max(1, min(limit, MAX_RESULT_LIMIT))
        matches = self.matching(plan)
        raw_scores = {document_id: score for document_id, (_, score) in matches.items()}
        scaled = normalize_scores(raw_scores)

        hits: list[SearchHit] = []
        for document_id in order_scores(raw_scores)[:safe_limit]:
            record, raw_score = matches[document_id]
            hits.append(
                SearchHit(
                    document_id=document_id,
                    source_key=record.source_key,
                    original_text=record.original_text,
                    excerpt=build_excerpt(plan, record.normalized_text),
                    score=scaled[document_id],
                    raw_score=raw_score,
                )
            )
        return hits
