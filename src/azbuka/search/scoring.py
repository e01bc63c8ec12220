"""Relevance score hook and deterministic result ordering."""

from __future__ import annotations

from collections.abc import Callable, Mapping

from azbuka.search.planner import PrefixPredicate, QueryPlan, SubstringPredicate, TokenPredicate


Scorer = Callable[[QueryPlan, str, list[str]], float]


def occurrence_score(plan: QueryPlan, normalized_text: str, tokens: list[str]) -> float:
    """Count how often the query matches the document; the default scorer."""

    residual = plan.residual
    if isinstance(residual, SubstringPredicate):
        return float(normalized_text.count(residual.needle))
    if isinstance(residual, TokenPredicate):
        wanted = set(residual.terms)
        return float(sum(1 for token in tokens if token in wanted))
    if isinstance(residual, PrefixPredicate):
        wanted = set(residual.terms)
        return float(sum(1 for token in tokens if token in wanted or token.startswith(residual.prefix)))
    return 0.0


def normalize_scores(scores: Mapping[int, float]) -> dict[int, float]:
    """Rescale raw scores (higher is better) to [0..1]."""

    if not scores:
        return {}

    minimum = min(scores.values())
    maximum = max(scores.values())
    if minimum == maximum:
        return {key: 1.0 for key in scores}

    span = maximum - minimum
    return {key: (value - minimum) / span for key, value in scores.items()}


def order_scores(scores: Mapping[int, float]) -> list[int]:
    """Return document ids by descending score, ties broken by ascending id."""

    return sorted(scores, key=lambda document_id: (-float(scores[document_id]), document_id))
