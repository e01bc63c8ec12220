from __future__ import annotations

from pathlib import Path

from azbuka.search.inverted_index import TokenOperator
from azbuka.search.maintainer import IndexMaintainer
from azbuka.search.normalize import NormalizationSettings
from azbuka.search.planner import (
    PrefixPredicate,
    QueryPlanner,
    SearchMode,
    SubstringPredicate,
    TokenPredicate,
)
from azbuka.search.repository import SearchRepository


def _setup(tmp_path: Path) -> tuple[SearchRepository, IndexMaintainer, QueryPlanner]:
    repo = SearchRepository(tmp_path / "search.db")
    settings = NormalizationSettings()
    return repo, IndexMaintainer(repo, settings=settings), QueryPlanner(repo, settings=settings)


def test_cyrillic_and_latin_queries_produce_identical_plans(tmp_path: Path) -> None:
    repo, maintainer, planner = _setup(tmp_path)
    with repo:
        document_id = maintainer.ingest("Београд је главни град Србије")

        cyrillic = planner.plan("ГРАД", SearchMode.SUBSTRING)
        latin = planner.plan("grad", SearchMode.SUBSTRING)

    assert cyrillic.normalized_query == latin.normalized_query == "grad"
    assert cyrillic.candidate_ids == latin.candidate_ids == frozenset({document_id})
    assert cyrillic.residual == SubstringPredicate("grad")
    assert cyrillic.raw_query == "ГРАД"


def test_short_substring_query_falls_back_to_full_scan(tmp_path: Path) -> None:
    repo, maintainer, planner = _setup(tmp_path)
    with repo:
        maintainer.ingest("Ниш")
        plan = planner.plan("ни", "substring")

    assert plan.full_scan
    assert plan.candidate_ids is None
    assert plan.residual == SubstringPredicate("ni")


def test_lexeme_plan_uses_token_set(tmp_path: Path) -> None:
    repo, maintainer, planner = _setup(tmp_path)
    with repo:
        belgrade = maintainer.ingest("Београд је главни град")
        novi_sad = maintainer.ingest("Нови Сад није главни град")

        both = planner.plan("главни град", SearchMode.LEXEME)
        either = planner.plan("београд нови", SearchMode.LEXEME, operator=TokenOperator.OR)
        nothing = planner.plan("ograd", SearchMode.LEXEME)

    assert both.residual == TokenPredicate(("glavni", "grad"), TokenOperator.AND)
    assert both.candidate_ids == frozenset({belgrade, novi_sad})
    assert either.candidate_ids == frozenset({belgrade, novi_sad})
    assert nothing.candidate_ids == frozenset()
    assert not nothing.full_scan


def test_prefix_plan_combines_exact_terms_and_last_word_prefix(tmp_path: Path) -> None:
    repo, maintainer, planner = _setup(tmp_path)
    with repo:
        belgrade = maintainer.ingest("Београд је главни град")
        maintainer.ingest("Београд на води")

        plan = planner.plan("главни бео", "prefix")

    assert plan.residual == PrefixPredicate("beo", ("glavni",))
    assert plan.candidate_ids == frozenset({belgrade})


def test_empty_query_produces_empty_plan(tmp_path: Path) -> None:
    repo, _, planner = _setup(tmp_path)
    with repo:
        for mode in SearchMode:
            plan = planner.plan("   ", mode)
            assert plan.is_empty
            assert not plan.full_scan
        assert planner.plan(" ,. ", SearchMode.LEXEME).is_empty


def test_plan_serializes_for_explain_output(tmp_path: Path) -> None:
    repo, maintainer, planner = _setup(tmp_path)
    with repo:
        document_id = maintainer.ingest("град")
        payload = planner.plan("град", "lexeme").to_dict()

    assert payload == {
        "mode": "lexeme",
        "raw_query": "град",
        "normalized_query": "grad",
        "full_scan": False,
        "candidates": [document_id],
    }
