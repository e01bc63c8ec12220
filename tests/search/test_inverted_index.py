from __future__ import annotations

from pathlib import Path

import pytest

from azbuka.errors import IndexInconsistency
from azbuka.search.inverted_index import InvertedIndex, TokenOperator
from azbuka.search.repository import SearchRepository
from azbuka.search.tokenizer import tokenize


def _add(repo: SearchRepository, index: InvertedIndex, text: str) -> int:
    with repo.transaction() as connection:
        document_id = repo.insert_document(connection, original_text=text, normalized_text=text)
        index.insert(connection, document_id, tokenize(text))
    return document_id


def test_exact_token_lookup_matches_whole_words_only(tmp_path: Path) -> None:
    index = InvertedIndex()
    with SearchRepository(tmp_path / "search.db") as repo:
        belgrade = _add(repo, index, "beograd je glavni grad srbije")

        with repo.reading() as connection:
            assert index.documents_for_token(connection, "grad") == {belgrade}
            assert index.documents_for_token(connection, "ograd") == set()
            assert index.documents_for_token(connection, "gra") == set()


def test_token_set_and_or_modes(tmp_path: Path) -> None:
    index = InvertedIndex()
    with SearchRepository(tmp_path / "search.db") as repo:
        belgrade = _add(repo, index, "beograd je glavni grad")
        novi_sad = _add(repo, index, "novi sad je grad na dunavu")
        nis = _add(repo, index, "niš je na nišavi")

        with repo.reading() as connection:
            assert index.documents_for_token_set(connection, ["grad", "je"]) == {belgrade, novi_sad}
            assert index.documents_for_token_set(connection, ["grad", "dunavu"]) == {novi_sad}
            assert index.documents_for_token_set(
                connection, ["glavni", "nišavi"], TokenOperator.OR
            ) == {belgrade, nis}
            assert index.documents_for_token_set(connection, []) == set()


def test_duplicate_query_tokens_do_not_break_intersection(tmp_path: Path) -> None:
    index = InvertedIndex()
    with SearchRepository(tmp_path / "search.db") as repo:
        document_id = _add(repo, index, "grad grad")

        with repo.reading() as connection:
            assert index.documents_for_token_set(connection, ["grad", "grad"]) == {document_id}


def test_positions_and_term_frequencies(tmp_path: Path) -> None:
    index = InvertedIndex()
    with SearchRepository(tmp_path / "search.db") as repo:
        document_id = _add(repo, index, "grad je grad i grad")

        with repo.reading() as connection:
            assert index.positions(connection, document_id, "grad") == [0, 2, 4]
            assert index.term_frequencies(connection, document_id, ["grad", "je", "selo"]) == {
                "grad": 3,
                "je": 1,
                "selo": 0,
            }


def test_prefix_lookup_scans_token_keys(tmp_path: Path) -> None:
    index = InvertedIndex()
    with SearchRepository(tmp_path / "search.db") as repo:
        belgrade = _add(repo, index, "beograd je glavni grad")
        _add(repo, index, "novi sad")

        with repo.reading() as connection:
            assert index.documents_for_prefix(connection, "beo") == {belgrade}
            assert index.documents_for_prefix(connection, "gl") == {belgrade}
            assert index.documents_for_prefix(connection, "ograd") == set()
            assert index.documents_for_prefix(connection, "") == set()
            assert index.tokens_with_prefix(connection, "g") == ["glavni", "grad"]


def test_retract_removes_all_postings(tmp_path: Path) -> None:
    index = InvertedIndex()
    with SearchRepository(tmp_path / "search.db") as repo:
        removed = _add(repo, index, "grad grad selo")
        kept = _add(repo, index, "grad")

        with repo.transaction() as connection:
            assert index.retract(connection, removed) == 3

        with repo.reading() as connection:
            assert not index.contains(connection, removed)
            assert index.documents_for_token(connection, "grad") == {kept}
            row = connection.execute(
                "SELECT COUNT(*) AS c FROM token_postings WHERE token = 'selo'"
            ).fetchone()
            assert int(row["c"]) == 0


def test_reinsert_without_retract_is_rejected(tmp_path: Path) -> None:
    index = InvertedIndex()
    with SearchRepository(tmp_path / "search.db") as repo:
        document_id = _add(repo, index, "grad")

        with pytest.raises(IndexInconsistency):
            with repo.transaction() as connection:
                index.insert(connection, document_id, tokenize("grad"))
