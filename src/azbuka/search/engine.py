"""Public entry point wiring normalization, both indexes, and evaluation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from azbuka.errors import DocumentNotFound, SettingsMismatch
from azbuka.search.diacritics import fold_diacritics
from azbuka.search.evaluation import PlanEvaluator, SearchHit
from azbuka.search.inverted_index import InvertedIndex, TokenOperator
from azbuka.search.maintainer import IndexMaintainer, RebuildStats
from azbuka.search.normalize import DEFAULT_SETTINGS, NormalizationSettings, normalize
from azbuka.search.planner import QueryPlan, QueryPlanner, SearchMode
from azbuka.search.repository import DocumentRecord, SearchRepository
from azbuka.search.scoring import Scorer, occurrence_score
from azbuka.search.transliteration import transliterate
from azbuka.search.trigram_index import TrigramIndex

if TYPE_CHECKING:
    from azbuka.config import SearchSettings


logger = logging.getLogger(__name__)


class SearchEngine:
    """Two-script document search over one SQLite database.

    The normalization settings are stored in the database the first time it
    is opened. Reopening with different settings raises
    :class:`SettingsMismatch` unless ``rebuild_on_mismatch`` is set, in which
    case every document is re-derived under the new settings.
    """

    def __init__(
        self,
        repository: SearchRepository,
        *,
        settings: NormalizationSettings = DEFAULT_SETTINGS,
        default_operator: TokenOperator = TokenOperator.AND,
        scorer: Scorer = occurrence_score,
        rebuild_on_mismatch: bool = False,
    ) -> None:
        self._repository = repository
        self._settings = settings
        self._default_operator = default_operator
        trigram_index = TrigramIndex()
        inverted_index = InvertedIndex()
        self._maintainer = IndexMaintainer(
            repository,
            settings=settings,
            trigram_index=trigram_index,
            inverted_index=inverted_index,
        )
        self._planner = QueryPlanner(
            repository,
            settings=settings,
            trigram_index=trigram_index,
            inverted_index=inverted_index,
        )
        self._evaluator = PlanEvaluator(repository, scorer=scorer)
        self._check_settings(rebuild_on_mismatch=rebuild_on_mismatch)

    @classmethod
    def from_db_path(
        cls,
        db_path: str | Path,
        *,
        settings: NormalizationSettings = DEFAULT_SETTINGS,
        **kwargs,
    ) -> "SearchEngine":
        repository = SearchRepository(db_path)
        try:
            return cls(repository, settings=settings, **kwargs)
        except Exception:
            repository.close()
            raise

    @classmethod
    def from_settings(cls, settings: SearchSettings, **kwargs) -> "SearchEngine":
        repository = SearchRepository(settings.db_path)
        try:
            return cls(
                repository,
                settings=settings.normalization,
                default_operator=settings.lexeme_operator,
                **kwargs,
            )
        except Exception:
            repository.close()
            raise

    def close(self) -> None:
        self._repository.close()

    def __enter__(self) -> "SearchEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def repository(self) -> SearchRepository:
        return self._repository

    @property
    def settings(self) -> NormalizationSettings:
        return self._settings

    def _check_settings(self, *, rebuild_on_mismatch: bool) -> None:
        stored = self._repository.load_settings()
        if stored == self._settings:
            return
        if stored is None and self._repository.count_documents() == 0:
            with self._repository.transaction() as connection:
                self._repository.store_settings(connection, self._settings)
            return
        if not rebuild_on_mismatch:
            raise SettingsMismatch(
                f"Index at {self._repository.db_path} was built with {stored}, "
                f"requested {self._settings}; rebuild required"
            )
        logger.warning("Normalization settings changed from %s to %s; rebuilding", stored, self._settings)
        self._maintainer.rebuild()

    # -- writes ------------------------------------------------------------

    def ingest(self, text: str | bytes, *, source_key: str | None = None) -> int:
        return self._maintainer.ingest(text, source_key=source_key)

    def update(self, document_id: int, text: str | bytes) -> None:
        self._maintainer.update(document_id, text)

    def delete(self, document_id: int) -> None:
        self._maintainer.delete(document_id)

    def rebuild(self) -> RebuildStats:
        return self._maintainer.rebuild()

    # -- reads -------------------------------------------------------------

    def get_document(self, document_id: int) -> DocumentRecord:
        record = self._repository.get_document(document_id)
        if record is None:
            raise DocumentNotFound(document_id)
        return record

    def search(
        self,
        raw_query: str | bytes,
        mode: SearchMode | str = SearchMode.SUBSTRING,
        *,
        operator: TokenOperator | str | None = None,
    ) -> QueryPlan:
        return self._planner.plan(raw_query, mode, operator=operator or self._default_operator)

    def execute(self, plan: QueryPlan, *, limit: int = 10) -> list[SearchHit]:
        return self._evaluator.execute(plan, limit=limit)

    def find(
        self,
        raw_query: str | bytes,
        mode: SearchMode | str = SearchMode.SUBSTRING,
        *,
        operator: TokenOperator | str | None = None,
        limit: int = 10,
    ) -> list[SearchHit]:
        """Plan and execute in one call."""

        return self.execute(self.search(raw_query, mode, operator=operator), limit=limit)

    # -- pure helpers --------------------------------------------------------

    def normalize(self, text: str | bytes) -> str:
        return normalize(text, self._settings)

    @staticmethod
    def transliterate(text: str | bytes) -> str:
        return transliterate(text)

    @staticmethod
    def fold_diacritics(text: str) -> str:
        return fold_diacritics(text)
