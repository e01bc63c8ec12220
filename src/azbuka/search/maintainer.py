"""Single write path that keeps the trigram and token indexes in lockstep."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import logging
import sqlite3
import threading

from azbuka.errors import DocumentNotFound, IndexInconsistency
from azbuka.search.inverted_index import InvertedIndex
from azbuka.search.normalize import NormalizationSettings, normalize
from azbuka.search.repository import SearchRepository
from azbuka.search.tokenizer import Token, tokenize
from azbuka.search.transliteration import coerce_text
from azbuka.search.trigram_index import TrigramIndex


logger = logging.getLogger(__name__)


class DocumentLocks:
    """Per-document-id mutexes, dropped once no caller holds or waits on them."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}
        self._waiters: dict[int, int] = {}

    @contextmanager
    def hold(self, document_id: int) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(document_id, threading.Lock())
            self._waiters[document_id] = self._waiters.get(document_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                remaining = self._waiters[document_id] - 1
                if remaining:
                    self._waiters[document_id] = remaining
                else:
                    del self._waiters[document_id]
                    del self._locks[document_id]

    def active(self) -> int:
        with self._guard:
            return len(self._locks)


@dataclass(frozen=True, slots=True)
class DerivedText:
    original_text: str
    normalized_text: str
    tokens: tuple[Token, ...]


@dataclass(slots=True)
class RebuildStats:
    documents: int = 0
    trigram_keys: int = 0
    tokens: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "documents": self.documents,
            "trigram_keys": self.trigram_keys,
            "tokens": self.tokens,
        }


class IndexMaintainer:
    """Applies ingest/update/delete transitions to both indexes atomically.

    Each transition is one SQLite transaction: a failure anywhere (bad input,
    storage error, membership mismatch) leaves both indexes as they were.
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
        self._locks = DocumentLocks()
        # Serializes ingest so new ids and source keys are claimed one at a time.
        self._ingest_lock = threading.Lock()

    @property
    def settings(self) -> NormalizationSettings:
        return self._settings

    def derive(self, text: str | bytes) -> DerivedText:
        """Normalize and tokenize *text*; raises before anything is written."""

        original = coerce_text(text)
        normalized = normalize(original, self._settings)
        return DerivedText(
            original_text=original,
            normalized_text=normalized,
            tokens=tuple(tokenize(normalized)),
        )

    def ingest(self, text: str | bytes, *, source_key: str | None = None) -> int:
        derived = self.derive(text)
        with self._ingest_lock:
            if source_key is not None and self._repository.find_by_source_key(source_key) is not None:
                raise ValueError(f"Source key is already indexed: {source_key}")
            with self._repository.transaction() as connection:
                document_id = self._repository.insert_document(
                    connection,
                    original_text=derived.original_text,
                    normalized_text=derived.normalized_text,
                    source_key=source_key,
                )
                self._insert_postings(connection, document_id, derived)
                self._verify(connection, document_id, expect_present=True)

        logger.info("Indexed document %s (%d tokens)", document_id, len(derived.tokens))
        return document_id

    def update(self, document_id: int, text: str | bytes) -> None:
        derived = self.derive(text)
        with self._locks.hold(document_id):
            with self._repository.transaction() as connection:
                self._require_document(connection, document_id)
                self._retract_postings(connection, document_id)
                self._repository.update_document(
                    connection,
                    document_id,
                    original_text=derived.original_text,
                    normalized_text=derived.normalized_text,
                )
                self._insert_postings(connection, document_id, derived)
                self._verify(connection, document_id, expect_present=True)

        logger.info("Reindexed document %s (%d tokens)", document_id, len(derived.tokens))

    def delete(self, document_id: int) -> None:
        with self._locks.hold(document_id):
            with self._repository.transaction() as connection:
                self._require_document(connection, document_id)
                self._retract_postings(connection, document_id)
                self._verify(connection, document_id, expect_present=False)
                self._repository.delete_document(connection, document_id)

        logger.info("Deleted document %s", document_id)

    def rebuild(self) -> RebuildStats:
        """Re-derive every document under the current settings and persist them.

        All documents are derived before anything is written, and the new
        postings and settings are committed together: if any document fails
        to normalize, the index keeps its previous form and settings.
        """

        stats = RebuildStats()
        with self._repository.transaction() as connection:
            rows = connection.execute("SELECT id, original_text FROM documents ORDER BY id ASC").fetchall()
            derived_rows = [(int(row["id"]), self.derive(row["original_text"])) for row in rows]

            for document_id, derived in derived_rows:
                self._retract_postings(connection, document_id)
                self._repository.set_normalized_text(connection, document_id, derived.normalized_text)
                stats.trigram_keys += self._insert_postings(connection, document_id, derived)
                self._verify(connection, document_id, expect_present=True)
                stats.documents += 1
                stats.tokens += len(derived.tokens)

            self._repository.store_settings(connection, self._settings)
        self._repository.run_maintenance()

        logger.info("Rebuilt indexes for %d documents", stats.documents)
        return stats

    def _require_document(self, connection: sqlite3.Connection, document_id: int) -> None:
        row = connection.execute("SELECT 1 FROM documents WHERE id = ?", (document_id,)).fetchone()
        if row is None:
            raise DocumentNotFound(document_id)

    def _insert_postings(self, connection: sqlite3.Connection, document_id: int, derived: DerivedText) -> int:
        keys = self._trigrams.insert(connection, document_id, derived.normalized_text)
        self._tokens.insert(connection, document_id, derived.tokens)
        return keys

    def _retract_postings(self, connection: sqlite3.Connection, document_id: int) -> None:
        self._trigrams.retract(connection, document_id)
        self._tokens.retract(connection, document_id)

    def _verify(self, connection: sqlite3.Connection, document_id: int, *, expect_present: bool) -> None:
        in_trigrams = self._trigrams.contains(connection, document_id)
        in_tokens = self._tokens.contains(connection, document_id)
        if in_trigrams != in_tokens:
            raise IndexInconsistency(
                document_id,
                f"trigram index present={in_trigrams}, token index present={in_tokens}",
            )
        if in_trigrams != expect_present:
            state = "missing from" if expect_present else "still present in"
            raise IndexInconsistency(document_id, f"{state} both indexes")
