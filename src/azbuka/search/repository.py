"""Repository primitives for document records, index settings, and source state."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
import sqlite3
import threading

from azbuka.errors import StorageUnavailable
from azbuka.search.normalize import NormalizationSettings
from azbuka.search.schema import apply_runtime_pragmas, ensure_schema, optimize


MEMORY_DB_PATH = ":memory:"


@dataclass(slots=True)
class DocumentRecord:
    document_id: int
    original_text: str
    normalized_text: str
    created_at: str
    updated_at: str
    source_key: str | None = None

    def to_dict(self) -> dict[str, str | int | None]:
        return {
            "document_id": self.document_id,
            "source_key": self.source_key,
            "original_text": self.original_text,
            "normalized_text": self.normalized_text,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(slots=True)
class SourceStateRow:
    source_key: str
    document_id: int
    fingerprint: str
    mtime_ns: int


_DOCUMENT_COLUMNS = "id, source_key, original_text, normalized_text, created_at, updated_at"


def _to_record(row: sqlite3.Row) -> DocumentRecord:
    return DocumentRecord(
        document_id=int(row["id"]),
        source_key=row["source_key"],
        original_text=row["original_text"],
        normalized_text=row["normalized_text"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SearchRepository:
    """Thin transactional layer over the SQLite search schema.

    One connection is shared by every caller; ``_lock`` serializes all use of
    it so reads never interleave with half of a write transaction.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._lock = threading.RLock()
        try:
            self._connection = sqlite3.connect(self._db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            apply_runtime_pragmas(self._connection, in_memory=self._db_path == MEMORY_DB_PATH)
            ensure_schema(self._connection)
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"Cannot open search database {self._db_path}: {exc}") from exc

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    @property
    def db_path(self) -> str:
        return self._db_path

    def close(self) -> None:
        with self._lock:
            self._connection.close()

    def __enter__(self) -> "SearchRepository":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block as one transaction; any exception rolls it back."""

        with self._lock:
            try:
                with self._connection:
                    yield self._connection
            except sqlite3.Error as exc:
                raise StorageUnavailable(f"Search database write failed: {exc}") from exc

    @contextmanager
    def reading(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._connection
            except sqlite3.Error as exc:
                raise StorageUnavailable(f"Search database read failed: {exc}") from exc

    # -- documents -------------------------------------------------------

    def insert_document(
        self,
        connection: sqlite3.Connection,
        *,
        original_text: str,
        normalized_text: str,
        source_key: str | None = None,
    ) -> int:
        cursor = connection.execute(
            """
            INSERT INTO documents(source_key, original_text, normalized_text)
            VALUES(?, ?, ?)
            """,
            (source_key, original_text, normalized_text),
        )
        if cursor.lastrowid is None:
            raise RuntimeError("Document insert did not return a row id")
        return int(cursor.lastrowid)

    def update_document(
        self,
        connection: sqlite3.Connection,
        document_id: int,
        *,
        original_text: str,
        normalized_text: str,
    ) -> None:
        connection.execute(
            """
            UPDATE documents
            SET original_text = ?, normalized_text = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (original_text, normalized_text, document_id),
        )

    def set_normalized_text(self, connection: sqlite3.Connection, document_id: int, normalized_text: str) -> None:
        connection.execute(
            "UPDATE documents SET normalized_text = ? WHERE id = ?",
            (normalized_text, document_id),
        )

    def delete_document(self, connection: sqlite3.Connection, document_id: int) -> None:
        connection.execute("DELETE FROM documents WHERE id = ?", (document_id,))

    def get_document(self, document_id: int) -> DocumentRecord | None:
        with self.reading() as connection:
            row = connection.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?",
                (document_id,),
            ).fetchone()
        return None if row is None else _to_record(row)

    def find_by_source_key(self, source_key: str) -> DocumentRecord | None:
        with self.reading() as connection:
            row = connection.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE source_key = ?",
                (source_key,),
            ).fetchone()
        return None if row is None else _to_record(row)

    def fetch_documents(self, document_ids: list[int]) -> list[DocumentRecord]:
        if not document_ids:
            return []

        placeholders = ",".join("?" for _ in document_ids)
        with self.reading() as connection:
            rows = connection.execute(
                f"""
                SELECT {_DOCUMENT_COLUMNS}
                FROM documents
                WHERE id IN ({placeholders})
                ORDER BY id ASC
                """,
                tuple(document_ids),
            ).fetchall()
        return [_to_record(row) for row in rows]

    def iter_documents(self, *, limit: int | None = None, offset: int = 0) -> list[DocumentRecord]:
        if offset < 0:
            raise ValueError("offset cannot be negative")

        with self.reading() as connection:
            if limit is None:
                rows = connection.execute(
                    f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY id ASC"
                ).fetchall()
            else:
                if limit <= 0:
                    raise ValueError("limit must be positive")
                rows = connection.execute(
                    f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY id ASC LIMIT ? OFFSET ?",
                    (limit, offset),
                ).fetchall()
        return [_to_record(row) for row in rows]

    def count_documents(self) -> int:
        with self.reading() as connection:
            row = connection.execute("SELECT COUNT(*) AS c FROM documents").fetchone()
        return int(row["c"])

    # -- index settings --------------------------------------------------

    def load_settings(self) -> NormalizationSettings | None:
        with self.reading() as connection:
            rows = connection.execute("SELECT key, value FROM index_settings").fetchall()
        if not rows:
            return None
        return NormalizationSettings.from_dict({row["key"]: row["value"] for row in rows})

    def store_settings(self, connection: sqlite3.Connection, settings: NormalizationSettings) -> None:
        connection.executemany(
            """
            INSERT INTO index_settings(key, value) VALUES(?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value
            """,
            list(settings.to_dict().items()),
        )

    # -- source state ----------------------------------------------------

    def get_source_state(self, source_key: str) -> SourceStateRow | None:
        with self.reading() as connection:
            row = connection.execute(
                """
                SELECT source_key, document_id, fingerprint, mtime_ns
                FROM source_state
                WHERE source_key = ?
                """,
                (source_key,),
            ).fetchone()
        if row is None:
            return None
        return SourceStateRow(
            source_key=row["source_key"],
            document_id=int(row["document_id"]),
            fingerprint=row["fingerprint"],
            mtime_ns=int(row["mtime_ns"]),
        )

    def list_source_states(self) -> list[SourceStateRow]:
        with self.reading() as connection:
            rows = connection.execute(
                "SELECT source_key, document_id, fingerprint, mtime_ns FROM source_state ORDER BY source_key"
            ).fetchall()
        return [
            SourceStateRow(
                source_key=row["source_key"],
                document_id=int(row["document_id"]),
                fingerprint=row["fingerprint"],
                mtime_ns=int(row["mtime_ns"]),
            )
            for row in rows
        ]

    def upsert_source_state(self, state: SourceStateRow) -> None:
        with self.transaction() as connection:
            connection.execute(
                """
                INSERT INTO source_state(source_key, document_id, fingerprint, mtime_ns)
                VALUES(?, ?, ?, ?)
                ON CONFLICT(source_key) DO UPDATE SET
                    document_id=excluded.document_id,
                    fingerprint=excluded.fingerprint,
                    mtime_ns=excluded.mtime_ns,
                    indexed_at=CURRENT_TIMESTAMP
                """,
                (state.source_key, state.document_id, state.fingerprint, state.mtime_ns),
            )

    def run_maintenance(self) -> None:
        with self.reading() as connection:
            optimize(connection)
