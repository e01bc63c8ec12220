"""Trigram posting index for substring candidate selection."""

from __future__ import annotations

from collections import Counter
import sqlite3

from azbuka.errors import CandidatesUnavailable, IndexInconsistency


TRIGRAM_LENGTH = 3

# Keeps lookups under SQLite's bound-parameter limit. Any subset of the
# query's shingles still yields a superset of the true matches.
_MAX_LOOKUP_SHINGLES = 500


def shingles(text: str, *, size: int = TRIGRAM_LENGTH) -> Counter[str]:
    """Count every overlapping *size*-character window of *text*."""

    if len(text) < size:
        return Counter()
    return Counter(text[index : index + size] for index in range(len(text) - size + 1))


class TrigramIndex:
    """Maps 3-character shingles of normalized text to document ids.

    Postings live in the caller's SQLite connection; the index itself holds
    no state, so one instance can serve every thread.
    """

    def insert(self, connection: sqlite3.Connection, document_id: int, normalized_text: str) -> int:
        """Add postings for every shingle; the document must not be indexed yet."""

        if self.contains(connection, document_id):
            raise IndexInconsistency(document_id, "trigram postings already present; retract before re-inserting")

        counts = shingles(normalized_text)
        connection.execute(
            "INSERT INTO trigram_documents(document_id, shingle_count) VALUES(?, ?)",
            (document_id, sum(counts.values())),
        )
        connection.executemany(
            "INSERT INTO trigram_postings(trigram, document_id, occurrences) VALUES(?, ?, ?)",
            [(trigram, document_id, occurrences) for trigram, occurrences in counts.items()],
        )
        return len(counts)

    def retract(self, connection: sqlite3.Connection, document_id: int) -> int:
        """Remove every posting for *document_id*; returns how many keys it was under."""

        cursor = connection.execute("DELETE FROM trigram_postings WHERE document_id = ?", (document_id,))
        connection.execute("DELETE FROM trigram_documents WHERE document_id = ?", (document_id,))
        return max(cursor.rowcount, 0)

    def contains(self, connection: sqlite3.Connection, document_id: int) -> bool:
        row = connection.execute(
            "SELECT 1 FROM trigram_documents WHERE document_id = ?",
            (document_id,),
        ).fetchone()
        return row is not None

    def candidates_for_substring(self, connection: sqlite3.Connection, normalized_query: str) -> set[int]:
        """Return documents containing every shingle of *normalized_query*.

        The result is a superset of the true matches: co-occurring shingles do
        not prove they are contiguous. Raises :class:`CandidatesUnavailable`
        for queries too short to shingle.
        """

        keys = list(shingles(normalized_query))
        if not keys:
            raise CandidatesUnavailable(normalized_query, TRIGRAM_LENGTH)
        keys = keys[:_MAX_LOOKUP_SHINGLES]

        placeholders = ",".join("?" for _ in keys)
        rows = connection.execute(
            f"""
            SELECT document_id
            FROM trigram_postings
            WHERE trigram IN ({placeholders})
            GROUP BY document_id
            HAVING COUNT(*) = ?
            """,
            (*keys, len(keys)),
        ).fetchall()
        return {int(row["document_id"]) for row in rows}

    def documents_for_trigram(self, connection: sqlite3.Connection, trigram: str) -> set[int]:
        rows = connection.execute(
            "SELECT document_id FROM trigram_postings WHERE trigram = ?",
            (trigram,),
        ).fetchall()
        return {int(row["document_id"]) for row in rows}

    def trigrams_for_document(self, connection: sqlite3.Connection, document_id: int) -> dict[str, int]:
        rows = connection.execute(
            "SELECT trigram, occurrences FROM trigram_postings WHERE document_id = ?",
            (document_id,),
        ).fetchall()
        return {row["trigram"]: int(row["occurrences"]) for row in rows}

    def occurrences(self, connection: sqlite3.Connection, document_id: int, trigram: str) -> int:
        row = connection.execute(
            "SELECT occurrences FROM trigram_postings WHERE trigram = ? AND document_id = ?",
            (trigram, document_id),
        ).fetchone()
        return 0 if row is None else int(row["occurrences"])

    def indexed_documents(self, connection: sqlite3.Connection) -> set[int]:
        rows = connection.execute("SELECT document_id FROM trigram_documents").fetchall()
        return {int(row["document_id"]) for row in rows}
