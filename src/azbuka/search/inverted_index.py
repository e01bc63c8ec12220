"""Token inverted index with positions for whole-word queries."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum
import sqlite3

from azbuka.errors import IndexInconsistency
from azbuka.search.tokenizer import Token


_PREFIX_UPPER_BOUND = "\U0010ffff"


class TokenOperator(str, Enum):
    AND = "and"
    OR = "or"


def _unique(tokens: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(token for token in tokens if token))


class InvertedIndex:
    """Maps normalized tokens to ``(document_id, position)`` postings.

    Lookups are exact: callers pass tokens that went through the same
    normalization as the indexed text.
    """

    def insert(self, connection: sqlite3.Connection, document_id: int, tokens: Sequence[Token]) -> int:
        if self.contains(connection, document_id):
            raise IndexInconsistency(document_id, "token postings already present; retract before re-inserting")

        connection.execute(
            "INSERT INTO token_documents(document_id, token_count) VALUES(?, ?)",
            (document_id, len(tokens)),
        )
        connection.executemany(
            "INSERT INTO token_postings(token, document_id, position) VALUES(?, ?, ?)",
            [(token.text, document_id, token.position) for token in tokens],
        )
        return len(tokens)

    def retract(self, connection: sqlite3.Connection, document_id: int) -> int:
        cursor = connection.execute("DELETE FROM token_postings WHERE document_id = ?", (document_id,))
        connection.execute("DELETE FROM token_documents WHERE document_id = ?", (document_id,))
        return max(cursor.rowcount, 0)

    def contains(self, connection: sqlite3.Connection, document_id: int) -> bool:
        row = connection.execute(
            "SELECT 1 FROM token_documents WHERE document_id = ?",
            (document_id,),
        ).fetchone()
        return row is not None

    def documents_for_token(self, connection: sqlite3.Connection, token: str) -> set[int]:
        rows = connection.execute(
            "SELECT DISTINCT document_id FROM token_postings WHERE token = ?",
            (token,),
        ).fetchall()
        return {int(row["document_id"]) for row in rows}

    def documents_for_token_set(
        self,
        connection: sqlite3.Connection,
        tokens: Iterable[str],
        mode: TokenOperator = TokenOperator.AND,
    ) -> set[int]:
        """Intersect (AND) or union (OR) the posting sets of *tokens*."""

        keys = _unique(tokens)
        if not keys:
            return set()

        placeholders = ",".join("?" for _ in keys)
        if mode is TokenOperator.OR:
            rows = connection.execute(
                f"SELECT DISTINCT document_id FROM token_postings WHERE token IN ({placeholders})",
                tuple(keys),
            ).fetchall()
        else:
            rows = connection.execute(
                f"""
                SELECT document_id
                FROM token_postings
                WHERE token IN ({placeholders})
                GROUP BY document_id
                HAVING COUNT(DISTINCT token) = ?
                """,
                (*keys, len(keys)),
            ).fetchall()
        return {int(row["document_id"]) for row in rows}

    def documents_for_prefix(self, connection: sqlite3.Connection, prefix: str) -> set[int]:
        """Documents with any token starting with *prefix* (range scan over keys)."""

        if not prefix:
            return set()
        rows = connection.execute(
            "SELECT DISTINCT document_id FROM token_postings WHERE token >= ? AND token < ?",
            (prefix, prefix + _PREFIX_UPPER_BOUND),
        ).fetchall()
        return {int(row["document_id"]) for row in rows}

    def tokens_with_prefix(self, connection: sqlite3.Connection, prefix: str, *, limit: int = 50) -> list[str]:
        if not prefix:
            return []
        rows = connection.execute(
            """
            SELECT DISTINCT token FROM token_postings
            WHERE token >= ? AND token < ?
            ORDER BY token ASC
            LIMIT ?
            """,
            (prefix, prefix + _PREFIX_UPPER_BOUND, limit),
        ).fetchall()
        return [row["token"] for row in rows]

    def positions(self, connection: sqlite3.Connection, document_id: int, token: str) -> list[int]:
        rows = connection.execute(
            """
            SELECT position FROM token_postings
            WHERE token = ? AND document_id = ?
            ORDER BY position ASC
            """,
            (token, document_id),
        ).fetchall()
        return [int(row["position"]) for row in rows]

    def term_frequencies(
        self,
        connection: sqlite3.Connection,
        document_id: int,
        tokens: Iterable[str],
    ) -> dict[str, int]:
        keys = _unique(tokens)
        if not keys:
            return {}

        placeholders = ",".join("?" for _ in keys)
        rows = connection.execute(
            f"""
            SELECT token, COUNT(*) AS c FROM token_postings
            WHERE document_id = ? AND token IN ({placeholders})
            GROUP BY token
            """,
            (document_id, *keys),
        ).fetchall()
        found = {row["token"]: int(row["c"]) for row in rows}
        return {key: found.get(key, 0) for key in keys}

    def indexed_documents(self, connection: sqlite3.Connection) -> set[int]:
        rows = connection.execute("SELECT document_id FROM token_documents").fetchall()
        return {int(row["document_id"]) for row in rows}
