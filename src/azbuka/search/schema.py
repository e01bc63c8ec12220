"""SQLite schema and pragmas for the document store and both posting indexes."""

from __future__ import annotations

import sqlite3


PRAGMA_BUSY_TIMEOUT_MS = 5000


def apply_runtime_pragmas(connection: sqlite3.Connection, *, in_memory: bool = False) -> None:
    """Apply runtime pragmas recommended for local indexing throughput."""

    if not in_memory:
        connection.execute("PRAGMA journal_mode=WAL;")
    connection.execute(f"PRAGMA busy_timeout={PRAGMA_BUSY_TIMEOUT_MS};")
    connection.execute("PRAGMA synchronous=NORMAL;")
    connection.execute("PRAGMA foreign_keys=ON;")


def ensure_schema(connection: sqlite3.Connection) -> None:
    """Create document, posting, and membership tables if missing."""

    connection.executescript(
        """
        CREATE TABLE IF NOT EXISTS documents (
            id INTEGER PRIMARY KEY,
            source_key TEXT UNIQUE,
            original_text TEXT NOT NULL,
            normalized_text TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS trigram_documents (
            document_id INTEGER PRIMARY KEY,
            shingle_count INTEGER NOT NULL,
            FOREIGN KEY(document_id) REFERENCES documents(id)
        );

        CREATE TABLE IF NOT EXISTS trigram_postings (
            trigram TEXT NOT NULL,
            document_id INTEGER NOT NULL,
            occurrences INTEGER NOT NULL CHECK(occurrences > 0),
            PRIMARY KEY (trigram, document_id),
            FOREIGN KEY(document_id) REFERENCES trigram_documents(document_id)
        ) WITHOUT ROWID;

        CREATE TABLE IF NOT EXISTS token_documents (
            document_id INTEGER PRIMARY KEY,
            token_count INTEGER NOT NULL,
            FOREIGN KEY(document_id) REFERENCES documents(id)
        );

        CREATE TABLE IF NOT EXISTS token_postings (
            token TEXT NOT NULL,
            document_id INTEGER NOT NULL,
            position INTEGER NOT NULL,
            PRIMARY KEY (token, document_id, position),
            FOREIGN KEY(document_id) REFERENCES token_documents(document_id)
        ) WITHOUT ROWID;

        CREATE TABLE IF NOT EXISTS index_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS source_state (
            source_key TEXT PRIMARY KEY,
            document_id INTEGER NOT NULL,
            fingerprint TEXT NOT NULL,
            mtime_ns INTEGER NOT NULL,
            indexed_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(document_id) REFERENCES documents(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_trigram_postings_document_id ON trigram_postings(document_id);
        CREATE INDEX IF NOT EXISTS idx_token_postings_document_id ON token_postings(document_id);
        CREATE INDEX IF NOT EXISTS idx_source_state_document_id ON source_state(document_id);
        """
    )


def optimize(connection: sqlite3.Connection) -> None:
    """Refresh planner statistics after bulk changes."""

    connection.execute("PRAGMA optimize;")
