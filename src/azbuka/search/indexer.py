"""Incremental sync of a folder of plain-text files into the search engine."""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib
import logging
from pathlib import Path
import time

from charset_normalizer import from_bytes

from azbuka.errors import AzbukaError, InvalidInput
from azbuka.search.engine import SearchEngine
from azbuka.search.repository import SourceStateRow

_SUPPORTED_SUFFIXES = {".txt", ".text", ".md"}


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexRunStats:
    scanned: int = 0
    indexed: int = 0
    updated: int = 0
    deleted: int = 0
    skipped_unchanged: int = 0
    errors: int = 0
    duration_ms: int = 0
    error_details: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, int | list[dict[str, str]]]:
        return {
            "scanned": self.scanned,
            "indexed": self.indexed,
            "updated": self.updated,
            "deleted": self.deleted,
            "skipped_unchanged": self.skipped_unchanged,
            "errors": self.errors,
            "duration_ms": self.duration_ms,
            "error_details": self.error_details,
        }


def _collect_inputs(target: Path) -> list[Path]:
    if target.is_file():
        return [target]
    if target.is_dir():
        return sorted(
            path for path in target.rglob("*") if path.is_file() and path.suffix.lower() in _SUPPORTED_SUFFIXES
        )
    return []


def _fingerprint(raw_bytes: bytes) -> str:
    return hashlib.sha256(raw_bytes).hexdigest()


def decode_text(raw: bytes) -> str:
    """Decode file bytes, preferring UTF-8 and falling back to detection."""

    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    best = from_bytes(raw).best()
    if best is None or not best.encoding:
        raise InvalidInput("Could not detect text encoding")
    return str(best)


def _is_within(source_key: str, root: Path) -> bool:
    try:
        Path(source_key).relative_to(root)
    except ValueError:
        return False
    return True


class FolderIndexer:
    """Keeps one document per file in sync with the files on disk."""

    def __init__(self, engine: SearchEngine) -> None:
        self._engine = engine
        self._repository = engine.repository

    @classmethod
    def from_db_path(cls, db_path: str | Path, **kwargs) -> "FolderIndexer":
        return cls(SearchEngine.from_db_path(db_path, **kwargs))

    @property
    def engine(self) -> SearchEngine:
        return self._engine

    def close(self) -> None:
        self._engine.close()

    def __enter__(self) -> "FolderIndexer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def index_folder(self, folder: str | Path, *, prune_missing: bool = True) -> IndexRunStats:
        started = time.perf_counter()
        stats = IndexRunStats()
        target = Path(folder)
        files = _collect_inputs(target)
        stats.scanned = len(files)
        seen: set[str] = set()

        for file_path in files:
            source_key = str(file_path)
            seen.add(source_key)
            try:
                raw_bytes = file_path.read_bytes()
                fingerprint = _fingerprint(raw_bytes)
                mtime_ns = file_path.stat().st_mtime_ns
                state = self._repository.get_source_state(source_key)
                if state is not None and state.fingerprint == fingerprint:
                    stats.skipped_unchanged += 1
                    continue

                text = decode_text(raw_bytes)
                if state is None:
                    # Document may exist from a run interrupted before its state row was saved.
                    existing = self._repository.find_by_source_key(source_key)
                    document_id = None if existing is None else existing.document_id
                else:
                    document_id = state.document_id

                if document_id is None:
                    document_id = self._engine.ingest(text, source_key=source_key)
                    stats.indexed += 1
                else:
                    self._engine.update(document_id, text)
                    stats.updated += 1

                self._repository.upsert_source_state(
                    SourceStateRow(
                        source_key=source_key,
                        document_id=document_id,
                        fingerprint=fingerprint,
                        mtime_ns=mtime_ns,
                    )
                )
            except (AzbukaError, OSError, ValueError) as exc:
                logger.warning("Failed to index %s: %s", source_key, exc)
                stats.errors += 1
                stats.error_details.append({"source_path": source_key, "error": str(exc)})

        if prune_missing and target.is_dir():
            root = target
            for state in self._repository.list_source_states():
                if state.source_key in seen or not _is_within(state.source_key, root):
                    continue
                try:
                    self._engine.delete(state.document_id)
                    stats.deleted += 1
                except AzbukaError as exc:
                    logger.warning("Failed to remove %s: %s", state.source_key, exc)
                    stats.errors += 1
                    stats.error_details.append({"source_path": state.source_key, "error": str(exc)})

        if stats.indexed or stats.updated or stats.deleted:
            self._repository.run_maintenance()

        stats.duration_ms = int((time.perf_counter() - started) * 1000)
        return stats
