"""Normalization pipeline, posting indexes, and their SQLite storage."""

from .repository import DocumentRecord, SearchRepository, SourceStateRow

__all__ = ["DocumentRecord", "SearchRepository", "SourceStateRow"]
