"""Exception taxonomy shared by normalization, indexing, and storage layers."""

from __future__ import annotations


class AzbukaError(Exception):
    """Base class for failures raised by the search core."""


class InvalidInput(AzbukaError, ValueError):
    """Text could not be normalized (undecodable bytes, non-text, rejected characters)."""


class IndexInconsistency(AzbukaError, RuntimeError):
    """The trigram and token indexes disagree about a document."""

    def __init__(self, document_id: int, message: str) -> None:
        super().__init__(f"document {document_id}: {message}")
        self.document_id = document_id


class StorageUnavailable(AzbukaError):
    """The SQLite arena failed; the in-flight operation was rolled back."""


class DocumentNotFound(AzbukaError, KeyError):
    """No live document exists for the given id."""

    def __init__(self, document_id: int) -> None:
        super().__init__(document_id)
        self.document_id = document_id

    def __str__(self) -> str:
        return f"Document not found: {self.document_id}"


class SettingsMismatch(AzbukaError):
    """The index was built with different normalization settings."""


class CandidatesUnavailable(LookupError):
    """The trigram index cannot narrow candidates for this query.

    Not a failure: callers fall back to scanning every document.
    """

    def __init__(self, query: str, minimum_length: int) -> None:
        super().__init__(f"query {query!r} is shorter than {minimum_length} characters")
        self.query = query
        self.minimum_length = minimum_length
