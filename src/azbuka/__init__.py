"""Two-script (Serbian Cyrillic / Latin) document search."""

from azbuka.errors import (
    AzbukaError,
    CandidatesUnavailable,
    DocumentNotFound,
    IndexInconsistency,
    InvalidInput,
    SettingsMismatch,
    StorageUnavailable,
)
from azbuka.search.diacritics import fold_diacritics
from azbuka.search.engine import SearchEngine
from azbuka.search.inverted_index import TokenOperator
from azbuka.search.normalize import NormalizationSettings, normalize
from azbuka.search.planner import QueryPlan, SearchMode
from azbuka.search.transliteration import UnmappedPolicy, transliterate

__all__ = [
    "AzbukaError",
    "CandidatesUnavailable",
    "DocumentNotFound",
    "IndexInconsistency",
    "InvalidInput",
    "NormalizationSettings",
    "QueryPlan",
    "SearchEngine",
    "SearchMode",
    "SettingsMismatch",
    "StorageUnavailable",
    "TokenOperator",
    "UnmappedPolicy",
    "fold_diacritics",
    "normalize",
    "transliterate",
]
