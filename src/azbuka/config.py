"""Runtime configuration for indexing and search entrypoints."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Mapping

from azbuka.search.inverted_index import TokenOperator
from azbuka.search.normalize import NormalizationSettings
from azbuka.search.transliteration import UnmappedPolicy


DEFAULT_DB_PATH = ".azbuka-search.db"
DEFAULT_RESULT_LIMIT = 10
MAX_RESULT_LIMIT = 100

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(*, name: str, raw_value: str) -> bool:
    value = raw_value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be one of: {', '.join(sorted(_TRUE_VALUES | _FALSE_VALUES))}")


def _parse_choice(*, name: str, raw_value: str, choices: tuple[str, ...]) -> str:
    value = raw_value.strip().lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of: {', '.join(choices)}")
    return value


def _parse_limit(*, name: str, raw_value: str) -> int:
    value = int(raw_value)
    if not 1 <= value <= MAX_RESULT_LIMIT:
        raise ValueError(f"{name} must be between 1 and {MAX_RESULT_LIMIT}")
    return value


@dataclass(frozen=True, slots=True)
class SearchSettings:
    """Validated settings shared by the CLIs and :class:`SearchEngine`."""

    db_path: Path = Path(DEFAULT_DB_PATH)
    normalization: NormalizationSettings = field(default_factory=NormalizationSettings)
    lexeme_operator: TokenOperator = TokenOperator.AND
    result_limit: int = DEFAULT_RESULT_LIMIT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SearchSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        db_path_raw = source.get("AZBUKA_DB_PATH", DEFAULT_DB_PATH).strip()
        if not db_path_raw:
            raise ValueError("AZBUKA_DB_PATH cannot be empty")

        fold = _parse_bool(
            name="AZBUKA_FOLD_DIACRITICS",
            raw_value=source.get("AZBUKA_FOLD_DIACRITICS", "false"),
        )
        unmapped = _parse_choice(
            name="AZBUKA_UNMAPPED_CYRILLIC",
            raw_value=source.get("AZBUKA_UNMAPPED_CYRILLIC", UnmappedPolicy.PASS_THROUGH.value),
            choices=tuple(policy.value for policy in UnmappedPolicy),
        )
        operator = _parse_choice(
            name="AZBUKA_LEXEME_OPERATOR",
            raw_value=source.get("AZBUKA_LEXEME_OPERATOR", TokenOperator.AND.value),
            choices=tuple(item.value for item in TokenOperator),
        )

        limit_raw = source.get("AZBUKA_RESULT_LIMIT", str(DEFAULT_RESULT_LIMIT)).strip()
        if not limit_raw:
            raise ValueError("AZBUKA_RESULT_LIMIT cannot be empty")
        result_limit = _parse_limit(name="AZBUKA_RESULT_LIMIT", raw_value=limit_raw)

        return cls(
            db_path=Path(db_path_raw),
            normalization=NormalizationSettings(
                fold_diacritics=fold,
                unmapped=UnmappedPolicy(unmapped),
            ),
            lexeme_operator=TokenOperator(operator),
            result_limit=result_limit,
        )
