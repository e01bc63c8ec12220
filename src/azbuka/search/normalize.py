"""Single normalization pipeline shared by ingestion and querying."""

from __future__ import annotations

from dataclasses import dataclass

from azbuka.search.diacritics import fold_diacritics
from azbuka.search.transliteration import UnmappedPolicy, transliterate


@dataclass(frozen=True, slots=True)
class NormalizationSettings:
    """Options that change the canonical form; persisted with each index."""

    fold_diacritics: bool = False
    unmapped: UnmappedPolicy = UnmappedPolicy.PASS_THROUGH

    def to_dict(self) -> dict[str, str]:
        return {
            "fold_diacritics": "1" if self.fold_diacritics else "0",
            "unmapped": self.unmapped.value,
        }

    @classmethod
    def from_dict(cls, values: dict[str, str]) -> "NormalizationSettings":
        return cls(
            fold_diacritics=values.get("fold_diacritics", "0") == "1",
            unmapped=UnmappedPolicy(values.get("unmapped", UnmappedPolicy.PASS_THROUGH.value)),
        )


DEFAULT_SETTINGS = NormalizationSettings()


def normalize(text: str | bytes, settings: NormalizationSettings = DEFAULT_SETTINGS) -> str:
    """Return the canonical Latin form of *text* under *settings*."""

    result = transliterate(text, unmapped=settings.unmapped)
    if settings.fold_diacritics:
        result = fold_diacritics(result)
    return result


def normalize_query(query: str | bytes, settings: NormalizationSettings = DEFAULT_SETTINGS) -> str:
    """Normalize a search query; identical to :func:`normalize` by contract."""

    return normalize(query, settings)
