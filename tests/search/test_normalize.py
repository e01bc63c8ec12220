from __future__ import annotations

from azbuka.search.diacritics import fold_diacritics
from azbuka.search.normalize import NormalizationSettings, normalize, normalize_query
from azbuka.search.transliteration import UnmappedPolicy


def test_fold_diacritics_strips_serbian_marks() -> None:
    assert fold_diacritics("čćžš") == "cczs"
    assert fold_diacritics("kuća") == "kuca"
    assert fold_diacritics("džak") == "dzak"


def test_fold_diacritics_expands_d_with_stroke() -> None:
    assert fold_diacritics("Đorđe") == "Djordje"


def test_fold_diacritics_keeps_plain_text() -> None:
    assert fold_diacritics("") == ""
    assert fold_diacritics("beograd 2024") == "beograd 2024"


def test_pipeline_folds_only_when_enabled() -> None:
    assert normalize("кућа") == "kuća"
    assert normalize("кућа", NormalizationSettings(fold_diacritics=True)) == "kuca"


def test_text_and_query_paths_share_same_normalization_contract() -> None:
    settings = NormalizationSettings(fold_diacritics=True)
    source = "Ђорђе живи у Нишу"
    assert normalize(source, settings) == normalize_query(source, settings) == "djordje zivi u nisu"


def test_settings_round_trip_through_storage_dict() -> None:
    settings = NormalizationSettings(fold_diacritics=True, unmapped=UnmappedPolicy.REJECT)
    assert NormalizationSettings.from_dict(settings.to_dict()) == settings
    assert NormalizationSettings.from_dict({}) == NormalizationSettings()
