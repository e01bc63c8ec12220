from __future__ import annotations

import pytest

from azbuka.errors import InvalidInput
from azbuka.search.transliteration import (
    DIGRAPH_RULES,
    UnmappedPolicy,
    coerce_text,
    find_unmapped,
    transliterate,
)


# ---------------------------------------------------------------------------
# alphabet coverage
# ---------------------------------------------------------------------------

def test_full_alphabet_maps_to_gaj_latin() -> None:
    cyrillic = "абвгдђежзијклљмнњопрстћуфхцчџш"
    latin = "abvgdđežzijklljmnnjoprstćufhcčdžš"
    assert transliterate(cyrillic) == latin


def test_uppercase_is_folded_before_mapping() -> None:
    assert transliterate("БЕОГРАД") == "beograd"
    assert transliterate("Љубљана") == "ljubljana"


def test_sentence_transliterates_to_expected_latin() -> None:
    assert transliterate("Београд је главни град Србије") == "beograd je glavni grad srbije"


# ---------------------------------------------------------------------------
# digraphs
# ---------------------------------------------------------------------------

def test_digraph_letters_emit_two_latin_characters() -> None:
    assert transliterate("љ") == "lj"
    assert transliterate("њ") == "nj"
    assert transliterate("џ") == "dž"


def test_digraph_wins_over_following_letter() -> None:
    # џ followed by а must give "dža", not a single-letter substitution of each.
    assert transliterate("џак") == "džak"
    assert transliterate("њива") == "njiva"
    assert transliterate("пољуљан") == "poljuljan"


def test_digraph_rules_cover_exactly_three_letters() -> None:
    assert [source for source, _ in DIGRAPH_RULES] == ["љ", "њ", "џ"]
    assert all(len(target) == 2 for _, target in DIGRAPH_RULES)


# ---------------------------------------------------------------------------
# pass-through and idempotence
# ---------------------------------------------------------------------------

def test_latin_input_is_only_lowercased() -> None:
    assert transliterate("Beograd je GLAVNI grad, 2024!") == "beograd je glavni grad, 2024!"


def test_latin_transliteration_is_idempotent() -> None:
    source = "Kuća, Džak i Ljubljana"
    once = transliterate(source)
    assert transliterate(once) == once


def test_mixed_script_transliterates_only_cyrillic_parts() -> None:
    assert transliterate("Beograd и Нови Сад") == "beograd i novi sad"


def test_empty_input_returns_empty() -> None:
    assert transliterate("") == ""
    assert transliterate(b"") == ""


def test_no_round_trip_exists() -> None:
    # њ and н+ј collapse to the same Latin text, so no inverse can recover the source.
    assert transliterate("њ") == transliterate("нј") == "nj"


def test_decomposed_latin_is_composed() -> None:
    assert transliterate("kuc\u0301a") == "ku\u0107a"


def test_accented_vowels_keep_their_accent_in_latin() -> None:
    assert transliterate("\u0441\u045d") == "s\u00ec"
    assert transliterate("\u0441\u0450") == "s\u00e8"
    assert transliterate("\u0441\u0438\u0300") == "s\u00ec"
    assert transliterate("s\u00ec") == "s\u00ec"


def test_accented_vowels_are_not_unmapped() -> None:
    assert transliterate("\u0441\u0450", unmapped=UnmappedPolicy.REJECT) == "s\u00e8"


def test_combining_accent_on_cyrillic_base_composes_in_latin() -> None:
    assert transliterate("\u0440\u0443\u0301\u043a\u0430") == "r\u00faka"


def test_latin_digraph_letters_are_spelled_out() -> None:
    assert transliterate("\u01c4ep \u01c5ak \u01c6ak") == "d\u017eep d\u017eak d\u017eak"
    assert transliterate("\u01c7ubav \u01c8ubav \u01c9ubav") == "ljubav ljubav ljubav"
    assert transliterate("\u01caiva \u01cbiva \u01cciva") == "njiva njiva njiva"


# ---------------------------------------------------------------------------
# input validation and unmapped letters
# ---------------------------------------------------------------------------


def test_utf8_bytes_are_accepted() -> None:
    assert transliterate("Кућа".encode("utf-8")) == "kuća"


def test_invalid_bytes_raise_invalid_input() -> None:
    with pytest.raises(InvalidInput, match="UTF-8"):
        transliterate(b"\xff\xfe\xfa")


def test_non_text_raises_invalid_input() -> None:
    with pytest.raises(InvalidInput):
        coerce_text(42)


def test_lone_surrogate_raises_invalid_input() -> None:
    with pytest.raises(InvalidInput):
        transliterate("grad\ud800")


def test_unmapped_cyrillic_passes_through_by_default() -> None:
    assert transliterate("мыло") == "mыlo"


def test_unmapped_cyrillic_is_rejected_when_configured() -> None:
    with pytest.raises(InvalidInput, match="U\\+044B"):
        transliterate("мыло", unmapped=UnmappedPolicy.REJECT)


def test_serbian_text_is_accepted_under_reject_policy() -> None:
    assert transliterate("Џеп и ђак", unmapped=UnmappedPolicy.REJECT) == "džep i đak"


def test_find_unmapped_lists_each_character_once() -> None:
    assert find_unmapped("ыы ѣ abc") == ["ы", "ѣ"]
