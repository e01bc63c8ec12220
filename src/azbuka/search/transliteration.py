"""Serbian Cyrillic to Gaj's Latin transliteration.

The output is the canonical form both stored documents and queries are
compared in. There is no inverse: Latin text cannot be mapped back to
Cyrillic reliably (``nj`` may be ``њ`` or ``н`` + ``ј``), and nothing in this
package attempts it.
"""

from __future__ import annotations

from enum import Enum
import re
import unicodedata

from azbuka.errors import InvalidInput


class UnmappedPolicy(str, Enum):
    """What to do with Cyrillic letters outside the Serbian alphabet."""

    PASS_THROUGH = "pass"
    REJECT = "reject"


# Letters whose Latin equivalent is two characters. Applied before the
# single-character table, in this order.
DIGRAPH_RULES: tuple[tuple[str, str], ...] = (
    ("љ", "lj"),
    ("њ", "nj"),
    ("џ", "dž"),
)

# One-to-one substitutions for the remaining 27 letters.
#   ђ → đ, ж → ž, ћ → ć, ч → č, ш → š
_SINGLE_TRANS = str.maketrans(
    "абвгдђежзијклмнопрстћуфхцчш",
    "abvgdđežzijklmnoprstćufhcčš",
)

# Serbian marks homographs with precomposed grave vowels (сѝ, сѐ). They are
# split into base letter + U+0300 so the tables map the base and the accent
# carries over to the Latin letter.
_ACCENTED_TRANS = str.maketrans({"\u0450": "\u0435\u0300", "\u045d": "\u0438\u0300"})

# Unicode digraph letters for Latin dž, lj, nj (after lowercasing).
_LATIN_DIGRAPH_TRANS = str.maketrans({"\u01c6": "d\u017e", "\u01c9": "lj", "\u01cc": "nj"})

# Cyrillic and Cyrillic Supplement blocks.
_CYRILLIC_RE = re.compile(r"[\u0400-\u052F]")


def coerce_text(value: object) -> str:
    """Return *value* as ``str``, decoding UTF-8 bytes strictly."""

    if isinstance(value, (bytes, bytearray, memoryview)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidInput(f"Input is not valid UTF-8 text: {exc}") from exc
    if not isinstance(value, str):
        raise InvalidInput(f"Expected text or bytes, got {type(value).__name__}")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidInput(f"Input contains unpaired surrogates: {exc}") from exc
    return value


def find_unmapped(text: str) -> list[str]:
    """Return distinct Cyrillic characters left over after transliteration."""

    seen: dict[str, None] = {}
    for match in _CYRILLIC_RE.finditer(text):
        seen.setdefault(match.group(0), None)
    return list(seen)


def transliterate(text: str | bytes, *, unmapped: UnmappedPolicy = UnmappedPolicy.PASS_THROUGH) -> str:
    """Map Serbian Cyrillic text to lowercase Latin.

    Latin letters, digits, punctuation, and whitespace pass through, so
    mixed-script input is handled character by character and already-Latin
    input only gets lowercased, with the single-letter ``ǆ ǉ ǌ`` spelled out.
    """

    working = coerce_text(text)
    if not working:
        return ""

    working = unicodedata.normalize("NFC", working).lower()
    working = working.translate(_ACCENTED_TRANS).translate(_LATIN_DIGRAPH_TRANS)
    for source, target in DIGRAPH_RULES:
        working = working.replace(source, target)
    working = working.translate(_SINGLE_TRANS)
    # Accents that followed a Cyrillic base letter now sit on its Latin letter.
    working = unicodedata.normalize("NFC", working)

    if unmapped is UnmappedPolicy.REJECT:
        leftovers = find_unmapped(working)
        if leftovers:
            listed = ", ".join(f"{char!r} (U+{ord(char):04X})" for char in leftovers)
            raise InvalidInput(f"Unmapped Cyrillic characters: {listed}")

    return working
