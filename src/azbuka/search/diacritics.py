"""Diacritic folding for accent-insensitive matching.

Folding is lossy: ``kuća`` and ``kuca`` become the same word. It is only
applied when the index settings ask for it, and always to documents and
queries alike.
"""

from __future__ import annotations

import unicodedata

# đ has no canonical decomposition; Serbian plain-ASCII spelling uses "dj".
_STROKE_TRANS = str.maketrans({"đ": "dj", "Đ": "Dj"})


def fold_diacritics(text: str) -> str:
    """Strip combining marks from *text* (``č ć → c``, ``ž → z``, ``š → s``, ``đ → dj``)."""

    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.translate(_STROKE_TRANS))
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return unicodedata.normalize("NFC", stripped)
