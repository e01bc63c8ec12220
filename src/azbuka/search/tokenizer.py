"""Word tokenization over normalized text."""

from __future__ import annotations

from dataclasses import dataclass
import re

from razdel import tokenize as razdel_tokenize


# Letters and digits only; underscores, hyphens, and apostrophes split words.
_WORD_RE = re.compile(r"[^\W_]+")


@dataclass(frozen=True, slots=True)
class Token:
    text: str
    position: int
    start: int
    stop: int


def tokenize(normalized_text: str) -> list[Token]:
    """Split *normalized_text* into word tokens with ordinal positions.

    razdel keeps hyphenated compounds such as ``crno-beli`` together; those
    are split further so no token crosses a punctuation boundary.
    """

    tokens: list[Token] = []
    for span in razdel_tokenize(normalized_text):
        for match in _WORD_RE.finditer(span.text):
            tokens.append(
                Token(
                    text=match.group(0).lower(),
                    position=len(tokens),
                    start=span.start + match.start(),
                    stop=span.start + match.end(),
                )
            )
    return tokens


def token_texts(normalized_text: str) -> list[str]:
    return [token.text for token in tokenize(normalized_text)]
