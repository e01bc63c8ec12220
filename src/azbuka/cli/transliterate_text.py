"""CLI entrypoint printing the canonical Latin form of text."""

from __future__ import annotations

import argparse
import sys

from azbuka.errors import InvalidInput
from azbuka.search.normalize import NormalizationSettings, normalize
from azbuka.search.transliteration import UnmappedPolicy


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Transliterate Serbian Cyrillic text to Latin")
    parser.add_argument("text", nargs="?", help="Text to convert (reads stdin when omitted)")
    parser.add_argument("--fold-diacritics", action="store_true", help="Also strip diacritics")
    parser.add_argument(
        "--reject-unmapped",
        action="store_true",
        help="Fail on Cyrillic letters outside the Serbian alphabet",
    )
    args = parser.parse_args(argv)

    settings = NormalizationSettings(
        fold_diacritics=args.fold_diacritics,
        unmapped=UnmappedPolicy.REJECT if args.reject_unmapped else UnmappedPolicy.PASS_THROUGH,
    )
    source = args.text if args.text is not None else sys.stdin.read().rstrip("\n")

    try:
        print(normalize(source, settings))
    except InvalidInput as error:
        print(str(error), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
