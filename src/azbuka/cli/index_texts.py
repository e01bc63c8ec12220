"""CLI entrypoint for syncing a folder of text files into the search index."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

from azbuka.config import SearchSettings
from azbuka.errors import AzbukaError
from azbuka.search.engine import SearchEngine
from azbuka.search.indexer import FolderIndexer


load_dotenv()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Index .txt files into the two-script search database")
    parser.add_argument("--folder", default="texts", help="Directory (or single file) to index")
    parser.add_argument("--db-path", default=None, help="SQLite database path (default: AZBUKA_DB_PATH)")
    parser.add_argument(
        "--keep-missing",
        action="store_true",
        help="Do not delete documents whose source files disappeared",
    )
    parser.add_argument(
        "--rebuild-on-mismatch",
        action="store_true",
        help="Re-derive all documents if normalization settings changed",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=logging.INFO)

    try:
        settings = SearchSettings.from_env()
    except ValueError as error:
        print(f"Configuration error: {error}", file=sys.stderr)
        return 2

    db_path = args.db_path or settings.db_path
    try:
        engine = SearchEngine.from_db_path(
            db_path,
            settings=settings.normalization,
            default_operator=settings.lexeme_operator,
            rebuild_on_mismatch=args.rebuild_on_mismatch,
        )
    except AzbukaError as error:
        print(str(error), file=sys.stderr)
        return 2

    with FolderIndexer(engine) as indexer:
        stats = indexer.index_folder(args.folder, prune_missing=not args.keep_missing)

    print(json.dumps(stats.to_dict(), ensure_ascii=True, indent=2))
    return 0 if stats.errors == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
