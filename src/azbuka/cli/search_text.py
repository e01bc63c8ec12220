"""CLI entrypoint for substring, lexeme, and prefix search queries."""

from __future__ import annotations

import argparse
import json
import sys

from dotenv import load_dotenv

from azbuka.config import MAX_RESULT_LIMIT, SearchSettings
from azbuka.errors import AzbukaError
from azbuka.search.engine import SearchEngine
from azbuka.search.inverted_index import TokenOperator
from azbuka.search.planner import SearchMode


load_dotenv()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Search the index with a Cyrillic or Latin query")
    parser.add_argument("--db-path", default=None, help="SQLite database path (default: AZBUKA_DB_PATH)")
    parser.add_argument("--query", required=True, help="Query text in either script")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in SearchMode],
        default=SearchMode.SUBSTRING.value,
        help="Substring match, whole-word match, or word-prefix match",
    )
    parser.add_argument(
        "--operator",
        choices=[operator.value for operator in TokenOperator],
        default=None,
        help="Combine lexeme terms with AND or OR (default: AZBUKA_LEXEME_OPERATOR)",
    )
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of results")
    parser.add_argument("--explain", action="store_true", help="Include the query plan in the output")
    args = parser.parse_args(argv)

    try:
        settings = SearchSettings.from_env()
    except ValueError as error:
        print(f"Configuration error: {error}", file=sys.stderr)
        return 2

    limit = args.limit if args.limit is not None else settings.result_limit
    safe_limit = max(1, min(limit, MAX_RESULT_LIMIT))

    try:
        with SearchEngine.from_db_path(
            args.db_path or settings.db_path,
            settings=settings.normalization,
            default_operator=settings.lexeme_operator,
        ) as engine:
            plan = engine.search(args.query, args.mode, operator=args.operator)
            hits = engine.execute(plan, limit=safe_limit)
    except AzbukaError as error:
        print(str(error), file=sys.stderr)
        return 2

    payload: dict[str, object] = {
        "query": args.query,
        "normalized_query": plan.normalized_query,
        "mode": plan.mode.value,
        "limit": safe_limit,
        "results": [hit.to_dict() for hit in hits],
    }
    if args.explain:
        payload["plan"] = plan.to_dict()
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
