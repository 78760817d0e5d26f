# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Command-line interface for the semantic cache.

Examples:
    semcache --provider openai set "Capital of France?" "Paris"
    semcache get "What is the capital of France?"
    semcache search "French capital" --limit 3
    semcache --namespace faq delete "Capital of France?"
    semcache --namespace faq flush --yes

Unset options fall back to environment variables, then defaults.
"""

import argparse
import asyncio
import json
import sys
from typing import Any

from .cache import DEFAULT_SEARCH_LIMIT, SemanticCache
from .errors import SemanticCacheError
from .log_config import configure_logging

# CLI options named after CacheSettings fields
_SETTING_OPTIONS = ("provider", "namespace", "table_name", "db_uri", "min_proximity")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="semcache",
        description="Semantic cache backed by LanceDB",
    )
    parser.add_argument("--provider", choices=["openai", "gemini", "voyage"], help="Embedding provider")
    parser.add_argument("--model", help="Embedding model for the selected provider")
    parser.add_argument("--namespace", help="Cache namespace (separate table)")
    parser.add_argument("--table-name", help="Base table name")
    parser.add_argument("--db-uri", help="LanceDB URI (local path or s3://bucket/path)")
    parser.add_argument("--min-proximity", type=float, help="Similarity threshold in [0, 1]")
    parser.add_argument("--log-level", help="Log level (default: LOG_LEVEL or INFO)")
    parser.add_argument("--log-format", choices=["json", "text"], help="Log format (default: LOG_FORMAT or json)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    set_parser = subparsers.add_parser("set", help="Cache a value under a key")
    set_parser.add_argument("key")
    set_parser.add_argument("value")

    get_parser = subparsers.add_parser("get", help="Look up one or more keys")
    get_parser.add_argument("keys", nargs="+")

    search_parser = subparsers.add_parser("search", help="Show nearest keys with similarity scores")
    search_parser.add_argument("key")
    search_parser.add_argument("--limit", type=int, default=DEFAULT_SEARCH_LIMIT)

    delete_parser = subparsers.add_parser("delete", help="Delete one or more keys")
    delete_parser.add_argument("keys", nargs="+")

    flush_parser = subparsers.add_parser("flush", help="Drop every entry in the namespace")
    flush_parser.add_argument("--yes", action="store_true", help="Skip confirmation prompt")

    return parser


def settings_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Explicit CLI options only, so environment variables still apply to the rest."""
    overrides: dict[str, Any] = {}
    for option in _SETTING_OPTIONS:
        value = getattr(args, option, None)
        if value is not None:
            overrides[option] = value

    if args.model:
        # Only the selected provider reads its model field
        for provider in ("openai", "gemini", "voyage"):
            overrides[f"{provider}_model"] = args.model
    return overrides


async def run(args: argparse.Namespace) -> Any:
    """Execute one subcommand and return a JSON-serializable result."""
    async with SemanticCache(**settings_overrides(args)) as cache:
        if args.command == "set":
            await cache.set(args.key, args.value)
            return {"key": args.key, "stored": True, "table": cache.table_name}

        if args.command == "get":
            lookups = await asyncio.gather(*(cache.lookup(k) for k in args.keys))
            return [lookup.model_dump(exclude_none=True) for lookup in lookups]

        if args.command == "search":
            results = await cache.search(args.key, args.limit)
            return [r.model_dump() for r in results]

        if args.command == "delete":
            deleted = await cache.bulk_delete(args.keys)
            return {"requested": len(args.keys), "deleted": deleted}

        if args.command == "flush":
            await cache.flush()
            return {"flushed": cache.table_name}

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        # Falls back to environment settings, which may be malformed
        configure_logging(args.log_level, args.log_format)

        if args.command == "flush" and not args.yes:
            response = input("Drop every cached entry in this namespace? [y/N]: ")
            if response.lower() != "y":
                print("Cancelled.")
                return 0

        result = asyncio.run(run(args))
    except SemanticCacheError as e:
        print(json.dumps(e.to_dict(), ensure_ascii=False), file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
