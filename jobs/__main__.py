"""Command-line entrypoint for listing jobs."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Any

from jobs.config import load_settings
from jobs.report import import_properties, run

# ListingSearchParams fields exposed as `fetch` flags
SEARCH_FLAGS: tuple[str, ...] = (
    "status",
    "city",
    "postal_code",
    "subdivision",
    "neighborhood",
    "min_price",
    "max_price",
    "min_beds",
    "max_beds",
    "min_baths",
    "max_baths",
    "min_sqft",
    "max_sqft",
    "property_type",
)

_FLOAT_FLAGS = {name for name in SEARCH_FLAGS if name.startswith(("min_", "max_"))}


def _search_params_from_args(args: argparse.Namespace) -> dict[str, Any]:
    params: dict[str, Any] = {"limit": args.limit, "offset": args.offset, "include_raw": args.include_raw}
    for name in SEARCH_FLAGS:
        value = getattr(args, name)
        if value is not None:
            params[name] = value
    if args.sources:
        params["sources"] = [item.strip() for item in args.sources.split(",") if item.strip()]
    return params


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Canonical listing job runner")
    parser.add_argument(
        "--log-level",
        help="Override LOG_LEVEL for this invocation (e.g. DEBUG, INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch_parser = subparsers.add_parser(
        "fetch", help="Search every configured source and print deduplicated listings"
    )
    for name in SEARCH_FLAGS:
        fetch_parser.add_argument(
            f"--{name.replace('_', '-')}",
            dest=name,
            type=float if name in _FLOAT_FLAGS else str,
        )
    fetch_parser.add_argument("--limit", type=int, default=100)
    fetch_parser.add_argument("--offset", type=int, default=0)
    fetch_parser.add_argument(
        "--sources",
        help="Comma-separated list of sources to query (defaults to all configured)",
    )
    fetch_parser.add_argument("--include-raw", action="store_true")

    samples_parser = subparsers.add_parser(
        "samples", help="Print a sample of aggregator listings, raw fields included"
    )
    samples_parser.add_argument("--count", type=int, default=25)
    samples_parser.add_argument("--no-raw", dest="include_raw", action="store_false")

    report_parser = subparsers.add_parser(
        "dedupe-report", help="Run the pipeline over both sources and report duplicates"
    )
    report_parser.add_argument("--sample-size", type=int, default=100)

    inventory_parser = subparsers.add_parser(
        "inventory", help="Count residential inventory by status and property type"
    )
    inventory_parser.add_argument("--max-pages", type=int, default=10)
    inventory_parser.add_argument("--page-size", type=int, default=200)

    get_parser = subparsers.add_parser("get", help="Look up one listing in the database")
    get_parser.add_argument("listing_id")
    get_parser.add_argument("--include-raw", action="store_true")

    import_parser = subparsers.add_parser(
        "import", help="Load property rows from a JSON file into DuckDB"
    )
    import_parser.add_argument("path", type=Path)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

    settings = load_settings()

    if args.command == "import":
        import_properties(settings, args.path)
        return 0

    if args.command == "fetch":
        output = run(settings, "fetch", params=_search_params_from_args(args))
    elif args.command == "samples":
        output = run(settings, "samples", count=args.count, include_raw=args.include_raw)
    elif args.command == "dedupe-report":
        output = run(settings, "dedupe-report", sample_size=args.sample_size)
    elif args.command == "inventory":
        output = run(settings, "inventory", max_pages=args.max_pages, page_size=args.page_size)
    elif args.command == "get":
        output = run(settings, "get", listing_id=args.listing_id, include_raw=args.include_raw)
    else:
        parser.error("Unknown command")
        return 1

    print(output)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
