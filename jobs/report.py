"""Async job bodies behind the CLI subcommands."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel

from jobs.config import ServiceSettings, build_service
from listings.model import ListingSearchParams
from listings.service import CanonicalListingService
from storage.db import DatabaseListingStore

logger = logging.getLogger(__name__)


def to_json(payload: BaseModel | None) -> str:
    """Render a result the way consumers receive it: camelCase keys."""

    if payload is None:
        return "null"
    return json.dumps(payload.model_dump(mode="json", by_alias=True), indent=2)


async def fetch_report(service: CanonicalListingService, params: Mapping[str, Any]) -> str:
    search = ListingSearchParams.model_validate(params)
    result = await service.fetch_listings(search)
    for error in result.errors:
        logger.warning("Source error during fetch: %s", error)
    return to_json(result)


async def samples_report(service: CanonicalListingService, count: int, include_raw: bool) -> str:
    return to_json(await service.get_sample_listings(count=count, include_raw=include_raw))


async def dedupe_report(service: CanonicalListingService, sample_size: int) -> str:
    report = await service.get_dedupe_report(sample_size=sample_size)
    logger.info(
        "Processed %s listings: %s unique, %s duplicates, %s possible pairs.",
        report.total_processed,
        report.unique_listings,
        report.duplicates_found,
        len(report.duplicate_pairs),
    )
    return to_json(report)


async def inventory_report(service: CanonicalListingService, max_pages: int, page_size: int) -> str:
    summary = await service.get_inventory_summary(max_pages=max_pages, page_size=page_size)
    if not summary.is_consistent:
        logger.warning("Inventory counts do not add up to total_count=%s.", summary.total_count)
    return to_json(summary)


async def listing_report(service: CanonicalListingService, listing_id: str, include_raw: bool) -> str:
    listing = await service.get_listing_by_id(listing_id, include_raw=include_raw)
    if listing is None:
        logger.info("No listing found for %s.", listing_id)
    return to_json(listing)


def _read_property_rows(path: Path) -> list[dict[str, Any]]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, Mapping):
        payload = payload.get("properties") or payload.get("listings") or []
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a JSON array of property rows.")
    return [row for row in payload if isinstance(row, Mapping)]


def import_properties(settings: ServiceSettings, path: Path) -> int:
    """Load property rows from a JSON file into the listings database."""

    rows = _read_property_rows(path)
    if not rows:
        logger.warning("No property rows found in %s; nothing written.", path)
        return 0
    written = DatabaseListingStore(settings.db_path).upsert(rows)
    logger.info("Persisted %s property rows into %s.", written, settings.db_path)
    return written


def run(settings: ServiceSettings, command: str, **options: Any) -> str:
    """Build a service from ``settings`` and run one report to completion."""

    service = build_service(settings)
    jobs = {
        "fetch": lambda: fetch_report(service, options.get("params") or {}),
        "samples": lambda: samples_report(service, options["count"], options["include_raw"]),
        "dedupe-report": lambda: dedupe_report(service, options["sample_size"]),
        "inventory": lambda: inventory_report(service, options["max_pages"], options["page_size"]),
        "get": lambda: listing_report(service, options["listing_id"], options["include_raw"]),
    }
    if command not in jobs:
        raise ValueError(f"Unknown report command: {command}")
    return asyncio.run(jobs[command]())


__all__ = [
    "dedupe_report",
    "fetch_report",
    "import_properties",
    "inventory_report",
    "listing_report",
    "run",
    "samples_report",
    "to_json",
]
