"""Canonical listing service: fetch from every source, map, dedupe, report.

The service holds no global state. Source clients and the optional cache
are injected, which keeps tests isolated from one another.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Protocol, Sequence

from listings.cache import ListingCache, cache_key
from listings.dedupe import deduplicate_listings, find_possible_duplicates
from listings.identity import split_canonical_id
from listings.inventory import summarize_inventory
from listings.model import (
    SOURCE_LABELS,
    SOURCE_PRIORITY,
    CanonicalListing,
    DedupeReport,
    DedupeStats,
    InventorySummary,
    ListingSearchParams,
    ListingServiceResult,
    ListingSource,
    SampleListings,
    SampleMeta,
)
from listings.property_types import normalize_property_type
from listings.sources.database import build_database_filters, map_database_rows_to_canonical, map_database_to_canonical
from listings.sources.repliers import build_repliers_query, map_repliers_listings_to_canonical

INVENTORY_PAGE_SIZE = 200
INVENTORY_MAX_PAGES = 50
# Aggregator statuses scanned for inventory: active, then under contract
INVENTORY_STATUSES: tuple[str, ...] = ("A", "U")

logger = logging.getLogger(__name__)


class AggregatorClient(Protocol):
    async def search_listings(self, params: Mapping[str, Any]) -> Mapping[str, Any]:
        ...


class ListingDatabase(Protocol):
    def search_properties(self, filters: Mapping[str, Any]) -> Sequence[Mapping[str, Any]]:
        ...

    def get_property_by_listing_id(self, listing_id: str) -> Mapping[str, Any] | None:
        ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_params(params: ListingSearchParams | Mapping[str, Any] | None) -> ListingSearchParams:
    if params is None:
        return ListingSearchParams()
    if isinstance(params, ListingSearchParams):
        return params
    return ListingSearchParams.model_validate(params)


def _filter_property_type(
    listings: list[CanonicalListing], property_type: str | None
) -> list[CanonicalListing]:
    if not property_type:
        return listings
    wanted = normalize_property_type(property_type)
    return [listing for listing in listings if listing.property_sub_type == wanted]


class CanonicalListingService:
    """Aggregate listings from the aggregator API and the database."""

    def __init__(
        self,
        aggregator: AggregatorClient | None = None,
        database: ListingDatabase | None = None,
        *,
        cache: ListingCache[ListingServiceResult] | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.aggregator = aggregator
        self.database = database
        self.cache = cache
        self._clock = clock

    @property
    def configured_sources(self) -> tuple[ListingSource, ...]:
        configured = {
            ListingSource.REPLIERS: self.aggregator is not None,
            ListingSource.DATABASE: self.database is not None,
        }
        return tuple(source for source in SOURCE_PRIORITY if configured[source])

    async def _fetch_from_repliers(self, params: ListingSearchParams) -> list[CanonicalListing]:
        response = await self.aggregator.search_listings(build_repliers_query(params))
        records = response.get("listings") if isinstance(response, Mapping) else None
        return map_repliers_listings_to_canonical(records or [], params.include_raw)

    async def _fetch_from_database(self, params: ListingSearchParams) -> list[CanonicalListing]:
        rows = await asyncio.to_thread(self.database.search_properties, build_database_filters(params))
        return map_database_rows_to_canonical(rows or [], params.include_raw)

    def _source_fetchers(
        self, params: ListingSearchParams
    ) -> dict[ListingSource, Awaitable[list[CanonicalListing]]]:
        requested = params.requested_sources()
        fetchers: dict[ListingSource, Awaitable[list[CanonicalListing]]] = {}
        if ListingSource.REPLIERS in requested:
            if self.aggregator is not None:
                fetchers[ListingSource.REPLIERS] = self._fetch_from_repliers(params)
            else:
                logger.debug("Aggregator source requested but no client is configured; skipping.")
        if ListingSource.DATABASE in requested and self.database is not None:
            fetchers[ListingSource.DATABASE] = self._fetch_from_database(params)
        return fetchers

    async def fetch_listings(
        self, params: ListingSearchParams | Mapping[str, Any] | None = None
    ) -> ListingServiceResult:
        """Fetch every enabled source concurrently, then map and dedupe.

        A failing source contributes an entry to ``errors`` instead of
        aborting the call; the other source's listings are still returned.
        """

        params = _coerce_params(params)
        key = cache_key(params)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        fetchers = self._source_fetchers(params)
        outcomes = await asyncio.gather(*fetchers.values(), return_exceptions=True)

        errors: list[str] = []
        collected: list[CanonicalListing] = []
        source_breakdown = {source: 0 for source in SOURCE_PRIORITY}

        for source, outcome in zip(fetchers, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Listing fetch from %s failed: %s", source.value, outcome)
                errors.append(f"{SOURCE_LABELS[source]} error: {outcome}")
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            outcome = _filter_property_type(outcome, params.property_type)
            collected.extend(outcome)
            source_breakdown[source] = len(outcome)

        deduped = deduplicate_listings(collected)
        result = ListingServiceResult(
            listings=deduped,
            total=len(deduped),
            dedupe_stats=DedupeStats(
                before_dedupe=len(collected),
                after_dedupe=len(deduped),
                duplicates_removed=len(collected) - len(deduped),
                source_breakdown=source_breakdown,
            ),
            errors=errors,
        )
        logger.info(
            "Fetched %s listings (%s after dedupe, %s errors).",
            len(collected),
            len(deduped),
            len(errors),
        )

        if self.cache is not None and not errors:
            self.cache.set(key, result)
        return result

    async def get_listing_by_id(
        self, listing_id: str, include_raw: bool = False
    ) -> CanonicalListing | None:
        """Look a listing up in the database; ``None`` means not found.

        Accepts canonical ids (``mls:ACT1``) as well as bare listing ids.
        The aggregator is not consulted for single lookups.
        """

        if self.database is None:
            return None
        _, value = split_canonical_id(listing_id)
        if not value:
            return None
        try:
            row = await asyncio.to_thread(self.database.get_property_by_listing_id, value)
        except Exception:
            logger.exception("Database lookup for listing %s failed.", value)
            return None
        if not row:
            return None
        return map_database_to_canonical(row, include_raw)

    async def get_sample_listings(self, count: int = 25, include_raw: bool = True) -> SampleListings:
        sources = [ListingSource.REPLIERS]
        result = await self.fetch_listings(
            ListingSearchParams(limit=count, include_raw=include_raw, sources=sources)
        )
        return SampleListings(
            samples=result.listings,
            meta=SampleMeta(
                fetched_at=self._clock().isoformat(),
                sources=sources,
                raw_fields_included=include_raw,
            ),
            errors=result.errors,
        )

    async def get_dedupe_report(self, sample_size: int = 100) -> DedupeReport:
        result = await self.fetch_listings(
            ListingSearchParams(limit=sample_size, sources=list(SOURCE_PRIORITY))
        )
        source_stats = {source: 0 for source in SOURCE_PRIORITY}
        for listing in result.listings:
            source_stats[listing.primary_source] += 1
        return DedupeReport(
            total_processed=result.dedupe_stats.before_dedupe,
            unique_listings=result.dedupe_stats.after_dedupe,
            duplicates_found=result.dedupe_stats.duplicates_removed,
            duplicate_pairs=find_possible_duplicates(result.listings),
            source_stats=source_stats,
            errors=result.errors,
        )

    async def _collect_aggregator_pages(
        self, page_size: int, max_pages: int
    ) -> tuple[list[Mapping[str, Any]], list[str]]:
        records: list[Mapping[str, Any]] = []
        errors: list[str] = []
        for status in INVENTORY_STATUSES:
            page = 1
            while page <= max_pages:
                try:
                    response = await self.aggregator.search_listings(
                        {
                            "class": "residential",
                            "status": status,
                            "resultsPerPage": page_size,
                            "pageNum": page,
                        }
                    )
                except Exception as exc:
                    logger.warning("Inventory scan for status %s stopped at page %s: %s", status, page, exc)
                    errors.append(f"{SOURCE_LABELS[ListingSource.REPLIERS]} error: {exc}")
                    break
                listings = response.get("listings") or []
                records.extend(listings)
                num_pages = response.get("numPages") or 1
                if len(listings) < page_size or page >= num_pages:
                    break
                page += 1
            logger.info("Inventory scan for status %s collected %s records so far.", status, len(records))
        return records, errors

    async def get_inventory_summary(
        self,
        *,
        page_size: int = INVENTORY_PAGE_SIZE,
        max_pages: int = INVENTORY_MAX_PAGES,
    ) -> InventorySummary:
        """Count residential inventory by status and normalized property type.

        Scans the aggregator when one is configured, otherwise the database.
        """

        if self.aggregator is not None:
            records, errors = await self._collect_aggregator_pages(page_size, max_pages)
            source = ListingSource.REPLIERS
        else:
            source = ListingSource.DATABASE
            records, errors = [], []
            if self.database is not None:
                try:
                    records = list(
                        await asyncio.to_thread(
                            self.database.search_properties, {"limit": page_size * max_pages}
                        )
                    )
                except Exception as exc:
                    logger.warning("Inventory scan of the database failed: %s", exc)
                    errors.append(f"{SOURCE_LABELS[source]} error: {exc}")
        return summarize_inventory(records, source, generated_at=self._clock(), errors=errors)

    def clear_cache(self) -> None:
        if self.cache is not None:
            self.cache.clear()
            logger.info("Listing cache cleared.")


__all__ = [
    "AggregatorClient",
    "CanonicalListingService",
    "ListingDatabase",
]
