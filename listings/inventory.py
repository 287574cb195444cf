"""Inventory counts by status and property type over raw provider records.

Classification goes through :func:`listings.property_types.normalize_property_type`,
the same function the canonical mappers use, so inventory counts and
search results never disagree about what a property is.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping

from listings.common import as_mapping, first_present
from listings.model import SOURCE_LABELS, InventorySummary, ListingSource, StandardStatus
from listings.property_types import PROPERTY_TYPES, normalize_property_type
from listings.status import normalize_status

_RENTAL_MARKERS = ("rental", "lease")
_RENTAL_REMARKS = ("for rent", "for lease")


def _lower(value: Any) -> str:
    return str(value).lower() if isinstance(value, str) else ""


def is_rental_record(record: Mapping[str, Any]) -> bool:
    """Return True for lease/rental records, which inventory excludes."""

    record = as_mapping(record)
    details = as_mapping(record.get("details"))
    kinds = (
        _lower(first_present(record.get("type"), record.get("propertyType"), record.get("property_type"))),
        _lower(first_present(record.get("propertySubType"), record.get("property_sub_type"))),
        _lower(details.get("propertyType")),
    )
    if any(marker in kind for kind in kinds for marker in _RENTAL_MARKERS):
        return True
    remarks = _lower(
        first_present(record.get("publicRemarks"), record.get("public_remarks"), details.get("description"))
    )
    return any(marker in remarks for marker in _RENTAL_REMARKS)


def _record_status(record: Mapping[str, Any], source: ListingSource) -> StandardStatus:
    if source is ListingSource.DATABASE:
        return normalize_status(record.get("standard_status"))
    return normalize_status(
        first_present(record.get("standardStatus"), record.get("status")),
        record.get("lastStatus"),
    )


def _record_sub_type(record: Mapping[str, Any], source: ListingSource) -> str:
    if source is ListingSource.DATABASE:
        return normalize_property_type(record.get("property_sub_type"))
    details = as_mapping(record.get("details"))
    return normalize_property_type(
        first_present(record.get("propertySubType"), details.get("style"), record.get("type"))
    )


def summarize_inventory(
    records: Iterable[Any],
    source: ListingSource,
    *,
    generated_at: datetime,
    errors: Iterable[str] = (),
) -> InventorySummary:
    counts_by_status = {status: 0 for status in StandardStatus}
    counts_by_subtype = {name: 0 for name in PROPERTY_TYPES}
    rentals = 0
    total = 0

    for record in records:
        record = as_mapping(record)
        if is_rental_record(record):
            rentals += 1
            continue
        counts_by_status[_record_status(record, source)] += 1
        counts_by_subtype[_record_sub_type(record, source)] += 1
        total += 1

    return InventorySummary(
        data_source=SOURCE_LABELS[source],
        total_count=total,
        counts_by_status=counts_by_status,
        counts_by_subtype=counts_by_subtype,
        rental_filtered_count=rentals,
        generated_at=generated_at.isoformat(),
        errors=list(errors),
    )


__all__ = ["is_rental_record", "summarize_inventory"]
