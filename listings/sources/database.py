"""Canonical mapper for rows from the local listings database."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from listings.address import (
    ADDRESS_UNKNOWN,
    address_key_is_sparse,
    create_address_key,
    create_address_key_from_string,
)
from listings.common import (
    as_mapping,
    coerce_float,
    coerce_int,
    coerce_str,
    coerce_str_list,
    first_present,
)
from listings.identity import generate_canonical_id
from listings.model import (
    SOURCE_LABELS,
    CanonicalAddress,
    CanonicalListing,
    ListingSearchParams,
    ListingSource,
)
from listings.property_types import normalize_property_type
from listings.status import normalize_status

SOURCE = ListingSource.DATABASE

# Canonical search parameter -> database filter key
DATABASE_FILTER_FIELDS: tuple[str, ...] = (
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
)

def build_database_filters(params: ListingSearchParams) -> dict[str, Any]:
    """Translate canonical search parameters into ``search_properties`` filters."""

    filters: dict[str, Any] = {"limit": params.limit, "offset": params.offset}
    status = params.first_status()
    if status:
        filters["status"] = status
    for field_name in DATABASE_FILTER_FIELDS:
        value = getattr(params, field_name)
        if value is not None and value != "":
            filters[field_name] = value
    return filters


def _build_address(row: Mapping[str, Any]) -> CanonicalAddress:
    street_number = coerce_str(row.get("street_number")) or ""
    street_name = coerce_str(row.get("street_name")) or ""
    unparsed = coerce_str(row.get("unparsed_address"))
    line1 = " ".join(part for part in (street_number, street_name) if part) or unparsed

    city = coerce_str(row.get("city"))
    state = coerce_str(row.get("state_or_province"))
    postal_code = coerce_str(row.get("postal_code"))
    unit = coerce_str(row.get("unit_number"))

    key = create_address_key(street_number, street_name, unit, city, state, postal_code)
    if (not (street_number or street_name) or address_key_is_sparse(key)) and (unparsed or line1):
        key = create_address_key_from_string(unparsed or line1, city, state, postal_code)

    return CanonicalAddress(
        line1=line1 or ADDRESS_UNKNOWN,
        city=city,
        state=state,
        postal_code=postal_code,
        unit=unit,
        normalized_key=key,
    )


def map_database_to_canonical(
    row: Mapping[str, Any],
    include_raw: bool = False,
) -> CanonicalListing:
    """Map one ``properties`` row onto the canonical model.

    The database ``listing_id`` column holds the MLS ListingId, so it feeds
    both ``mls_number`` and ``listing_id``; the row primary key is the
    source-specific id.
    """

    row = as_mapping(row)
    extra = as_mapping(row.get("additional_data"))
    address = _build_address(row)

    row_id = coerce_str(row.get("id"))
    mls_number = coerce_str(row.get("listing_id"))
    listing_id = first_present(mls_number, row_id)
    source_id = first_present(row_id, mls_number)

    return CanonicalListing(
        id=generate_canonical_id(mls_number, listing_id, row_id, address.normalized_key),
        source_ids={SOURCE: source_id} if source_id else {},
        sources=[SOURCE],
        primary_source=SOURCE,
        standard_status=normalize_status(row.get("standard_status")),
        list_price=coerce_float(row.get("list_price")),
        close_price=coerce_float(row.get("close_price")),
        original_price=coerce_float(row.get("original_list_price")),
        address=address,
        beds=coerce_float(row.get("bedrooms_total")),
        baths=coerce_float(row.get("bathrooms_total_integer")),
        living_area_sqft=coerce_float(row.get("living_area")),
        lot_size_sqft=coerce_float(row.get("lot_size_square_feet")),
        lot_size_acres=coerce_float(row.get("lot_size_acres")),
        year_built=coerce_int(row.get("year_built")),
        property_type=coerce_str(row.get("property_type")),
        property_sub_type=normalize_property_type(row.get("property_sub_type")),
        garage_spaces=coerce_float(row.get("garage_spaces")),
        pool_features=coerce_str(row.get("pool_features")),
        subdivision=coerce_str(first_present(row.get("subdivision"), extra.get("SubdivisionName"))),
        neighborhood=coerce_str(row.get("neighborhood")),
        latitude=coerce_float(row.get("latitude")),
        longitude=coerce_float(row.get("longitude")),
        elementary_school=coerce_str(row.get("elementary_school")),
        middle_school=coerce_str(row.get("middle_or_junior_school")),
        high_school=coerce_str(row.get("high_school")),
        mls_number=mls_number,
        listing_id=listing_id,
        list_date=coerce_str(row.get("listing_contract_date")),
        close_date=coerce_str(row.get("close_date")),
        days_on_market=coerce_int(row.get("days_on_market")),
        photos=coerce_str_list(first_present(row.get("photos"), extra.get("photos"))),
        last_updated=coerce_str(row.get("modification_timestamp")),
        data_source=SOURCE_LABELS[SOURCE],
        raw={SOURCE.value: row} if include_raw else None,
    )


def map_database_rows_to_canonical(
    rows: Iterable[Any],
    include_raw: bool = False,
) -> list[CanonicalListing]:
    return [map_database_to_canonical(row, include_raw) for row in rows or ()]


__all__ = [
    "build_database_filters",
    "map_database_rows_to_canonical",
    "map_database_to_canonical",
]
