"""Repliers MLS aggregator client and canonical mapper.

The client returns provider-native listing records; the mapper turns them
into :class:`~listings.model.CanonicalListing` objects.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Iterable, Mapping

import httpx

from listings.address import (
    ADDRESS_UNKNOWN,
    address_key_is_sparse,
    create_address_key,
    create_address_key_from_string,
)
from listings.common import (
    DEFAULT_TIMEOUT_SECONDS,
    as_mapping,
    coerce_float,
    coerce_int,
    coerce_str,
    coerce_str_list,
    fetch_json,
    first_present,
)
from listings.identity import generate_canonical_id
from listings.model import (
    SOURCE_LABELS,
    CanonicalAddress,
    CanonicalListing,
    ListingAgent,
    ListingOffice,
    ListingSearchParams,
    ListingSource,
)
from listings.property_types import normalize_property_type
from listings.status import normalize_status

REPLIERS_BASE_URL = "https://api.repliers.io"
REPLIERS_API_KEY_HEADER = "REPLIERS-API-KEY"
SOURCE = ListingSource.REPLIERS

# Canonical search parameter -> Repliers query parameter
REPLIERS_QUERY_FIELDS: Mapping[str, str] = {
    "city": "city",
    "postal_code": "zip",
    "subdivision": "subdivision",
    "neighborhood": "neighborhood",
    "min_price": "minPrice",
    "max_price": "maxPrice",
    "min_beds": "minBeds",
    "max_beds": "maxBeds",
    "min_baths": "minBaths",
    "max_baths": "maxBaths",
    "min_sqft": "minSqft",
    "max_sqft": "maxSqft",
}

logger = logging.getLogger(__name__)

def _resolve_api_key(api_key: str | None) -> str | None:
    resolved = api_key or os.getenv("REPLIERS_API_KEY")
    if not resolved:
        logger.warning(
            "Repliers API key missing. Aggregator source disabled. Set REPLIERS_API_KEY or pass api_key explicitly."
        )
    return resolved


class RepliersClient:
    """Minimal async client for the Repliers ``/listings`` search endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = REPLIERS_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_env(cls, api_key: str | None = None, **kwargs: Any) -> "RepliersClient | None":
        resolved = _resolve_api_key(api_key)
        if not resolved:
            return None
        base_url = os.getenv("REPLIERS_API_URL")
        if base_url and "base_url" not in kwargs:
            kwargs["base_url"] = base_url
        return cls(resolved, **kwargs)

    async def search_listings(self, params: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
        """Search listings and return ``{"listings": [...], "count", "numPages"}``."""

        query = {key: value for key, value in (params or {}).items() if value not in (None, "")}
        payload = await fetch_json(
            f"{self.base_url}/listings",
            headers={
                REPLIERS_API_KEY_HEADER: self.api_key,
                "Accept": "application/json",
            },
            params=query,
            timeout=self.timeout,
            transport=self._transport,
        )
        if not isinstance(payload, Mapping):
            logger.warning("Repliers returned a non-object payload (%s).", type(payload).__name__)
            return {"listings": []}
        listings = payload.get("listings")
        if not isinstance(listings, list):
            return {**payload, "listings": []}
        return payload


def build_repliers_query(params: ListingSearchParams) -> dict[str, Any]:
    """Translate canonical search parameters into Repliers query parameters."""

    query: dict[str, Any] = {
        "resultsPerPage": params.limit,
        "pageNum": params.offset // params.limit + 1,
    }

    if params.standard_status:
        query["standardStatus"] = params.first_status()
    elif params.status:
        query["status"] = params.first_status()

    for field_name, query_name in REPLIERS_QUERY_FIELDS.items():
        value = getattr(params, field_name)
        if value:
            query[query_name] = value

    if params.include_raw:
        query["fields"] = "raw"
    return query


def _street_parts(address: Mapping[str, Any], raw: Mapping[str, Any]) -> tuple[str, str, str]:
    street_number = coerce_str(first_present(address.get("streetNumber"), raw.get("StreetNumber"))) or ""
    street_name = coerce_str(first_present(address.get("streetName"), raw.get("StreetName"))) or ""
    street_suffix = coerce_str(first_present(address.get("streetSuffix"), raw.get("StreetSuffix"))) or ""
    full_street_name = " ".join(part for part in (street_name, street_suffix) if part)
    return street_number, full_street_name, " ".join(
        part for part in (street_number, full_street_name) if part
    )


def _build_address(listing: Mapping[str, Any], raw: Mapping[str, Any]) -> CanonicalAddress:
    address = as_mapping(listing.get("address"))
    street_number, street_name, line1 = _street_parts(address, raw)
    unparsed = coerce_str(first_present(raw.get("UnparsedAddress"), raw.get("FullStreetAddress")))
    line1 = line1 or unparsed or ""

    city = coerce_str(first_present(address.get("city"), raw.get("City")))
    state = coerce_str(first_present(address.get("state"), raw.get("StateOrProvince")))
    postal_code = coerce_str(first_present(address.get("zip"), raw.get("PostalCode")))
    unit = coerce_str(first_present(address.get("unitNumber"), raw.get("UnitNumber")))

    key = create_address_key(street_number, street_name, unit, city, state, postal_code)
    if not (street_number or street_name) or address_key_is_sparse(key):
        fallback = unparsed or line1
        if fallback:
            key = create_address_key_from_string(fallback, city, state, postal_code)

    return CanonicalAddress(
        line1=line1 or ADDRESS_UNKNOWN,
        city=city,
        state=state,
        postal_code=postal_code,
        unit=unit,
        normalized_key=key,
    )


def _build_agent(value: Any) -> ListingAgent | None:
    agent = as_mapping(value)
    if not agent:
        return None
    return ListingAgent(
        name=coerce_str(agent.get("name")),
        phone=coerce_str(agent.get("phone")),
        email=coerce_str(agent.get("email")),
    )


def _build_office(value: Any) -> ListingOffice | None:
    office = as_mapping(value)
    if not office:
        return None
    return ListingOffice(name=coerce_str(office.get("name")), phone=coerce_str(office.get("phone")))


def _pool_features(value: Any) -> str | list[str] | None:
    if isinstance(value, (list, tuple)):
        return coerce_str_list(value) or None
    return coerce_str(value)


def map_repliers_to_canonical(
    listing: Mapping[str, Any],
    include_raw: bool = False,
) -> CanonicalListing:
    """Map one Repliers listing record onto the canonical model.

    Nested structures (``address``, ``details``, ``map``) are read first,
    then the RESO fields under ``raw``. Missing values stay ``None``.
    """

    listing = as_mapping(listing)
    raw = as_mapping(listing.get("raw"))
    details = as_mapping(listing.get("details"))
    geo = as_mapping(listing.get("map"))
    address_fields = as_mapping(listing.get("address"))
    address = _build_address(listing, raw)

    standard_status = normalize_status(
        first_present(
            listing.get("standardStatus"),
            listing.get("status"),
            raw.get("StandardStatus"),
            raw.get("MlsStatus"),
        ),
        listing.get("lastStatus"),
    )

    raw_sub_type = first_present(
        listing.get("propertySubType"),
        details.get("style"),
        listing.get("type"),
        raw.get("PropertySubType"),
    )

    mls_number = coerce_str(first_present(listing.get("mlsNumber"), raw.get("ListingId")))
    listing_id = coerce_str(
        first_present(listing.get("listingId"), raw.get("ListingId"), raw.get("ListingKey"))
    )

    source_id = first_present(listing_id, mls_number)
    last_updated = coerce_str(
        first_present(
            listing.get("updatedOn"),
            as_mapping(listing.get("timestamps")).get("listingUpdated"),
            raw.get("ModificationTimestamp"),
        )
    )

    canonical = CanonicalListing(
        id=generate_canonical_id(mls_number, listing_id, None, address.normalized_key),
        source_ids={SOURCE: source_id} if source_id else {},
        sources=[SOURCE],
        primary_source=SOURCE,
        standard_status=standard_status,
        list_price=coerce_float(listing.get("listPrice")),
        close_price=coerce_float(first_present(listing.get("closePrice"), listing.get("soldPrice"))),
        original_price=coerce_float(listing.get("originalPrice")),
        address=address,
        beds=coerce_float(
            first_present(details.get("bedrooms"), details.get("numBedrooms"), raw.get("BedroomsTotal"))
        ),
        baths=coerce_float(
            first_present(
                details.get("bathrooms"),
                details.get("numBathrooms"),
                raw.get("BathroomsTotalInteger"),
            )
        ),
        living_area_sqft=coerce_float(
            first_present(listing.get("livingArea"), details.get("sqft"), raw.get("LivingArea"))
        ),
        lot_size_sqft=coerce_float(
            first_present(listing.get("lotSizeSquareFeet"), details.get("lotSize"), raw.get("LotSizeSquareFeet"))
        ),
        lot_size_acres=coerce_float(first_present(listing.get("lotSizeAcres"), raw.get("LotSizeAcres"))),
        year_built=coerce_int(
            first_present(listing.get("yearBuilt"), details.get("yearBuilt"), raw.get("YearBuilt"))
        ),
        property_type=coerce_str(
            first_present(details.get("propertyType"), listing.get("type"), raw.get("PropertyType"))
        ),
        property_sub_type=normalize_property_type(raw_sub_type),
        garage_spaces=coerce_float(
            first_present(listing.get("garageSpaces"), details.get("garage"), raw.get("GarageSpaces"))
        ),
        pool_features=_pool_features(
            first_present(listing.get("poolFeatures"), details.get("pool"), raw.get("PoolFeatures"))
        ),
        subdivision=coerce_str(first_present(listing.get("subdivision"), raw.get("SubdivisionName"))),
        neighborhood=coerce_str(
            first_present(address_fields.get("neighborhood"), raw.get("Neighborhood"))
        ),
        latitude=coerce_float(first_present(geo.get("latitude"), raw.get("Latitude"))),
        longitude=coerce_float(first_present(geo.get("longitude"), raw.get("Longitude"))),
        elementary_school=coerce_str(first_present(listing.get("elementarySchool"), raw.get("ElementarySchool"))),
        middle_school=coerce_str(
            first_present(listing.get("middleSchool"), raw.get("MiddleOrJuniorSchool"))
        ),
        high_school=coerce_str(first_present(listing.get("highSchool"), raw.get("HighSchool"))),
        mls_number=mls_number,
        listing_id=listing_id,
        list_date=coerce_str(first_present(listing.get("listDate"), raw.get("ListingContractDate"))),
        close_date=coerce_str(
            first_present(listing.get("closeDate"), listing.get("soldDate"), raw.get("CloseDate"))
        ),
        days_on_market=coerce_int(first_present(listing.get("daysOnMarket"), raw.get("DaysOnMarket"))),
        photos=coerce_str_list(first_present(listing.get("photos"), listing.get("images"))),
        listing_agent=_build_agent(listing.get("agent")),
        listing_office=_build_office(listing.get("office")),
        last_updated=last_updated,
        data_source=SOURCE_LABELS[SOURCE],
        raw={SOURCE.value: listing} if include_raw else None,
    )
    return canonical


def map_repliers_listings_to_canonical(
    listings: Iterable[Any],
    include_raw: bool = False,
) -> list[CanonicalListing]:
    return [map_repliers_to_canonical(listing, include_raw) for listing in listings or ()]


def get_repliers_raw_field(listing: Mapping[str, Any], field_path: str, default: Any = None) -> Any:
    """Read a dotted path (``"Media.0.MediaURL"``-style keys) from ``listing['raw']``."""

    current: Any = as_mapping(listing).get("raw")
    if current is None:
        return default
    for part in field_path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return default
        if current is None:
            return default
    return current


__all__ = [
    "REPLIERS_BASE_URL",
    "RepliersClient",
    "build_repliers_query",
    "get_repliers_raw_field",
    "map_repliers_listings_to_canonical",
    "map_repliers_to_canonical",
]
