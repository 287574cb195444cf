"""Canonical data model for property listings aggregated from multiple sources."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ListingSource(str, Enum):
    """Upstream systems that contribute listing data."""

    REPLIERS = "repliers"
    DATABASE = "database"


# Highest priority first. Merge order, primary-source selection and group
# sorting all read this tuple.
SOURCE_PRIORITY: tuple[ListingSource, ...] = (
    ListingSource.REPLIERS,
    ListingSource.DATABASE,
)

SOURCE_LABELS: dict[ListingSource, str] = {
    ListingSource.REPLIERS: "Repliers API",
    ListingSource.DATABASE: "Database",
}


class StandardStatus(str, Enum):
    ACTIVE = "Active"
    ACTIVE_UNDER_CONTRACT = "Active Under Contract"
    PENDING = "Pending"
    CLOSED = "Closed"


class _CanonicalModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class CanonicalAddress(_CanonicalModel):
    """Normalized street address plus the derived comparison key."""

    model_config = ConfigDict(frozen=True)

    line1: str = Field(..., description="Street line, or 'Address Unknown' when nothing usable was found.")
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    unit: Optional[str] = None
    normalized_key: str = Field(
        "",
        description="Lower-cased, '|'-joined address key used as a dedupe signal.",
    )


class ListingAgent(_CanonicalModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class ListingOffice(_CanonicalModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    phone: Optional[str] = None


class CanonicalListing(_CanonicalModel):
    """Source-agnostic representation of one property listing.

    Instances are built fresh by the source mappers and are never mutated;
    merging two listings produces a new instance.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Deterministic canonical identifier (e.g. 'mls:ACT123').")
    source_ids: dict[ListingSource, str] = Field(
        default_factory=dict,
        description="Source-native identifiers keyed by contributing source.",
    )
    sources: list[ListingSource] = Field(
        ..., description="Sources that contributed data, ordered by source priority."
    )
    primary_source: ListingSource = Field(
        ..., description="Source whose values win field conflicts."
    )

    standard_status: StandardStatus
    list_price: Optional[float] = None
    close_price: Optional[float] = None
    original_price: Optional[float] = None

    address: CanonicalAddress

    beds: Optional[float] = None
    baths: Optional[float] = None
    living_area_sqft: Optional[float] = None
    lot_size_sqft: Optional[float] = None
    lot_size_acres: Optional[float] = None
    year_built: Optional[int] = None
    property_type: Optional[str] = None
    property_sub_type: Optional[str] = Field(
        None, description="Normalized property type taxonomy value."
    )
    garage_spaces: Optional[float] = None
    pool_features: Optional[Union[str, list[str]]] = None

    subdivision: Optional[str] = None
    neighborhood: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    elementary_school: Optional[str] = None
    middle_school: Optional[str] = None
    high_school: Optional[str] = None

    mls_number: Optional[str] = None
    listing_id: Optional[str] = None
    list_date: Optional[str] = None
    close_date: Optional[str] = None
    days_on_market: Optional[int] = None

    photos: list[str] = Field(default_factory=list)

    listing_agent: Optional[ListingAgent] = None
    listing_office: Optional[ListingOffice] = None

    last_updated: Optional[str] = None
    data_source: Optional[str] = None
    raw: Optional[dict[str, Any]] = Field(
        default=None,
        description="Untouched upstream records keyed by source, only present when requested.",
    )


# Inbound spellings accepted for `sources` besides the enum values.
_SOURCE_ALIASES = {"aggregator": ListingSource.REPLIERS.value}


class ListingSearchParams(_CanonicalModel):
    """Search criteria accepted by the listing service."""

    status: Optional[Union[str, list[str]]] = None
    standard_status: Optional[Union[str, list[str]]] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    subdivision: Optional[str] = None
    neighborhood: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_beds: Optional[float] = None
    max_beds: Optional[float] = None
    min_baths: Optional[float] = None
    max_baths: Optional[float] = None
    min_sqft: Optional[float] = None
    max_sqft: Optional[float] = None
    property_type: Optional[str] = None
    limit: int = Field(100, ge=1)
    offset: int = Field(0, ge=0)
    include_raw: bool = False
    sources: Optional[list[ListingSource]] = None

    @field_validator("sources", mode="before")
    @classmethod
    def _lowercase_sources(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [
                _SOURCE_ALIASES.get(item.lower(), item.lower()) if isinstance(item, str) else item
                for item in value
            ]
        return value

    def first_status(self) -> Optional[str]:
        """Return the first requested status, preferring ``standard_status``."""

        for value in (self.standard_status, self.status):
            if isinstance(value, list):
                value = value[0] if value else None
            if value:
                return value
        return None

    def requested_sources(self) -> tuple[ListingSource, ...]:
        if self.sources is None:
            return SOURCE_PRIORITY
        return tuple(source for source in SOURCE_PRIORITY if source in self.sources)


class DedupeStats(_CanonicalModel):
    before_dedupe: int
    after_dedupe: int
    duplicates_removed: int
    source_breakdown: dict[ListingSource, int]


class ListingServiceResult(_CanonicalModel):
    """Outbound shape consumed by search, CMA building and reporting."""

    listings: list[CanonicalListing]
    total: int
    dedupe_stats: DedupeStats
    errors: list[str] = Field(default_factory=list)


class DuplicatePair(_CanonicalModel):
    primary_id: str
    duplicate_id: str
    score: float
    match_reason: str


class DedupeReport(_CanonicalModel):
    total_processed: int
    unique_listings: int
    duplicates_found: int
    duplicate_pairs: list[DuplicatePair]
    source_stats: dict[ListingSource, int]
    errors: list[str] = Field(default_factory=list)


class SampleMeta(_CanonicalModel):
    fetched_at: str
    sources: list[ListingSource]
    raw_fields_included: bool


class SampleListings(_CanonicalModel):
    samples: list[CanonicalListing]
    meta: SampleMeta
    errors: list[str] = Field(default_factory=list)


class InventorySummary(_CanonicalModel):
    """Listing counts by status and by normalized property type."""

    data_source: str
    total_count: int
    counts_by_status: dict[StandardStatus, int]
    counts_by_subtype: dict[str, int]
    rental_filtered_count: int
    generated_at: str
    errors: list[str] = Field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return (
            sum(self.counts_by_status.values()) == self.total_count
            and sum(self.counts_by_subtype.values()) == self.total_count
        )


__all__ = [
    "CanonicalAddress",
    "CanonicalListing",
    "DedupeReport",
    "DedupeStats",
    "DuplicatePair",
    "InventorySummary",
    "ListingAgent",
    "ListingOffice",
    "ListingSearchParams",
    "ListingServiceResult",
    "ListingSource",
    "SOURCE_LABELS",
    "SOURCE_PRIORITY",
    "SampleListings",
    "SampleMeta",
    "StandardStatus",
]
