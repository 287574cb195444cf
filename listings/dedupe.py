"""Duplicate scoring, pairwise merging and group deduplication of listings.

Merging is order sensitive: ``merge_listings(a, b)`` keeps every value of
``a`` and only fills gaps from ``b``. Groups are therefore always sorted by
:data:`~listings.model.SOURCE_PRIORITY` and folded left.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Iterable, Sequence

from listings.address import is_substantial_address_key
from listings.model import (
    SOURCE_PRIORITY,
    CanonicalAddress,
    CanonicalListing,
    DuplicatePair,
    ListingSource,
)
from listings.property_types import OTHER

DUPLICATE_THRESHOLD = 0.7
POSSIBLE_DUPLICATE_THRESHOLD = 0.5

# Signal weights; a signal only counts when both listings carry it.
LISTING_ID_WEIGHT = 80
ADDRESS_KEY_WEIGHT = 60
PRICE_WEIGHT = 20
LOCATION_WEIGHT = 30
BEDS_WEIGHT = 10
BATHS_WEIGHT = 10
AREA_WEIGHT = 10

# Degrees; 0.001 is roughly 100 m.
NEAR_DEGREES = 0.001
CLOSE_DEGREES = 0.005

_IDENTITY_FIELDS = {"id", "source_ids", "sources", "primary_source", "address", "photos", "raw"}

logger = logging.getLogger(__name__)


def source_priority(source: ListingSource) -> int:
    """Return the rank of ``source`` (0 is highest)."""

    try:
        return SOURCE_PRIORITY.index(source)
    except ValueError:
        return len(SOURCE_PRIORITY)


def determine_primary_source(sources: Iterable[ListingSource]) -> ListingSource:
    present = set(sources)
    for source in SOURCE_PRIORITY:
        if source in present:
            return source
    return SOURCE_PRIORITY[-1]


def sort_by_source_priority(listings: Iterable[CanonicalListing]) -> list[CanonicalListing]:
    return sorted(listings, key=lambda listing: source_priority(listing.primary_source))


def _same_mls_number(a: CanonicalListing, b: CanonicalListing) -> bool:
    return bool(a.mls_number and b.mls_number) and a.mls_number.lower() == b.mls_number.lower()


def _relative_difference(a: float, b: float) -> float:
    largest = max(abs(a), abs(b))
    if largest == 0:
        return 0.0
    return abs(a - b) / largest


def calculate_duplicate_score(a: CanonicalListing, b: CanonicalListing) -> float:
    """Return a similarity score in ``[0, 1]`` for two listings.

    A shared MLS number decides the question on its own. Every other signal
    contributes its weight to the possible total only when both listings
    carry it, so sparse listings are not penalized for missing data.
    """

    if _same_mls_number(a, b):
        return 1.0

    score = 0.0
    possible = 0.0

    # Listing ids are source-native, so they only compare within one source.
    if a.listing_id and b.listing_id and a.primary_source == b.primary_source:
        possible += LISTING_ID_WEIGHT
        if a.listing_id.lower() == b.listing_id.lower():
            score += LISTING_ID_WEIGHT

    key_a, key_b = a.address.normalized_key, b.address.normalized_key
    if key_a and key_b:
        possible += ADDRESS_KEY_WEIGHT
        if key_a == key_b:
            score += ADDRESS_KEY_WEIGHT

    if a.list_price and b.list_price:
        possible += PRICE_WEIGHT
        difference = _relative_difference(a.list_price, b.list_price)
        if difference < 0.01:
            score += PRICE_WEIGHT
        elif difference < 0.05:
            score += PRICE_WEIGHT / 2

    if None not in (a.latitude, a.longitude, b.latitude, b.longitude):
        possible += LOCATION_WEIGHT
        lat_diff = abs(a.latitude - b.latitude)
        lng_diff = abs(a.longitude - b.longitude)
        if lat_diff < NEAR_DEGREES and lng_diff < NEAR_DEGREES:
            score += LOCATION_WEIGHT
        elif lat_diff < CLOSE_DEGREES and lng_diff < CLOSE_DEGREES:
            score += LOCATION_WEIGHT / 2

    if a.beds is not None and b.beds is not None:
        possible += BEDS_WEIGHT
        if a.beds == b.beds:
            score += BEDS_WEIGHT

    if a.baths is not None and b.baths is not None:
        possible += BATHS_WEIGHT
        if a.baths == b.baths:
            score += BATHS_WEIGHT

    if a.living_area_sqft and b.living_area_sqft:
        possible += AREA_WEIGHT
        if _relative_difference(a.living_area_sqft, b.living_area_sqft) < 0.05:
            score += AREA_WEIGHT

    if possible == 0:
        return 0.0
    return score / possible


def _merge_address(primary: CanonicalAddress, secondary: CanonicalAddress) -> CanonicalAddress:
    updates: dict[str, Any] = {}
    for name in CanonicalAddress.model_fields:
        if getattr(primary, name) in (None, "") and getattr(secondary, name) not in (None, ""):
            updates[name] = getattr(secondary, name)
    return primary.model_copy(update=updates) if updates else primary


def merge_listings(primary: CanonicalListing, secondary: CanonicalListing) -> CanonicalListing:
    """Merge ``secondary`` into ``primary`` and return a new listing.

    Values of ``primary`` always win; ``secondary`` only fills fields that
    are ``None`` (a ``property_sub_type`` of ``"Other"`` counts as unset).
    Sources and source ids are unioned, photos are unioned in order, and
    ``primary_source`` is recomputed from source priority instead of being
    inherited from the ``primary`` argument.
    """

    updates: dict[str, Any] = {}
    for name in CanonicalListing.model_fields:
        if name in _IDENTITY_FIELDS:
            continue
        if getattr(primary, name) is None and getattr(secondary, name) is not None:
            updates[name] = getattr(secondary, name)
    if primary.property_sub_type == OTHER and secondary.property_sub_type not in (None, OTHER):
        updates["property_sub_type"] = secondary.property_sub_type

    sources = sorted(set(primary.sources) | set(secondary.sources), key=source_priority)
    source_ids = dict(secondary.source_ids)
    source_ids.update(primary.source_ids)

    photos = list(dict.fromkeys([*primary.photos, *secondary.photos]))

    raw = None
    if primary.raw is not None or secondary.raw is not None:
        raw = {**(secondary.raw or {}), **(primary.raw or {})}

    updates.update(
        sources=sources,
        source_ids=source_ids,
        primary_source=determine_primary_source(sources),
        address=_merge_address(primary.address, secondary.address),
        photos=photos,
        raw=raw,
    )
    return primary.model_copy(update=updates)


def merge_group(listings: Sequence[CanonicalListing]) -> CanonicalListing:
    """Sort by source priority and fold the group left into one listing."""

    ordered = sort_by_source_priority(listings)
    merged = ordered[0]
    for candidate in ordered[1:]:
        merged = merge_listings(merged, candidate)
    return merged


def deduplicate_listings(
    listings: Iterable[CanonicalListing],
    *,
    threshold: float = DUPLICATE_THRESHOLD,
) -> list[CanonicalListing]:
    """Collapse listings that describe the same property.

    1. Listings with an MLS number are bucketed by the lower-cased number and
       each bucket is merged.
    2. Listings without one are grouped by address key, but only when the
       key is substantial. Each group is sorted by priority and walked
       pairwise: a candidate is merged when its score against the running
       merge reaches ``threshold`` and kept separate otherwise.
    3. Listings with weak or missing keys pass through untouched.

    Output order is not part of the contract.
    """

    by_mls: dict[str, list[CanonicalListing]] = defaultdict(list)
    by_address: dict[str, list[CanonicalListing]] = defaultdict(list)
    weak_keys: list[CanonicalListing] = []

    for listing in listings:
        if listing.mls_number:
            by_mls[listing.mls_number.lower()].append(listing)
        elif is_substantial_address_key(listing.address.normalized_key):
            by_address[listing.address.normalized_key].append(listing)
        else:
            weak_keys.append(listing)

    deduped: list[CanonicalListing] = []

    for group in by_mls.values():
        deduped.append(group[0] if len(group) == 1 else merge_group(group))

    for key, group in by_address.items():
        if len(group) == 1:
            deduped.append(group[0])
            continue
        ordered = sort_by_source_priority(group)
        merged = ordered[0]
        for candidate in ordered[1:]:
            score = calculate_duplicate_score(merged, candidate)
            if score >= threshold:
                merged = merge_listings(merged, candidate)
            else:
                logger.debug(
                    "Address key %s shared by %s and %s but score %.2f is below %.2f; keeping both.",
                    key,
                    merged.id,
                    candidate.id,
                    score,
                    threshold,
                )
                deduped.append(candidate)
        deduped.append(merged)

    deduped.extend(weak_keys)
    return deduped


def _match_reason(a: CanonicalListing, b: CanonicalListing) -> str:
    if _same_mls_number(a, b):
        return "MLS number match"
    if a.address.normalized_key and a.address.normalized_key == b.address.normalized_key:
        return "Address key match"
    return "Proximity/similarity match"


def find_possible_duplicates(
    listings: Sequence[CanonicalListing],
    *,
    lower: float = POSSIBLE_DUPLICATE_THRESHOLD,
    upper: float = DUPLICATE_THRESHOLD,
) -> list[DuplicatePair]:
    """Report pairs scoring in ``[lower, upper)``: similar, but not merged."""

    pairs: list[DuplicatePair] = []
    for index, first in enumerate(listings):
        for second in listings[index + 1:]:
            score = calculate_duplicate_score(first, second)
            if lower <= score < upper:
                pairs.append(
                    DuplicatePair(
                        primary_id=first.id,
                        duplicate_id=second.id,
                        score=score,
                        match_reason=_match_reason(first, second),
                    )
                )
    return pairs


__all__ = [
    "DUPLICATE_THRESHOLD",
    "POSSIBLE_DUPLICATE_THRESHOLD",
    "calculate_duplicate_score",
    "deduplicate_listings",
    "determine_primary_source",
    "find_possible_duplicates",
    "merge_group",
    "merge_listings",
    "sort_by_source_priority",
    "source_priority",
]
