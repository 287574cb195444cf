import pytest

from listings.dedupe import (
    calculate_duplicate_score,
    deduplicate_listings,
    find_possible_duplicates,
    merge_group,
    merge_listings,
)
from listings.model import CanonicalAddress, CanonicalListing, ListingSource, StandardStatus
from listings.sources.database import map_database_to_canonical
from listings.sources.repliers import map_repliers_to_canonical

MAIN_ST_KEY = "100|main st|austin|tx|78701"


def _listing(canonical_id, source=ListingSource.REPLIERS, key=MAIN_ST_KEY, city="Austin", **fields):
    return CanonicalListing(
        id=canonical_id,
        source_ids={source: canonical_id},
        sources=[source],
        primary_source=source,
        standard_status=fields.pop("standard_status", StandardStatus.ACTIVE),
        address=CanonicalAddress(line1="100 Main St", city=city, normalized_key=key),
        **fields,
    )


def test_mls_number_match_is_case_insensitive(repliers_record, database_row):
    from_api = map_repliers_to_canonical(repliers_record)
    from_db = map_database_to_canonical(database_row)

    assert calculate_duplicate_score(from_api, from_db) == 1.0

    deduped = deduplicate_listings([from_db, from_api])

    assert len(deduped) == 1
    merged = deduped[0]
    assert merged.primary_source is ListingSource.REPLIERS
    assert merged.sources == [ListingSource.REPLIERS, ListingSource.DATABASE]
    assert merged.source_ids == {ListingSource.REPLIERS: "rep-1", ListingSource.DATABASE: "db-1"}
    assert merged.id == from_api.id
    assert merged.subdivision == "Original Austin"
    assert merged.neighborhood == "Downtown"
    assert merged.photos == [
        "https://img.example/1.jpg",
        "https://img.example/2.jpg",
        "https://img.example/3.jpg",
    ]


def test_address_key_match_merges_listings_without_mls_numbers():
    api = _listing("addr:a", list_price=500000, latitude=30.1, longitude=-97.1, beds=3)
    db = _listing(
        "lid:b",
        source=ListingSource.DATABASE,
        list_price=501000,
        latitude=30.1001,
        longitude=-97.1001,
        beds=3,
        year_built=1987,
    )

    deduped = deduplicate_listings([db, api])

    assert len(deduped) == 1
    assert deduped[0].id == "addr:a"
    assert deduped[0].year_built == 1987
    assert deduped[0].sources == [ListingSource.REPLIERS, ListingSource.DATABASE]


def test_same_street_in_different_city_is_not_merged():
    austin = _listing("a", list_price=500000)
    dallas = _listing("b", key="100|main st|dallas|tx|75201", city="Dallas", list_price=500000)

    assert len(deduplicate_listings([austin, dallas])) == 2


def test_weak_address_keys_are_never_grouped():
    first = _listing("a", key="78701", list_price=500000)
    second = _listing("b", key="78701", list_price=500000)

    assert len(deduplicate_listings([first, second])) == 2


def test_shared_key_below_threshold_keeps_both():
    first = _listing("a", list_price=500000, latitude=30.1, longitude=-97.1, beds=3)
    second = _listing(
        "b", source=ListingSource.DATABASE, list_price=900000, latitude=30.5, longitude=-97.5, beds=5
    )

    assert calculate_duplicate_score(first, second) == pytest.approx(0.5)
    assert len(deduplicate_listings([first, second])) == 2

    pairs = find_possible_duplicates([first, second])
    assert len(pairs) == 1
    assert pairs[0].match_reason == "Address key match"
    assert pairs[0].score == pytest.approx(0.5)


def test_score_counts_only_signals_both_listings_carry():
    first = _listing("a", list_price=500000)
    second = _listing("b", key="", list_price=515000)

    # Only price is comparable: 3% apart earns half its weight.
    assert calculate_duplicate_score(first, second) == pytest.approx(0.5)
    assert calculate_duplicate_score(_listing("c", key=""), _listing("d", key="")) == 0.0


def test_listing_ids_only_compare_within_one_source():
    first = _listing("x", listing_id="L-1")
    second = _listing("y", source=ListingSource.DATABASE, listing_id="L-2")

    assert calculate_duplicate_score(first, second) == 1.0


def test_merge_is_order_sensitive_but_primary_source_is_not():
    api = _listing("a", list_price=500000)
    db = _listing("b", source=ListingSource.DATABASE, list_price=510000, beds=4)

    api_first = merge_listings(api, db)
    db_first = merge_listings(db, api)

    assert api_first.list_price == 500000
    assert db_first.list_price == 510000
    assert api_first.beds == db_first.beds == 4
    assert api_first.primary_source is db_first.primary_source is ListingSource.REPLIERS
    assert merge_group([db, api]) == api_first


def test_merge_does_not_mutate_inputs():
    api = _listing("a", photos=["1.jpg"])
    db = _listing("b", source=ListingSource.DATABASE, photos=["2.jpg"], beds=2)

    merge_listings(api, db)

    assert api.photos == ["1.jpg"]
    assert api.beds is None
    assert api.sources == [ListingSource.REPLIERS]


def test_merge_fills_other_property_sub_type_from_secondary():
    api = _listing("a", property_sub_type="Other")
    db = _listing("b", source=ListingSource.DATABASE, property_sub_type="Condominium")
    unknown = _listing("c", source=ListingSource.DATABASE, property_sub_type="Other")

    assert merge_listings(api, db).property_sub_type == "Condominium"
    assert merge_listings(db, api).property_sub_type == "Condominium"
    assert merge_listings(api, unknown).property_sub_type == "Other"
