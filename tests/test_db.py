import asyncio
from datetime import date, datetime

import pytest

from listings.service import CanonicalListingService
from storage.db import DatabaseListingStore, build_property_filters, connect, fetch_properties


@pytest.fixture()
def store(tmp_path, database_row):
    store = DatabaseListingStore(tmp_path / "listings.duckdb")
    rows = [
        database_row,
        {
            "id": "db-2",
            "listing_id": "ACT2000",
            "standard_status": "Closed",
            "list_price": 310000.0,
            "close_price": 305000.0,
            "street_number": "9",
            "street_name": "Pecan Ln",
            "city": "AUSTIN",
            "state_or_province": "TX",
            "postal_code": "78745",
            "bedrooms_total": 2,
            "property_sub_type": "Condominium",
            "close_date": date(2024, 3, 15),
            "modification_timestamp": datetime(2024, 3, 20),
            "additional_data": {"SubdivisionName": "Pecan Grove"},
        },
        {
            "id": "db-3",
            "listing_id": "ACT3000",
            "standard_status": "Active",
            "list_price": 1250000.0,
            "city": "Round Rock",
            "postal_code": "78664",
            "bedrooms_total": 5,
        },
    ]
    assert store.upsert(rows) == 3
    return store


def test_search_properties_filters(store):
    austin = store.search_properties({"city": "austin"})
    closed = store.search_properties({"status": "closed"})
    mid_range = store.search_properties({"min_price": 400000, "max_price": 600000, "min_beds": 3})

    assert [row["id"] for row in austin] == ["db-1", "db-2"]
    assert [row["id"] for row in closed] == ["db-2"]
    assert [row["id"] for row in mid_range] == ["db-1"]
    assert austin[0]["photos"] == ["https://img.example/2.jpg", "https://img.example/3.jpg"]
    assert austin[1]["additional_data"] == {"SubdivisionName": "Pecan Grove"}


def test_search_properties_limit_and_offset(store):
    first = store.search_properties({"limit": 1})
    second = store.search_properties({"limit": 1, "offset": 1})

    assert len(first) == len(second) == 1
    assert first[0]["id"] != second[0]["id"]


def test_get_property_by_listing_id(store):
    assert store.get_property_by_listing_id("ACT2000")["id"] == "db-2"
    assert store.get_property_by_listing_id("db-3")["listing_id"] == "ACT3000"
    assert store.get_property_by_listing_id("nope") is None


def test_upsert_replaces_existing_rows(store, tmp_path):
    store.upsert([{"id": "db-3", "listing_id": "ACT3000", "standard_status": "Pending"}])

    conn = connect(tmp_path / "listings.duckdb")
    try:
        rows = fetch_properties(conn, where="id = ?", params=["db-3"])
        total = conn.execute("SELECT COUNT(*) FROM properties").fetchone()[0]
    finally:
        conn.close()

    assert total == 3
    assert rows[0]["standard_status"] == "Pending"


def test_build_property_filters_skips_empty_values():
    where, params = build_property_filters({"city": "", "min_price": 0, "postal_code": "78701"})

    assert where == "postal_code = ? AND list_price >= ?"
    assert params == ["78701", 0]
    assert build_property_filters({}) == (None, [])


def test_service_reads_from_duckdb(store, fixed_clock):
    service = CanonicalListingService(database=store, clock=fixed_clock)

    result = asyncio.run(service.fetch_listings({"city": "Austin", "status": "Closed"}))
    listing = asyncio.run(service.get_listing_by_id("mls:ACT2000"))

    assert [item.id for item in result.listings] == ["mls:ACT2000"]
    assert listing.close_date == "2024-03-15"
    assert listing.last_updated == "2024-03-20T00:00:00"
    assert listing.subdivision == "Pecan Grove"
    assert listing.property_sub_type == "Condominium"
