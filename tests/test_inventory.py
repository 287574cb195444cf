import asyncio
from datetime import datetime

from listings.inventory import is_rental_record, summarize_inventory
from listings.model import ListingSource, StandardStatus
from listings.service import CanonicalListingService


class PagedAggregator:
    """Serves a list of pages per aggregator status code."""

    def __init__(self, pages_by_status):
        self.pages_by_status = pages_by_status
        self.calls = []

    async def search_listings(self, params):
        self.calls.append(dict(params))
        pages = self.pages_by_status.get(params.get("status"), [{"listings": []}])
        return pages[min(params["pageNum"], len(pages)) - 1]


class RowsDatabase:
    def __init__(self, rows):
        self.rows = rows
        self.filters = []

    def search_properties(self, filters):
        self.filters.append(dict(filters))
        return self.rows

    def get_property_by_listing_id(self, listing_id):
        return None


def test_is_rental_record():
    assert is_rental_record({"type": "Lease"})
    assert is_rental_record({"property_sub_type": "Residential Rental"})
    assert is_rental_record({"details": {"description": "Beautiful home FOR RENT downtown"}})
    assert not is_rental_record({"type": "Sale", "details": {"style": "Condo"}})
    assert not is_rental_record({})


def test_summarize_database_rows():
    rows = [
        {"standard_status": "Active", "property_sub_type": "Single Family Residence"},
        {"standard_status": "Closed", "property_sub_type": "Condominium"},
        {"standard_status": "Mystery", "property_sub_type": None},
        {"standard_status": "Active", "property_type": "Residential Lease"},
    ]

    summary = summarize_inventory(rows, ListingSource.DATABASE, generated_at=datetime(2024, 6, 1))

    assert summary.data_source == "Database"
    assert summary.total_count == 3
    assert summary.rental_filtered_count == 1
    assert summary.counts_by_status[StandardStatus.ACTIVE] == 2
    assert summary.counts_by_status[StandardStatus.CLOSED] == 1
    assert summary.counts_by_subtype["Other"] == 1
    assert summary.generated_at == "2024-06-01T00:00:00"
    assert summary.is_consistent


def test_inventory_pages_the_aggregator(fixed_clock):
    active_pages = [
        {
            "numPages": 2,
            "listings": [
                {"status": "A", "details": {"style": "Single Family Residence"}},
                {"status": "A", "type": "Lease", "details": {"style": "Townhouse"}},
            ],
        },
        {
            "numPages": 2,
            "listings": [{"status": "A", "details": {"style": "Condo"}}],
        },
    ]
    under_contract_pages = [
        {
            "numPages": 1,
            "listings": [
                {"status": "U", "details": {"style": "Townhouse"}},
                {"status": "U", "lastStatus": "Sld", "details": {"style": "Condominium"}},
            ],
        },
    ]
    aggregator = PagedAggregator({"A": active_pages, "U": under_contract_pages})
    database = RowsDatabase([])
    service = CanonicalListingService(aggregator, database, clock=fixed_clock)

    summary = asyncio.run(service.get_inventory_summary(page_size=2, max_pages=5))

    assert [(call["status"], call["pageNum"]) for call in aggregator.calls] == [("A", 1), ("A", 2), ("U", 1)]
    assert all(call["class"] == "residential" for call in aggregator.calls)
    assert database.filters == []
    assert summary.data_source == "Repliers API"
    assert summary.total_count == 4
    assert summary.rental_filtered_count == 1
    assert summary.counts_by_status[StandardStatus.ACTIVE] == 2
    assert summary.counts_by_status[StandardStatus.PENDING] == 1
    assert summary.counts_by_status[StandardStatus.CLOSED] == 1
    assert summary.counts_by_subtype["Condominium"] == 2
    assert summary.counts_by_subtype["Townhouse"] == 1
    assert summary.counts_by_subtype["Single Family Residence"] == 1
    assert summary.is_consistent


def test_inventory_counts_under_contract_listings(fixed_clock):
    aggregator = PagedAggregator({"U": [{"numPages": 1, "listings": [{"status": "U"}]}]})
    service = CanonicalListingService(aggregator, clock=fixed_clock)

    summary = asyncio.run(service.get_inventory_summary(page_size=10, max_pages=2))

    assert [call["status"] for call in aggregator.calls] == ["A", "U"]
    assert summary.total_count == 1
    assert summary.counts_by_status[StandardStatus.PENDING] == 1


def test_inventory_respects_max_pages_per_status(fixed_clock):
    page = {"numPages": 10, "listings": [{"status": "A"}, {"status": "A"}]}
    aggregator = PagedAggregator({"A": [page] * 10, "U": [page] * 10})
    service = CanonicalListingService(aggregator, clock=fixed_clock)

    summary = asyncio.run(service.get_inventory_summary(page_size=2, max_pages=3))

    assert [(call["status"], call["pageNum"]) for call in aggregator.calls] == [
        ("A", 1),
        ("A", 2),
        ("A", 3),
        ("U", 1),
        ("U", 2),
        ("U", 3),
    ]
    assert summary.total_count == 12


def test_inventory_falls_back_to_database(fixed_clock):
    database = RowsDatabase([{"standard_status": "Pending", "property_sub_type": "Duplex"}])
    service = CanonicalListingService(database=database, clock=fixed_clock)

    summary = asyncio.run(service.get_inventory_summary(page_size=50, max_pages=2))

    assert database.filters == [{"limit": 100}]
    assert summary.data_source == "Database"
    assert summary.counts_by_status[StandardStatus.PENDING] == 1
    assert summary.counts_by_subtype["Multi-Family"] == 1
    assert summary.errors == []
