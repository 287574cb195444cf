from datetime import datetime, timezone

import pytest

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture()
def repliers_record():
    return {
        "mlsNumber": "ACT1234",
        "listingId": "rep-1",
        "status": "A",
        "lastStatus": "New",
        "listPrice": "525,000",
        "originalPrice": 540000,
        "address": {
            "streetNumber": "100",
            "streetName": "Main",
            "streetSuffix": "Street",
            "city": "Austin",
            "state": "TX",
            "zip": "78701-1234",
            "neighborhood": "Downtown",
        },
        "details": {
            "numBedrooms": 3,
            "numBathrooms": 2,
            "sqft": "1,850",
            "style": "Single Family Residence",
            "propertyType": "Residential",
            "yearBuilt": "1995",
        },
        "map": {"latitude": 30.2672, "longitude": -97.7431},
        "photos": ["https://img.example/1.jpg", "https://img.example/2.jpg"],
        "updatedOn": "2024-05-01T12:00:00Z",
        "agent": {"name": "Jane Agent", "phone": "512-555-0100"},
        "office": {"name": "Hill Country Realty"},
    }


@pytest.fixture()
def database_row():
    return {
        "id": "db-1",
        "listing_id": "act1234",
        "standard_status": "Active",
        "list_price": 525000.0,
        "street_number": "100",
        "street_name": "Main St",
        "city": "Austin",
        "state_or_province": "TX",
        "postal_code": "78701",
        "bedrooms_total": 3,
        "bathrooms_total_integer": 2,
        "living_area": 1850.0,
        "property_type": "Residential",
        "property_sub_type": "Single Family Residence",
        "latitude": 30.2672,
        "longitude": -97.7431,
        "subdivision": "Original Austin",
        "elementary_school": "Mathews",
        "photos": ["https://img.example/2.jpg", "https://img.example/3.jpg"],
        "modification_timestamp": datetime(2024, 4, 1, 9, 30),
    }
