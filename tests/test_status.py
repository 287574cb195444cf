import pytest

from listings.model import StandardStatus
from listings.status import (
    is_active_status,
    is_closed_status,
    is_under_contract_status,
    normalize_status,
    status_to_api_value,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("A", StandardStatus.ACTIVE),
        ("Act", StandardStatus.ACTIVE),
        ("AU", StandardStatus.ACTIVE_UNDER_CONTRACT),
        ("Lc", StandardStatus.ACTIVE_UNDER_CONTRACT),
        ("Sc", StandardStatus.ACTIVE_UNDER_CONTRACT),
        ("U", StandardStatus.PENDING),
        ("Pnd", StandardStatus.PENDING),
        ("S", StandardStatus.CLOSED),
        ("Sld", StandardStatus.CLOSED),
        ("X", StandardStatus.CLOSED),
        ("Coming Soon", StandardStatus.ACTIVE),
        ("Active Under Contract - Showing", StandardStatus.ACTIVE_UNDER_CONTRACT),
        ("active_under_contract", StandardStatus.ACTIVE_UNDER_CONTRACT),
        ("Under Contract", StandardStatus.PENDING),
        ("CONTINGENT", StandardStatus.PENDING),
        ("Withdrawn", StandardStatus.CLOSED),
        ("Canceled", StandardStatus.CLOSED),
        ("Closed", StandardStatus.CLOSED),
    ],
)
def test_normalize_status_codes_and_phrases(raw, expected):
    assert normalize_status(raw) is expected


@pytest.mark.parametrize(
    ("raw", "last", "expected"),
    [
        ("A", "Sld", StandardStatus.CLOSED),
        ("U", "Lsd", StandardStatus.CLOSED),
        ("U", "Act", StandardStatus.ACTIVE_UNDER_CONTRACT),
        ("A", "Act", StandardStatus.ACTIVE),
        ("A", "Pnd", StandardStatus.PENDING),
        ("A", "AU", StandardStatus.ACTIVE_UNDER_CONTRACT),
        ("S", "New", StandardStatus.CLOSED),
    ],
)
def test_last_status_takes_precedence_when_definitive(raw, last, expected):
    assert normalize_status(raw, last) is expected


@pytest.mark.parametrize("raw", [None, "", "   ", "Mystery", 42, "sold-ish"])
def test_unknown_status_defaults_to_active(raw):
    assert normalize_status(raw) is StandardStatus.ACTIVE


def test_normalize_status_is_total():
    for raw in ("A", "U", "Lc", "Expired", "Leased", None, {"nested": True}, ["list"]):
        assert normalize_status(raw) in set(StandardStatus)


def test_status_predicates():
    assert is_active_status("AU")
    assert not is_active_status("Sld")
    assert is_under_contract_status("Pending")
    assert is_closed_status("A", "Sld")


def test_status_to_api_value():
    assert status_to_api_value("Active Under Contract") == "under_contract"
    assert status_to_api_value("Pnd") == "pending"
    assert status_to_api_value("S") == "closed"
    assert status_to_api_value(None) == "active"
