"""Status normalization onto the four RESO standard statuses.

Providers report status as single-letter codes (``A``, ``U``, ``S``),
MLS abbreviations (``AU``, ``Pnd``, ``Sld``) or free text (``Active Under
Contract - Showing``). Everything collapses onto :class:`StandardStatus`.
Unrecognized input falls back to ``Active`` rather than raising.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from listings.model import StandardStatus

ACTIVE = StandardStatus.ACTIVE
UNDER_CONTRACT = StandardStatus.ACTIVE_UNDER_CONTRACT
PENDING = StandardStatus.PENDING
CLOSED = StandardStatus.CLOSED

DEFAULT_STATUS = ACTIVE

# Secondary "last status" codes that settle the bucket on their own.
_LAST_STATUS_CLOSED = {"sld", "lsd", "sold", "leased", "closed"}
_LAST_STATUS_PENDING = {"pnd", "p", "pending"}
_LAST_STATUS_UNDER_CONTRACT = {"au", "active under contract"}

# Exact codes are case sensitive: ``Sc`` and ``SC`` are different MLS codes.
STATUS_CODES: Mapping[str, StandardStatus] = {
    "A": ACTIVE,
    "Act": ACTIVE,
    "AU": UNDER_CONTRACT,
    "Lc": UNDER_CONTRACT,
    "Sc": UNDER_CONTRACT,
    "U": PENDING,
    "P": PENDING,
    "Pnd": PENDING,
    "S": CLOSED,
    "Sld": CLOSED,
    "Lsd": CLOSED,
    "C": CLOSED,
    "X": CLOSED,
    "W": CLOSED,
    "T": CLOSED,
}

# Full-text variants, matched after lower-casing and folding '_'/'-' to spaces.
STATUS_PHRASES: Mapping[str, StandardStatus] = {
    "active": ACTIVE,
    "coming soon": ACTIVE,
    "active under contract": UNDER_CONTRACT,
    "active under contract showing": UNDER_CONTRACT,
    "under contract showing": UNDER_CONTRACT,
    "undercontract": UNDER_CONTRACT,
    "active contingent": UNDER_CONTRACT,
    "under contract": PENDING,
    "pending": PENDING,
    "contingent": PENDING,
    "closed": CLOSED,
    "sold": CLOSED,
    "leased": CLOSED,
    "expired": CLOSED,
    "withdrawn": CLOSED,
    "cancelled": CLOSED,
    "canceled": CLOSED,
    "terminated": CLOSED,
}

_SEPARATORS = re.compile(r"[\s_\-]+")


def _fold(value: str) -> str:
    return _SEPARATORS.sub(" ", value.strip().lower()).strip()


def _clean(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, StandardStatus):
        return value.value
    return str(value).strip()


def _from_last_status(status: str, last_status: str) -> StandardStatus | None:
    folded = _fold(last_status)
    if folded in _LAST_STATUS_CLOSED:
        return CLOSED
    if folded in _LAST_STATUS_UNDER_CONTRACT:
        return UNDER_CONTRACT
    # "Act" only means under contract when the listing is no longer available.
    if folded == "act" and status == "U":
        return UNDER_CONTRACT
    if folded in _LAST_STATUS_PENDING:
        return PENDING
    return None


def normalize_status(raw_status: Any, last_status: Any = None) -> StandardStatus:
    """Map any provider status onto one of the four standard statuses."""

    status = _clean(raw_status)
    last = _clean(last_status)

    if last:
        resolved = _from_last_status(status, last)
        if resolved is not None:
            return resolved

    if not status:
        return DEFAULT_STATUS

    exact = STATUS_CODES.get(status)
    if exact is not None:
        return exact

    return STATUS_PHRASES.get(_fold(status), DEFAULT_STATUS)


def is_active_status(raw_status: Any, last_status: Any = None) -> bool:
    return normalize_status(raw_status, last_status) in (ACTIVE, UNDER_CONTRACT)


def is_under_contract_status(raw_status: Any, last_status: Any = None) -> bool:
    return normalize_status(raw_status, last_status) in (UNDER_CONTRACT, PENDING)


def is_closed_status(raw_status: Any, last_status: Any = None) -> bool:
    return normalize_status(raw_status, last_status) is CLOSED


_API_VALUES: Mapping[StandardStatus, str] = {
    ACTIVE: "active",
    UNDER_CONTRACT: "under_contract",
    PENDING: "pending",
    CLOSED: "closed",
}


def status_to_api_value(raw_status: Any) -> str:
    """Return the snake_case query value used by the unified search API."""

    return _API_VALUES[normalize_status(raw_status)]


__all__ = [
    "DEFAULT_STATUS",
    "STATUS_CODES",
    "STATUS_PHRASES",
    "is_active_status",
    "is_closed_status",
    "is_under_contract_status",
    "normalize_status",
    "status_to_api_value",
]
