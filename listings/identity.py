"""Deterministic canonical identifiers for listings."""

from __future__ import annotations

from typing import Any

# Candidate order matters: MLS numbers are the most stable across sources.
ID_PREFIXES: tuple[str, ...] = ("mls", "lid", "src", "addr")
UNKNOWN_ID = "unknown:listing"


def _candidate(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def generate_canonical_id(
    mls_number: Any = None,
    listing_id: Any = None,
    source_specific_id: Any = None,
    address_key: Any = None,
) -> str:
    """Return ``<kind>:<value>`` for the first non-empty identifier.

    The same inputs always produce the same id. With no usable identifier at
    all the id is a fixed constant rather than anything random or time based.
    """

    candidates = (mls_number, listing_id, source_specific_id, address_key)
    for prefix, value in zip(ID_PREFIXES, candidates):
        text = _candidate(value)
        if text:
            return f"{prefix}:{text}"

    return UNKNOWN_ID


def split_canonical_id(canonical_id: str) -> tuple[str | None, str]:
    """Split ``'mls:ACT1'`` into ``('mls', 'ACT1')``; bare ids have no kind."""

    text = (canonical_id or "").strip()
    kind, sep, value = text.partition(":")
    if not sep or kind not in ID_PREFIXES:
        return None, text
    return kind, value.strip()


__all__ = ["ID_PREFIXES", "generate_canonical_id", "split_canonical_id"]
