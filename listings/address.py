"""Address key construction used as a candidate-matching signal for dedupe."""

from __future__ import annotations

import re
from typing import Any

KEY_DELIMITER = "|"
ADDRESS_UNKNOWN = "Address Unknown"

# Keys no longer than this are too sparse to group listings on.
SUBSTANTIAL_KEY_LENGTH = 10

_STREET_SUFFIXES: tuple[tuple[str, str], ...] = (
    ("street", "st"),
    ("avenue", "ave"),
    ("boulevard", "blvd"),
    ("road", "rd"),
    ("drive", "dr"),
    ("lane", "ln"),
    ("court", "ct"),
    ("circle", "cir"),
    ("place", "pl"),
    ("terrace", "ter"),
    ("way", "wy"),
    ("highway", "hwy"),
    ("parkway", "pkwy"),
    ("trail", "trl"),
    ("cove", "cv"),
)
_SUFFIX_PATTERNS = tuple(
    (re.compile(rf"\b{long}\b"), short) for long, short in _STREET_SUFFIXES
)
_UNIT_PREFIX = re.compile(r"^(unit|apt|suite|ste|#)\s*", re.IGNORECASE)
_PUNCTUATION = re.compile(r"[.,#]")
_WHITESPACE = re.compile(r"\s+")


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def normalize_street_name(street_name: Any) -> str:
    normalized = _text(street_name).lower()
    for pattern, short in _SUFFIX_PATTERNS:
        normalized = pattern.sub(short, normalized)
    normalized = _PUNCTUATION.sub("", normalized)
    return _WHITESPACE.sub(" ", normalized).strip()


def normalize_unit(unit: Any) -> str:
    normalized = _UNIT_PREFIX.sub("", _text(unit).lower())
    return _WHITESPACE.sub("", _PUNCTUATION.sub("", normalized))


def create_address_key(
    street_number: Any = None,
    street_name: Any = None,
    unit: Any = None,
    city: Any = None,
    state: Any = None,
    postal_code: Any = None,
) -> str:
    """Build a lower-cased, delimiter-joined key from whatever parts exist.

    Empty parts are skipped rather than replaced with placeholders, so the
    key degrades gracefully. Never raises.
    """

    parts: list[str] = []

    number = _PUNCTUATION.sub("", _text(street_number).lower())
    if number:
        parts.append(number)

    street = normalize_street_name(street_name)
    if street:
        parts.append(street)

    normalized_unit = normalize_unit(unit)
    if normalized_unit:
        parts.append(f"u{normalized_unit}")

    city_part = _WHITESPACE.sub("", _text(city).lower())
    if city_part:
        parts.append(city_part)

    state_part = _text(state).lower()
    if state_part:
        parts.append(state_part)

    zip_part = _text(postal_code)[:5]
    if zip_part:
        parts.append(zip_part)

    return KEY_DELIMITER.join(parts)


def create_address_key_from_string(
    unparsed_address: Any,
    city: Any = None,
    state: Any = None,
    postal_code: Any = None,
) -> str:
    """Build an address key from a single unparsed street string.

    The first token is taken as the street number and the rest as the
    street name. Anything after the first comma is dropped, since city,
    state and ZIP arrive separately.
    """

    text = _text(unparsed_address)
    if not text:
        return create_address_key(city=city, state=state, postal_code=postal_code)

    street = text.split(",", 1)[0].strip()
    tokens = street.split()
    if len(tokens) < 2:
        key = KEY_DELIMITER.join(token.lower() for token in tokens)
        tail = create_address_key(city=city, state=state, postal_code=postal_code)
        return KEY_DELIMITER.join(part for part in (key, tail) if part)

    return create_address_key(tokens[0], " ".join(tokens[1:]), None, city, state, postal_code)


def address_key_parts(key: str | None) -> list[str]:
    return [part for part in (key or "").split(KEY_DELIMITER) if part]


def address_key_is_sparse(key: str | None) -> bool:
    """Return True when a key has fewer than two non-empty parts."""

    return len(address_key_parts(key)) < 2


def is_substantial_address_key(key: str | None) -> bool:
    return bool(key) and len(key) > SUBSTANTIAL_KEY_LENGTH


__all__ = [
    "ADDRESS_UNKNOWN",
    "KEY_DELIMITER",
    "SUBSTANTIAL_KEY_LENGTH",
    "address_key_is_sparse",
    "address_key_parts",
    "create_address_key",
    "create_address_key_from_string",
    "is_substantial_address_key",
    "normalize_street_name",
    "normalize_unit",
]
