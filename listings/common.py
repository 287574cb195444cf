"""Shared helpers for calling provider APIs and reading provider records."""

from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, MutableMapping

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

DEFAULT_TIMEOUT_SECONDS = 30.0
_DEFAULT_WAIT = wait_exponential(min=1, max=16)
_DEFAULT_STOP = stop_after_attempt(5)

_SENTINEL_VALUES = {"", "NA", "N/A", "null", "None", "-"}


Headers = Mapping[str, str] | None
Params = Mapping[str, Any] | None
Data = MutableMapping[str, Any] | bytes | str | None
JsonData = Any


def _is_transient(exc: BaseException) -> bool:
    """Retry network failures and 5xx/429 responses, never other 4xx."""

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.TransportError)


@retry(
    wait=_DEFAULT_WAIT,
    stop=_DEFAULT_STOP,
    retry=retry_if_exception(_is_transient),
    reraise=True,
)
async def fetch_json(
    url: str,
    *,
    headers: Headers = None,
    params: Params = None,
    method: str = "GET",
    data: Data = None,
    json: JsonData = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """Execute an HTTP request and return the decoded JSON payload.

    Transient failures are retried with exponential backoff. ``transport``
    lets callers plug in ``httpx.MockTransport`` without touching the
    network.
    """

    request_method = method.upper()
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        response = await client.request(
            request_method,
            url,
            headers=headers,
            params=params,
            data=data,
            json=json,
        )

    response.raise_for_status()
    return response.json()


def as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def first_present(*values: Any) -> Any:
    """Return the first value that is neither ``None`` nor an empty string."""

    for value in values:
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def coerce_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        numeric = float(value)
    elif isinstance(value, str):
        stripped = value.strip().replace(",", "").lstrip("$")
        if stripped in _SENTINEL_VALUES:
            return None
        try:
            numeric = float(stripped)
        except ValueError:
            return None
    else:
        return None

    if math.isnan(numeric) or math.isinf(numeric):
        return None
    return numeric


def coerce_int(value: Any) -> int | None:
    numeric = coerce_float(value)
    if numeric is None:
        return None
    return int(numeric)


def coerce_str(value: Any) -> str | None:
    if value is None or isinstance(value, (Mapping, list, tuple, set)):
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def coerce_str_list(value: Any) -> list[str]:
    """Return string entries from a list of URLs or photo objects."""

    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    items: list[str] = []
    for entry in value:
        if isinstance(entry, Mapping):
            entry = first_present(entry.get("url"), entry.get("MediaURL"), entry.get("href"))
        text = coerce_str(entry)
        if text:
            items.append(text)
    return items


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "as_mapping",
    "coerce_float",
    "coerce_int",
    "coerce_str",
    "coerce_str_list",
    "fetch_json",
    "first_present",
]
