"""Short-TTL read-through cache for listing service results."""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel

from listings.model import ListingSearchParams

DEFAULT_TTL_SECONDS = 5 * 60

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = logging.getLogger(__name__)


def cache_key(params: ListingSearchParams) -> str:
    """Serialize search parameters canonically: unset fields dropped, keys sorted."""

    payload = params.model_dump(mode="json", exclude_none=True)
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


class ListingCache(Generic[ModelT]):
    """Replace-only TTL cache keyed by request signature.

    Entries are stored and handed out as deep copies, so a caller that
    mutates a returned result cannot change what the next caller sees.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, ModelT]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> ModelT | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
        logger.debug("Listing cache hit for %s", key)
        return value.model_copy(deep=True)

    def set(self, key: str, value: ModelT) -> None:
        with self._lock:
            now = self._clock()
            expired = [
                stored_key
                for stored_key, (stored_at, _) in self._entries.items()
                if now - stored_at >= self.ttl_seconds
            ]
            for stored_key in expired:
                del self._entries[stored_key]
            self._entries[key] = (now, value.model_copy(deep=True))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["DEFAULT_TTL_SECONDS", "ListingCache", "cache_key"]
