"""Runtime settings for the listing service, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

from listings.cache import DEFAULT_TTL_SECONDS, ListingCache
from listings.service import CanonicalListingService
from listings.sources.repliers import REPLIERS_BASE_URL, RepliersClient
from storage.db import DEFAULT_DB_PATH, DatabaseListingStore

API_KEY_ENV = "REPLIERS_API_KEY"
API_URL_ENV = "REPLIERS_API_URL"
DB_PATH_ENV = "LISTINGS_DB_PATH"
CACHE_TTL_ENV = "LISTINGS_CACHE_TTL_SECONDS"


@dataclass(frozen=True)
class ServiceSettings:
    """Everything needed to assemble a :class:`CanonicalListingService`."""

    repliers_api_key: str | None = None
    repliers_api_url: str = REPLIERS_BASE_URL
    db_path: str = str(DEFAULT_DB_PATH)
    cache_ttl_seconds: float = DEFAULT_TTL_SECONDS
    use_database: bool = True

    @property
    def cache_enabled(self) -> bool:
        return self.cache_ttl_seconds > 0


def _parse_ttl(raw: str) -> float:
    try:
        ttl = float(raw)
    except ValueError as exc:
        raise ValueError(f"{CACHE_TTL_ENV} must be a number of seconds, got {raw!r}.") from exc
    if ttl < 0:
        raise ValueError(f"{CACHE_TTL_ENV} cannot be negative, got {raw!r}.")
    return ttl


def load_settings(environ: Mapping[str, str] | None = None) -> ServiceSettings:
    """Build settings from ``environ`` (defaults to ``os.environ`` after ``.env``)."""

    if environ is None:
        load_dotenv()
        environ = os.environ

    ttl_raw = environ.get(CACHE_TTL_ENV)
    return ServiceSettings(
        repliers_api_key=environ.get(API_KEY_ENV) or None,
        repliers_api_url=environ.get(API_URL_ENV) or REPLIERS_BASE_URL,
        db_path=environ.get(DB_PATH_ENV) or str(DEFAULT_DB_PATH),
        cache_ttl_seconds=_parse_ttl(ttl_raw) if ttl_raw else DEFAULT_TTL_SECONDS,
    )


def build_service(settings: ServiceSettings) -> CanonicalListingService:
    aggregator = None
    if settings.repliers_api_key:
        aggregator = RepliersClient(settings.repliers_api_key, base_url=settings.repliers_api_url)
    database = DatabaseListingStore(settings.db_path) if settings.use_database else None
    cache = ListingCache(settings.cache_ttl_seconds) if settings.cache_enabled else None
    return CanonicalListingService(aggregator, database, cache=cache)


__all__ = ["ServiceSettings", "build_service", "load_settings"]
