"""DuckDB persistence for historical and closed listings (the database source)."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import duckdb

DB_ENV_VAR = "LISTINGS_DB_PATH"
DEFAULT_DB_PATH = Path("data/listings.duckdb")

PROPERTIES_TABLE = "properties"

# Column name -> DuckDB type. Order is the insert order.
PROPERTY_COLUMNS: tuple[tuple[str, str], ...] = (
    ("id", "TEXT PRIMARY KEY"),
    ("listing_id", "TEXT NOT NULL"),
    ("modification_timestamp", "TIMESTAMP"),
    ("standard_status", "TEXT"),
    ("list_price", "DOUBLE"),
    ("close_price", "DOUBLE"),
    ("original_list_price", "DOUBLE"),
    ("property_type", "TEXT"),
    ("property_sub_type", "TEXT"),
    ("unparsed_address", "TEXT"),
    ("street_number", "TEXT"),
    ("street_name", "TEXT"),
    ("unit_number", "TEXT"),
    ("city", "TEXT"),
    ("state_or_province", "TEXT"),
    ("postal_code", "TEXT"),
    ("latitude", "DOUBLE"),
    ("longitude", "DOUBLE"),
    ("subdivision", "TEXT"),
    ("neighborhood", "TEXT"),
    ("bedrooms_total", "INTEGER"),
    ("bathrooms_total_integer", "INTEGER"),
    ("living_area", "DOUBLE"),
    ("lot_size_square_feet", "DOUBLE"),
    ("lot_size_acres", "DOUBLE"),
    ("year_built", "INTEGER"),
    ("garage_spaces", "DOUBLE"),
    ("pool_features", "TEXT"),
    ("days_on_market", "INTEGER"),
    ("listing_contract_date", "DATE"),
    ("close_date", "DATE"),
    ("elementary_school", "TEXT"),
    ("middle_or_junior_school", "TEXT"),
    ("high_school", "TEXT"),
    ("photos", "JSON"),
    ("additional_data", "JSON"),
)
COLUMN_NAMES: tuple[str, ...] = tuple(name for name, _ in PROPERTY_COLUMNS)
_JSON_COLUMNS = {name for name, column_type in PROPERTY_COLUMNS if column_type == "JSON"}

DEFAULT_SEARCH_LIMIT = 100

# Search filter -> SQL predicate
_RANGE_FILTERS: Mapping[str, str] = {
    "min_price": "list_price >= ?",
    "max_price": "list_price <= ?",
    "min_beds": "bedrooms_total >= ?",
    "max_beds": "bedrooms_total <= ?",
    "min_baths": "bathrooms_total_integer >= ?",
    "max_baths": "bathrooms_total_integer <= ?",
    "min_sqft": "living_area >= ?",
    "max_sqft": "living_area <= ?",
}
_TEXT_FILTERS: Mapping[str, str] = {
    "status": "lower(standard_status) = lower(?)",
    "city": "lower(city) = lower(?)",
    "postal_code": "postal_code = ?",
    "subdivision": "lower(subdivision) = lower(?)",
    "neighborhood": "lower(neighborhood) = lower(?)",
}


def _ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def get_database_path(override: str | os.PathLike[str] | None = None) -> Path:
    """Resolve the DuckDB file path from an explicit override or environment variable."""

    if override is not None:
        return Path(override)
    env_value = os.getenv(DB_ENV_VAR)
    if env_value:
        return Path(env_value)
    return DEFAULT_DB_PATH


def connect(
    path: str | os.PathLike[str] | None = None,
    *,
    read_only: bool = False,
    ensure: bool = True,
) -> duckdb.DuckDBPyConnection:
    """Create a DuckDB connection, optionally ensuring schema availability."""

    db_path = get_database_path(path)
    if not read_only:
        _ensure_parent_dir(db_path)
    conn = duckdb.connect(str(db_path), read_only=read_only)
    if ensure and not read_only:
        ensure_properties_table(conn)
    return conn


def ensure_properties_table(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the properties table if it does not already exist.

    No secondary indexes: DuckDB cannot upsert rows whose non-key columns are
    indexed.
    """

    columns_sql = ",\n            ".join(f"{name} {column_type}" for name, column_type in PROPERTY_COLUMNS)
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {PROPERTIES_TABLE} (
            {columns_sql}
        )
        """
    )


def _serialize_property(record: Mapping[str, Any]) -> tuple:
    values = []
    for name in COLUMN_NAMES:
        value = record.get(name)
        if name in _JSON_COLUMNS and value is not None and not isinstance(value, str):
            value = json.dumps(value)
        values.append(value)
    return tuple(values)


def _row_to_record(columns: Sequence[str], row: Sequence[Any]) -> dict[str, Any]:
    record = dict(zip(columns, row))
    for name in _JSON_COLUMNS:
        payload = record.get(name)
        if isinstance(payload, str):
            record[name] = json.loads(payload)
    return record


def upsert_properties(
    conn: duckdb.DuckDBPyConnection, records: Iterable[Mapping[str, Any]]
) -> int:
    """Insert or replace a batch of property rows keyed by ``id``.

    Returns
    -------
    int
        Number of records written to the database.
    """

    serialized = [_serialize_property(record) for record in records]
    if not serialized:
        return 0

    placeholders = ", ".join("?" for _ in COLUMN_NAMES)
    conn.executemany(
        f"""
        INSERT OR REPLACE INTO {PROPERTIES_TABLE} ({", ".join(COLUMN_NAMES)})
        VALUES ({placeholders})
        """,
        serialized,
    )
    return len(serialized)


def build_property_filters(filters: Mapping[str, Any]) -> tuple[str | None, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []

    for key, predicate in _TEXT_FILTERS.items():
        value = filters.get(key)
        if value:
            clauses.append(predicate)
            params.append(str(value))

    for key, predicate in _RANGE_FILTERS.items():
        value = filters.get(key)
        if value is not None:
            clauses.append(predicate)
            params.append(value)

    if not clauses:
        return None, params
    return " AND ".join(clauses), params


def fetch_properties(
    conn: duckdb.DuckDBPyConnection,
    *,
    where: str | None = None,
    params: Sequence[object] | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[dict[str, Any]]:
    """Query stored rows and return them as column-keyed dictionaries."""

    sql = f"SELECT * FROM {PROPERTIES_TABLE}"
    if where:
        sql += f" WHERE {where}"
    sql += " ORDER BY modification_timestamp DESC NULLS LAST, id"
    if limit is not None:
        sql += f" LIMIT {int(limit)}"
    if offset:
        sql += f" OFFSET {int(offset)}"
    cursor = conn.execute(sql, params or [])
    columns = [description[0] for description in cursor.description]
    return [_row_to_record(columns, row) for row in cursor.fetchall()]


class DatabaseListingStore:
    """Database collaborator consumed by the canonical listing service.

    Each call opens and closes its own connection, so the store can be used
    from worker threads.
    """

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self.path = get_database_path(path)

    def search_properties(self, filters: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        filters = filters or {}
        where, params = build_property_filters(filters)
        conn = connect(self.path)
        try:
            return fetch_properties(
                conn,
                where=where,
                params=params,
                limit=filters.get("limit") or DEFAULT_SEARCH_LIMIT,
                offset=filters.get("offset"),
            )
        finally:
            conn.close()

    def get_property_by_listing_id(self, listing_id: str) -> dict[str, Any] | None:
        conn = connect(self.path)
        try:
            rows = fetch_properties(
                conn,
                where="listing_id = ? OR id = ?",
                params=[listing_id, listing_id],
                limit=1,
            )
        finally:
            conn.close()
        return rows[0] if rows else None

    def upsert(self, records: Iterable[Mapping[str, Any]]) -> int:
        conn = connect(self.path)
        try:
            return upsert_properties(conn, records)
        finally:
            conn.close()


__all__ = [
    "DatabaseListingStore",
    "PROPERTIES_TABLE",
    "build_property_filters",
    "connect",
    "ensure_properties_table",
    "fetch_properties",
    "get_database_path",
    "upsert_properties",
]
