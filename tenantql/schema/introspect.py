"""
Catalog introspection for PostgreSQL tables.

Reads column names/types from ``information_schema.columns`` and the primary
key from constraint metadata. Results are cached process-wide in a
`SchemaCache` with a fixed TTL; entries are immutable snapshots, so a lock is
only needed around insertion and expiry.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from psycopg.rows import dict_row

from tenantql.casting import CastKind
from tenantql.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300.0

COLUMNS_SQL = (
    "SELECT column_name, data_type "
    "FROM information_schema.columns "
    "WHERE table_schema = %s AND table_name = %s "
    "ORDER BY ordinal_position"
)

PRIMARY_KEY_SQL = (
    "SELECT kcu.column_name "
    "FROM information_schema.table_constraints tc "
    "JOIN information_schema.key_column_usage kcu "
    "ON tc.constraint_name = kcu.constraint_name "
    "AND tc.table_schema = kcu.table_schema "
    "AND tc.table_name = kcu.table_name "
    "WHERE tc.constraint_type = 'PRIMARY KEY' "
    "AND tc.table_schema = %s "
    "AND tc.table_name = %s "
    "ORDER BY kcu.ordinal_position"
)


@dataclass(frozen=True)
class IntrospectedTable:
    """What the catalog says about one table."""

    columns: Tuple[str, ...]
    casts: Mapping[str, CastKind]
    primary_key: Optional[str]


def guess_cast_kind(data_type: str) -> CastKind:
    """Infer a cast kind from an ``information_schema`` data type name."""
    t = data_type.strip().lower()
    if "int" in t:
        return CastKind.INT
    if any(token in t for token in ("numeric", "decimal", "double", "real", "float")):
        return CastKind.FLOAT
    if "bool" in t:
        return CastKind.BOOL
    if any(token in t for token in ("timestamp", "date", "time")):
        return CastKind.DATETIME
    return CastKind.STRING


class SchemaCache:
    """
    Thread-safe TTL map of ``(schema_name, table)`` -> `IntrospectedTable`.

    Concurrent resolutions of the same table may both miss and both store;
    the last write wins and either snapshot is valid.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, str], Tuple[float, IntrospectedTable]] = {}
        self._lock = threading.Lock()

    def get(self, key: Tuple[str, str]) -> Optional[IntrospectedTable]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: Tuple[str, str], value: IntrospectedTable) -> None:
        if self.ttl_seconds <= 0:
            return
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_default_cache: Optional[SchemaCache] = None
_default_cache_lock = threading.Lock()


def get_schema_cache(ttl_seconds: Optional[float] = None) -> SchemaCache:
    """
    Return the process-wide cache, creating it on first use.

    A given ``ttl_seconds`` replaces the TTL of the existing cache for new
    entries; a TTL <= 0 also drops what is already cached.
    """
    global _default_cache
    with _default_cache_lock:
        if _default_cache is None:
            _default_cache = SchemaCache(
                ttl_seconds=DEFAULT_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
            )
        elif ttl_seconds is not None and ttl_seconds != _default_cache.ttl_seconds:
            _default_cache.ttl_seconds = ttl_seconds
            if ttl_seconds <= 0:
                _default_cache.clear()
        return _default_cache


def introspect_columns(conn: Any, schema_name: str, table: str) -> Tuple[Tuple[str, ...], Dict[str, CastKind]]:
    """Enumerate a table's columns and inferred casts in ordinal order."""
    columns = []
    casts: Dict[str, CastKind] = {}
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(COLUMNS_SQL, (schema_name, table))
        for row in cur.fetchall():
            name = (row["column_name"] or "").strip()
            if not name:
                continue
            columns.append(name)
            casts[name] = guess_cast_kind(row["data_type"] or "")
    return tuple(columns), casts


def introspect_primary_key(conn: Any, schema_name: str, table: str) -> Optional[str]:
    """Return the first primary-key column by key ordinal, or None."""
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(PRIMARY_KEY_SQL, (schema_name, table))
        row = cur.fetchone()
    if row is None:
        return None
    return (row["column_name"] or "").strip() or None


def introspect_table(
    conn: Any,
    schema_name: str,
    table: str,
    cache: Optional[SchemaCache] = None,
) -> IntrospectedTable:
    """
    Introspect ``table``, consulting and populating ``cache``.

    Empty results are returned but never cached, so a table created after a
    miss becomes visible on the next call.
    """
    key = (schema_name, table)
    if cache is not None:
        hit = cache.get(key)
        if hit is not None:
            log.debug("Schema cache hit", extra={"table": table, "db_schema": schema_name})
            return hit

    columns, casts = introspect_columns(conn, schema_name, table)
    primary_key = introspect_primary_key(conn, schema_name, table) if columns else None
    snapshot = IntrospectedTable(
        columns=columns,
        casts=MappingProxyType(casts),
        primary_key=primary_key,
    )
    log.info(
        "Introspected table from catalog",
        extra={"table": table, "db_schema": schema_name, "columns": len(columns)},
    )
    if cache is not None and columns:
        cache.put(key, snapshot)
    return snapshot


__all__ = [
    "COLUMNS_SQL",
    "PRIMARY_KEY_SQL",
    "DEFAULT_CACHE_TTL_SECONDS",
    "IntrospectedTable",
    "SchemaCache",
    "get_schema_cache",
    "guess_cast_kind",
    "introspect_columns",
    "introspect_primary_key",
    "introspect_table",
]
