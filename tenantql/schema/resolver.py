"""
Schema resolution: declarative file first, catalog introspection second.

Resolution order for a table:

1. ``<schema_dir>/<table>.txt`` if it exists; any field it leaves out is
   backfilled from the catalog (a file declaring primary key, columns and
   casts needs no catalog round-trip).
2. Otherwise the catalog alone: columns and cast kinds from
   ``information_schema.columns``, primary key from constraint metadata.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from tenantql.errors import ValidationError
from tenantql.schema.definition import SchemaDefinition, load_definition
from tenantql.schema.introspect import SchemaCache, get_schema_cache, introspect_table
from tenantql.schema.table import TIMESTAMP_COLUMNS, TableSchema, utc_now
from tenantql.sqlbuild import is_safe_identifier
from tenantql.utils.logging import get_logger

log = get_logger(__name__)


def normalize_table_name(table: str) -> str:
    """
    Trim and lower-case a caller-supplied table name.

    Raises
    ------
    ValidationError
        ``{"table": "required"}`` for blanks, ``{"table": "invalid"}`` for
        anything that is not a plain identifier.
    """
    name = (table or "").strip().lower()
    if not name:
        raise ValidationError.single("table", "required")
    if not is_safe_identifier(name):
        raise ValidationError.single("table", "invalid")
    return name


@runtime_checkable
class SchemaSource(Protocol):
    """Anything that can turn a table name into a `TableSchema`."""

    def resolve(self, conn: Any, table: str) -> TableSchema:
        ...


class SchemaResolver:
    """
    Resolve tables from declarative files and/or the database catalog.

    Parameters
    ----------
    schema_name : str
        Database schema (namespace) to introspect.
    schema_dir : Path | None
        Directory holding ``<table>.txt`` definitions.
    cache : SchemaCache | None
        Introspection cache; defaults to the process-wide cache.
    now : Callable[[], datetime]
        Clock handed to every resolved schema for generated timestamps.
    """

    def __init__(
        self,
        schema_name: str = "public",
        schema_dir: Optional[Path] = None,
        cache: Optional[SchemaCache] = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.schema_name = schema_name or "public"
        self.schema_dir = Path(schema_dir) if schema_dir else None
        self.cache = cache if cache is not None else get_schema_cache()
        self.now = now

    def resolve(self, conn: Any, table: str) -> TableSchema:
        name = normalize_table_name(table)
        definition = load_definition(self.schema_dir, name)
        if definition is not None and definition.is_complete:
            log.debug("Schema resolved from definition", extra={"table": name})
            return self._from_definition(name, definition)
        schema = self._from_catalog(conn, name)
        if definition is not None:
            schema = self._overlay(schema, definition)
        return schema

    def _from_definition(self, table: str, definition: SchemaDefinition) -> TableSchema:
        columns = definition.columns
        timestamps = definition.timestamps
        if timestamps is None:
            timestamps = all(c in columns for c in TIMESTAMP_COLUMNS)
        return TableSchema(
            table=table,
            primary_key=definition.primary_key,
            columns=columns,
            casts=definition.casts,
            fillable=definition.fillable or None,
            aliases=definition.aliases,
            timestamps=timestamps,
            now=self.now,
        )

    def _from_catalog(self, conn: Any, table: str) -> TableSchema:
        snapshot = introspect_table(conn, self.schema_name, table, cache=self.cache)
        if not snapshot.columns:
            raise ValidationError.single("table", "not found")
        if not snapshot.primary_key:
            raise ValidationError.single("primary_key", "not found")
        lowered = {c.lower() for c in snapshot.columns}
        return TableSchema(
            table=table,
            primary_key=snapshot.primary_key,
            columns=snapshot.columns,
            casts=snapshot.casts,
            timestamps=all(c in lowered for c in TIMESTAMP_COLUMNS),
            now=self.now,
        )

    def _overlay(self, schema: TableSchema, definition: SchemaDefinition) -> TableSchema:
        overrides: Dict[str, Any] = {}
        if definition.primary_key:
            overrides["primary_key"] = definition.primary_key
        if definition.columns:
            overrides["columns"] = definition.columns
        if definition.fillable:
            overrides["fillable"] = definition.fillable
        if definition.aliases:
            overrides["aliases"] = definition.aliases
        if definition.casts:
            overrides["casts"] = definition.casts
        if definition.timestamps is not None:
            overrides["timestamps"] = definition.timestamps
        log.debug(
            "Schema definition overlaid on catalog",
            extra={"table": schema.table, "overrides": sorted(overrides)},
        )
        return TableSchema(
            table=schema.table,
            primary_key=overrides.get("primary_key", schema.primary_key),
            columns=overrides.get("columns", schema.columns),
            casts=overrides.get("casts", schema.casts),
            fillable=overrides.get("fillable", schema.fillable),
            aliases=overrides.get("aliases", schema.aliases),
            timestamps=overrides.get("timestamps", schema.timestamps),
            now=schema.now,
        )


class SchemaRegistry:
    """
    Static, in-process schema source.

    Useful for tables whose structure is fixed in code, and in tests.
    """

    def __init__(self) -> None:
        self._tables: Dict[str, Callable[[], TableSchema]] = {}

    def register(self, table: str, schema: "TableSchema | Callable[[], TableSchema]") -> None:
        factory = schema if callable(schema) else (lambda: schema)
        self._tables[table.strip().lower()] = factory

    def resolve(self, conn: Any, table: str) -> TableSchema:
        del conn
        name = normalize_table_name(table)
        factory = self._tables.get(name)
        if factory is None:
            raise ValidationError.single("table", "not found")
        return factory()

    def __contains__(self, table: str) -> bool:
        return table.strip().lower() in self._tables


__all__ = [
    "SchemaResolver",
    "SchemaRegistry",
    "SchemaSource",
    "normalize_table_name",
]
