"""
Canonical, immutable description of one table.

A `TableSchema` is produced by the resolver (declarative file and/or catalog
introspection) or registered statically, and is never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, FrozenSet, Iterable, Mapping, Optional, Tuple

from tenantql.casting import CastKind

TIMESTAMP_COLUMNS = ("created_at", "updated_at")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TableSchema:
    """
    Structural description of a table.

    Attributes
    ----------
    table : str
        Table name as it appears in SQL.
    primary_key : str
        Primary-key column; assigned by the database on insert.
    columns : tuple[str, ...]
        Known columns in catalog (or declared) order.
    casts : Mapping[str, CastKind]
        Per-column cast kinds. Columns missing here pass values through.
    fillable : tuple[str, ...] | None
        Explicit write allow-list. None means every column except the key.
    aliases : Mapping[str, str]
        External field name -> real column name.
    timestamps : bool
        Whether ``created_at``/``updated_at`` are maintained automatically.
    now : Callable[[], datetime]
        Clock used for generated timestamps.
    """

    table: str
    primary_key: str
    columns: Tuple[str, ...]
    casts: Mapping[str, CastKind] = field(default_factory=dict)
    fillable: Optional[Tuple[str, ...]] = None
    aliases: Mapping[str, str] = field(default_factory=dict)
    timestamps: bool = False
    now: Callable[[], datetime] = utc_now

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "casts", MappingProxyType(dict(self.casts)))
        object.__setattr__(self, "aliases", MappingProxyType(dict(self.aliases)))
        if self.fillable is not None:
            object.__setattr__(self, "fillable", tuple(self.fillable))

    @classmethod
    def build(
        cls,
        table: str,
        primary_key: str,
        columns: Iterable[str],
        **kwargs,
    ) -> "TableSchema":
        """Convenience constructor accepting any iterable of columns."""
        return cls(table=table, primary_key=primary_key, columns=tuple(columns), **kwargs)

    def has_column(self, name: str) -> bool:
        return self.canonical_column(name) is not None

    def canonical_column(self, name: str) -> Optional[str]:
        """
        Return the schema's spelling of ``name``, or None if unknown.

        Exact matches win; otherwise the lookup is case-insensitive, matching
        how PostgreSQL folds unquoted identifiers.
        """
        name = name.strip()
        if not name:
            return None
        if name in self.columns:
            return name
        lowered = name.lower()
        for column in self.columns:
            if column.lower() == lowered:
                return column
        return None

    def resolve_alias(self, key: str) -> str:
        """Map an external field name to its real column (identity if not aliased)."""
        key = key.strip()
        return self.aliases.get(key, key)

    def fillable_set(self) -> FrozenSet[str]:
        """Columns writable from caller input; never includes the primary key."""
        source = self.fillable if self.fillable else self.columns
        return frozenset(c for c in source if c != self.primary_key)

    def cast_for(self, column: str) -> Optional[CastKind]:
        return self.casts.get(column)

    def tenant_column(self, preferred: str, legacy: Optional[str] = None) -> Optional[str]:
        """Return the tenant column this table exposes, preferring ``preferred``."""
        found = self.canonical_column(preferred)
        if found is not None:
            return found
        if legacy:
            return self.canonical_column(legacy)
        return None


__all__ = ["TableSchema", "TIMESTAMP_COLUMNS", "utc_now"]
