"""
Structured query specification produced by the expression parser.

The parser performs no schema lookups; references here are exactly what the
caller typed and are validated later by the SQL builder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Tuple

ALLOWED_WHERE_OPERATORS = ("=", "<=", ">=", "<", ">", "like")
ALLOWED_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class ColumnRef:
    """A ``column`` or ``alias.column`` reference."""

    column: str
    alias: str = ""

    @property
    def raw(self) -> str:
        return f"{self.alias}.{self.column}" if self.alias else self.column

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True)
class JoinSpec:
    table: str
    alias: str
    left: ColumnRef
    right: ColumnRef
    op: str = "="


@dataclass(frozen=True)
class WhereSpec:
    left: ColumnRef
    op: str
    value: Any


@dataclass(frozen=True)
class OrderBySpec:
    field: ColumnRef
    direction: str = "asc"


@dataclass
class QuerySpec:
    """
    Abstract SELECT: base table, projections, equality joins, predicates,
    ordering and an optional row cap (0 means "no cap requested").
    """

    from_table: str
    from_alias: str = ""
    select: List[ColumnRef] = field(default_factory=list)
    joins: List[JoinSpec] = field(default_factory=list)
    where: List[WhereSpec] = field(default_factory=list)
    order_by: List[OrderBySpec] = field(default_factory=list)
    limit: int = 0

    @property
    def base_alias(self) -> str:
        return self.from_alias.strip() or self.from_table


def parse_table_and_alias(raw: str) -> Tuple[str, str]:
    """
    Split ``"name"``, ``"name alias"`` or ``"name as alias"``.

    Raises
    ------
    ValueError
        For empty input or any other shape.
    """
    parts = (raw or "").split()
    if not parts:
        raise ValueError("table is empty")
    if len(parts) == 1:
        return parts[0], parts[0]
    if len(parts) == 2:
        return parts[0], parts[1]
    if len(parts) == 3 and parts[1].lower() == "as":
        return parts[0], parts[2]
    raise ValueError("invalid table alias format")


def parse_column_ref(raw: str) -> ColumnRef:
    """
    Parse ``"col"`` or ``"alias.col"``.

    Raises
    ------
    ValueError
        For empty input or more than one dot.
    """
    text = (raw or "").strip()
    if not text:
        raise ValueError("empty column")
    parts = [p.strip() for p in text.split(".")]
    if len(parts) == 1:
        return ColumnRef(column=parts[0])
    if len(parts) == 2:
        return ColumnRef(column=parts[1], alias=parts[0])
    raise ValueError("invalid column reference")


__all__ = [
    "ALLOWED_WHERE_OPERATORS",
    "ALLOWED_DIRECTIONS",
    "ColumnRef",
    "JoinSpec",
    "WhereSpec",
    "OrderBySpec",
    "QuerySpec",
    "parse_column_ref",
    "parse_table_and_alias",
]
