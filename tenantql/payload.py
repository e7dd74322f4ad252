"""
Payload normalization shared by the insert and update paths.

Raw caller maps never travel past this module: `normalize_payload` resolves
aliases, filters to fillable columns, casts every value and injects timestamp
columns, returning a `NormalizedRecord`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from tenantql.casting import TypedValue, cast_value
from tenantql.errors import CastError, ValidationError
from tenantql.schema.table import TIMESTAMP_COLUMNS, TableSchema


class WriteMode(str, enum.Enum):
    INSERT = "insert"
    UPDATE = "update"


@dataclass(frozen=True)
class NormalizedRecord:
    """Column -> typed value mapping ready to be bound as SQL parameters."""

    values: Mapping[str, TypedValue]

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def __contains__(self, column: object) -> bool:
        return column in self.values

    def columns(self) -> Tuple[str, ...]:
        """Columns in a stable (sorted) order."""
        return tuple(sorted(self.values))

    def params(self) -> Tuple[Any, ...]:
        """Raw values aligned with `columns`."""
        return tuple(self.values[c].value for c in self.columns())

    def as_dict(self) -> Dict[str, Any]:
        return {c: self.values[c].value for c in self.columns()}


def normalize_payload(
    schema: TableSchema,
    payload: Optional[Mapping[str, Any]],
    mode: WriteMode = WriteMode.INSERT,
    forced: Optional[Mapping[str, Any]] = None,
) -> NormalizedRecord:
    """
    Turn a raw caller map into a `NormalizedRecord`.

    Parameters
    ----------
    schema : TableSchema
        Resolved target table.
    payload : Mapping[str, Any] | None
        Raw caller input.
    mode : WriteMode
        INSERT fills missing timestamps; UPDATE forces ``updated_at``.
    forced : Mapping[str, Any] | None
        Server-side values (e.g. the tenant column) written regardless of
        fillability and overriding caller input.

    Raises
    ------
    ValidationError
        Per-field cast errors, or ``{"payload": "no fillable fields provided"}``
        when nothing writable remains.
    """
    allowed = schema.fillable_set()
    forced = dict(forced or {})

    resolved: Dict[str, Any] = {}
    for key, value in (payload or {}).items():
        key = str(key).strip()
        if not key:
            continue
        column = schema.canonical_column(schema.resolve_alias(key))
        if column is None or column not in allowed or column in forced:
            continue
        resolved[column] = value

    errors: Dict[str, str] = {}
    values: Dict[str, TypedValue] = {}
    for column, value in resolved.items():
        try:
            values[column] = cast_value(schema.cast_for(column), value)
        except CastError as exc:
            errors[column] = exc.reason

    for key, value in forced.items():
        column = schema.canonical_column(key)
        if column is None or column == schema.primary_key:
            continue
        try:
            values[column] = cast_value(schema.cast_for(column), value)
        except CastError as exc:
            errors[column] = exc.reason

    if errors:
        raise ValidationError(errors)
    if not resolved:
        raise ValidationError.single("payload", "no fillable fields provided")

    if schema.timestamps:
        now = schema.now()
        stamped = TIMESTAMP_COLUMNS if mode is WriteMode.INSERT else ("updated_at",)
        for name in stamped:
            column = schema.canonical_column(name)
            if column is None:
                continue
            if mode is WriteMode.INSERT and column in values:
                continue
            values[column] = TypedValue(schema.cast_for(column), now)

    return NormalizedRecord(values=MappingProxyType(values))


__all__ = ["NormalizedRecord", "WriteMode", "normalize_payload"]
