"""
Cast/type coercion for loosely-typed caller input.

Raw values arrive from JSON bodies, CLI flags or query strings, so a column
declared as ``int`` may receive ``"42"``, ``42.0`` or ``42``. `cast_value`
turns such inputs into a `TypedValue`, a closed (kind, value) pair that is the
only form values take after this boundary.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from tenantql.errors import CastError


class CastKind(str, enum.Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    DATETIME = "datetime"

    @classmethod
    def parse(cls, raw: str) -> Optional["CastKind"]:
        """Map a declarative name (``int``, ``datetime``...) to a kind, or None if unknown."""
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class TypedValue:
    """
    A coerced value tagged with the cast kind that produced it.

    ``kind`` is None for columns with no declared cast; their value passes
    through untouched. ``value`` is None when the input meant "no value".
    """

    kind: Optional[CastKind]
    value: Any

    @property
    def is_null(self) -> bool:
        return self.value is None


_TRUE = {"1", "true", "yes", "y"}
_FALSE = {"0", "false", "no", "n"}

DATETIME_OUTPUT_FORMAT = "%Y-%m-%d %H:%M:%S"

# Tried in order; the first match wins.
_DATETIME_LAYOUTS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)

# strptime's %f stops at microseconds; RFC-3339 allows nanoseconds.
_LONG_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_datetime(raw: str) -> datetime:
    """
    Parse a datetime string against the supported layouts.

    Zone-less inputs are interpreted as UTC.

    Raises
    ------
    ValueError
        If no layout matches.
    """
    text = _LONG_FRACTION.sub(r"\1", raw.strip())
    for layout in _DATETIME_LAYOUTS:
        try:
            parsed = datetime.strptime(text, layout)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise ValueError(f"invalid datetime: {raw!r}")


def _cast_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        raise CastError("must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        try:
            return int(value)
        except (ValueError, OverflowError, InvalidOperation):
            raise CastError("must be an integer") from None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            raise CastError("must be an integer") from None
    raise CastError("must be an integer")


def _cast_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        raise CastError("must be a number")
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            raise CastError("must be a number") from None
    raise CastError("must be a number")


def _cast_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if not text:
            return None
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise CastError("must be a boolean")


def _cast_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return parse_datetime(value)
        except ValueError:
            raise CastError("must be a datetime") from None
    raise CastError("must be a datetime")


_CASTERS = {
    CastKind.INT: _cast_int,
    CastKind.FLOAT: _cast_float,
    CastKind.BOOL: _cast_bool,
    CastKind.DATETIME: _cast_datetime,
    CastKind.STRING: lambda v: v if isinstance(v, str) else str(v),
}


def cast_value(kind: Optional[CastKind], value: Any) -> TypedValue:
    """
    Coerce ``value`` according to ``kind``.

    Parameters
    ----------
    kind : CastKind | None
        Declared cast for the column; None passes the value through.
    value : Any
        Raw caller input.

    Returns
    -------
    TypedValue
        The coerced value. ``None`` input always succeeds as "no value".

    Raises
    ------
    CastError
        With the per-field reason ("must be an integer", ...).
    """
    if value is None:
        return TypedValue(kind, None)
    if kind is None:
        return TypedValue(None, value)
    return TypedValue(kind, _CASTERS[kind](value))


def format_value(typed: TypedValue) -> Any:
    """Render a typed value back to its loose, caller-facing form."""
    if typed.value is None:
        return None
    if typed.kind is CastKind.DATETIME:
        return typed.value.strftime(DATETIME_OUTPUT_FORMAT)
    return typed.value


__all__ = [
    "CastKind",
    "TypedValue",
    "cast_value",
    "format_value",
    "parse_datetime",
    "DATETIME_OUTPUT_FORMAT",
]
