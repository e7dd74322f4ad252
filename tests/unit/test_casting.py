from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from tenantql.casting import CastKind, TypedValue, cast_value, format_value, parse_datetime
from tenantql.errors import CastError


@pytest.mark.parametrize("kind", list(CastKind) + [None])
def test_none_always_casts_to_no_value(kind) -> None:
    typed = cast_value(kind, None)
    assert typed.is_null
    assert typed.kind is kind


def test_int_cast_accepts_ints_floats_and_numeric_strings() -> None:
    assert cast_value(CastKind.INT, 7).value == 7
    assert cast_value(CastKind.INT, 7.9).value == 7
    assert cast_value(CastKind.INT, Decimal("3.2")).value == 3
    assert cast_value(CastKind.INT, " 42 ").value == 42
    assert cast_value(CastKind.INT, "").value is None


@pytest.mark.parametrize("raw", ["abc", "4.5", True, [1]])
def test_int_cast_rejects_non_numeric(raw) -> None:
    with pytest.raises(CastError) as exc:
        cast_value(CastKind.INT, raw)
    assert exc.value.reason == "must be an integer"


def test_float_cast_mirrors_int_rules() -> None:
    assert cast_value(CastKind.FLOAT, "2.5").value == 2.5
    assert cast_value(CastKind.FLOAT, 3).value == 3.0
    assert cast_value(CastKind.FLOAT, "  ").value is None
    with pytest.raises(CastError) as exc:
        cast_value(CastKind.FLOAT, "two")
    assert exc.value.reason == "must be a number"


@pytest.mark.parametrize(
    "raw, expected",
    [(True, True), ("YES", True), ("y", True), ("1", True), ("false", False), ("N", False), ("0", False)],
)
def test_bool_cast_accepts_known_spellings(raw, expected) -> None:
    assert cast_value(CastKind.BOOL, raw).value is expected


def test_bool_cast_rejects_other_values() -> None:
    with pytest.raises(CastError) as exc:
        cast_value(CastKind.BOOL, "maybe")
    assert exc.value.reason == "must be a boolean"
    with pytest.raises(CastError):
        cast_value(CastKind.BOOL, 1)


def test_datetime_cast_layouts_in_order() -> None:
    fractional = cast_value(CastKind.DATETIME, "2024-05-06T07:08:09.123456789+07:00").value
    assert fractional.microsecond == 123456
    assert fractional.utcoffset().total_seconds() == 7 * 3600

    rfc3339 = cast_value(CastKind.DATETIME, "2024-05-06T07:08:09Z").value
    assert rfc3339 == datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)

    spaced = cast_value(CastKind.DATETIME, "2024-05-06 07:08:09").value
    assert spaced == datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)

    bare = cast_value(CastKind.DATETIME, "2024-05-06").value
    assert bare == datetime(2024, 5, 6, tzinfo=timezone.utc)


def test_datetime_cast_accepts_typed_values() -> None:
    now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert cast_value(CastKind.DATETIME, now).value is now
    assert cast_value(CastKind.DATETIME, date(2024, 1, 1)).value == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_datetime_cast_rejects_garbage() -> None:
    with pytest.raises(CastError) as exc:
        cast_value(CastKind.DATETIME, "06/05/2024")
    assert exc.value.reason == "must be a datetime"


def test_datetime_round_trip_in_date_space_time_profile() -> None:
    raw = "2024-02-29 23:59:58"
    typed = cast_value(CastKind.DATETIME, raw)
    formatted = format_value(typed)
    assert formatted == raw
    assert cast_value(CastKind.DATETIME, formatted) == typed


def test_string_cast_stringifies() -> None:
    assert cast_value(CastKind.STRING, 12).value == "12"
    assert cast_value(CastKind.STRING, "x").value == "x"


def test_undeclared_cast_passes_value_through() -> None:
    payload = {"a": 1}
    typed = cast_value(None, payload)
    assert typed == TypedValue(None, payload)


def test_parse_datetime_raises_value_error() -> None:
    with pytest.raises(ValueError):
        parse_datetime("not a date")


def test_cast_kind_parse() -> None:
    assert CastKind.parse(" DateTime ") is CastKind.DATETIME
    assert CastKind.parse("decimal") is None
