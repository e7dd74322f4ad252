from __future__ import annotations

import pytest

from tenantql.errors import ValidationError
from tenantql.querydsl.parser import parse_args, parse_query_expression, split_chain
from tenantql.querydsl.spec import ColumnRef


def _errors(expression: str) -> dict:
    with pytest.raises(ValidationError) as exc:
        parse_query_expression(expression)
    return exc.value.errors


def test_parse_full_chain() -> None:
    spec = parse_query_expression(
        "table('menu as m')->select('m.id','m.menu_name')"
        "->join('app a','a.id','=','m.app_id')"
        "->where('m.id','>=',10)->where('m.menu_name','like','lab')"
        "->orderby('m.id','DESC')->take(20)"
    )

    assert spec.from_table == "menu"
    assert spec.base_alias == "m"
    assert spec.select == [ColumnRef("id", "m"), ColumnRef("menu_name", "m")]
    assert len(spec.joins) == 1
    join = spec.joins[0]
    assert (join.table, join.alias, join.left.raw, join.right.raw) == ("app", "a", "a.id", "m.app_id")
    assert [(w.left.raw, w.op, w.value) for w in spec.where] == [
        ("m.id", ">=", 10),
        ("m.menu_name", "like", "lab"),
    ]
    assert spec.order_by[0].direction == "desc"
    assert spec.limit == 20


def test_table_without_alias_uses_table_name() -> None:
    spec = parse_query_expression("table('menu')")
    assert spec.base_alias == "menu"
    assert spec.limit == 0


def test_two_argument_where_implies_equality() -> None:
    spec = parse_query_expression("table('m')->where('bad_col','1')")
    assert spec.where[0].op == "="
    assert spec.where[0].value == "1"


def test_delimiter_inside_quotes_is_not_split() -> None:
    assert split_chain("table('a->b')->take(1)") == ["table('a->b')", "take(1)"]
    spec = parse_query_expression("table('m')->where('m.name','like','x->y')")
    assert spec.where[0].value == "x->y"


def test_parse_args_types() -> None:
    assert parse_args("'a', 10, word") == ["a", 10, "word"]
    assert parse_args("") == []
    with pytest.raises(ValueError):
        parse_args("'unterminated")
    with pytest.raises(ValueError):
        parse_args("'a' 'b'")


def test_blank_expression() -> None:
    assert _errors("   ") == {"query": "required"}


def test_missing_table() -> None:
    assert _errors("select('id')") == {"table": "required"}


def test_unsupported_method() -> None:
    assert _errors("table('m')->delete()") == {"query": "unsupported method: delete"}


def test_malformed_segment_names_offending_segment() -> None:
    assert _errors("table('m')->take 5") == {"query": "invalid segment 1: take 5"}


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("table('m')->join('a','a.id','m.a_id')", {"join": "expects 4 arguments"}),
        ("table('m')->join('a','a.id','>','m.a_id')", {"join": "only '=' supported"}),
        ("table('m')->where('m.id','!=',1)", {"where": "unsupported operator"}),
        ("table('m')->where('m.id')", {"where": "expects 2 or 3 arguments"}),
        ("table('m')->orderby('m.id','up')", {"orderby": "dir must be asc or desc"}),
        ("table('m')->take(0)", {"take": "invalid"}),
        ("table('m')->take('many')", {"take": "invalid"}),
        ("table('a b c d')", {"table": "invalid"}),
        ("table('m')->select()", {"select": "empty"}),
        ("table('m')->select('a.b.c')", {"select": "invalid column"}),
    ],
)
def test_argument_errors_are_keyed_by_method(expression, expected) -> None:
    assert _errors(expression) == expected
