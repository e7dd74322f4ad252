"""
Parser for the restricted query-expression syntax.

Accepts a small, chainable, query-builder style subset and nothing else::

    table('menu as m')->select('m.id','m.menu_name')
        ->join('app a','a.id','=','m.app_id')
        ->where('m.id','>=',10)->where('m.menu_name','like','lab')
        ->orderby('m.id','desc')->take(20)

Supported methods and arity:

- ``table(1)``   ``'name'``, ``'name alias'`` or ``'name as alias'``
- ``select(n)``  one or more column references
- ``join(4)``    target table, left ref, ``'='``, right ref
- ``where(2|3)`` ref + value (implies ``=``) or ref + operator + value
- ``orderby(2)`` ref + ``asc|desc``
- ``take(1)``    positive integer

Any other method, malformed segment or arity mismatch raises
`ValidationError` immediately. Identifier existence is not checked here.
"""

from __future__ import annotations

from typing import Any, List, Tuple

from tenantql.errors import ValidationError
from tenantql.querydsl.spec import (
    ALLOWED_DIRECTIONS,
    ALLOWED_WHERE_OPERATORS,
    JoinSpec,
    OrderBySpec,
    QuerySpec,
    WhereSpec,
    parse_column_ref,
    parse_table_and_alias,
)

CHAIN_DELIMITER = "->"
QUOTE = "'"


def split_chain(text: str) -> List[str]:
    """Split on the chain delimiter, ignoring delimiters inside quoted strings."""
    segments: List[str] = []
    current: List[str] = []
    in_quote = False
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == QUOTE:
            in_quote = not in_quote
        elif not in_quote and text.startswith(CHAIN_DELIMITER, i):
            segments.append("".join(current))
            current = []
            i += len(CHAIN_DELIMITER)
            continue
        current.append(ch)
        i += 1
    segments.append("".join(current))
    return segments


def parse_args(text: str) -> List[Any]:
    """
    Parse a comma-separated argument list.

    Quoted arguments stay strings; bare tokens become ints when they parse as
    one, otherwise strings.

    Raises
    ------
    ValueError
        On unterminated strings or junk between arguments.
    """
    args: List[Any] = []
    rest = text.strip()
    while rest:
        if rest[0] == QUOTE:
            end = rest.find(QUOTE, 1)
            if end < 0:
                raise ValueError("unterminated string")
            args.append(rest[1:end])
            rest = rest[end + 1 :].strip()
            if not rest:
                break
            if rest[0] != ",":
                raise ValueError("invalid args")
            rest = rest[1:].strip()
            continue

        token, sep, rest = rest.partition(",")
        token = token.strip()
        rest = rest.strip()
        if not token:
            if sep:
                continue
            break
        if QUOTE in token:
            raise ValueError("invalid args")
        try:
            args.append(int(token))
        except ValueError:
            args.append(token)
    return args


def parse_call(segment: str) -> Tuple[str, List[Any]]:
    """Split ``name(args)`` into its method name and parsed arguments."""
    open_idx = segment.find("(")
    close_idx = segment.rfind(")")
    if open_idx <= 0 or close_idx <= open_idx or segment[close_idx + 1 :].strip():
        raise ValueError("invalid call")
    name = segment[:open_idx].strip()
    if not name.isidentifier():
        raise ValueError("invalid method name")
    return name, parse_args(segment[open_idx + 1 : close_idx])


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def _as_positive_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("not an int")
    n = value if isinstance(value, int) else int(str(value).strip())
    if n <= 0:
        raise ValueError("not positive")
    return n


def _apply_table(spec: QuerySpec, args: List[Any]) -> None:
    if len(args) != 1:
        raise ValidationError.single("table", "expects 1 argument")
    try:
        spec.from_table, spec.from_alias = parse_table_and_alias(_as_str(args[0]))
    except ValueError:
        raise ValidationError.single("table", "invalid") from None


def _apply_select(spec: QuerySpec, args: List[Any]) -> None:
    if not args:
        raise ValidationError.single("select", "empty")
    try:
        spec.select = [parse_column_ref(_as_str(a)) for a in args]
    except ValueError:
        raise ValidationError.single("select", "invalid column") from None


def _apply_join(spec: QuerySpec, args: List[Any]) -> None:
    if len(args) != 4:
        raise ValidationError.single("join", "expects 4 arguments")
    try:
        table, alias = parse_table_and_alias(_as_str(args[0]))
    except ValueError:
        raise ValidationError.single("join", "invalid table") from None
    try:
        left = parse_column_ref(_as_str(args[1]))
    except ValueError:
        raise ValidationError.single("join", "invalid left") from None
    op = _as_str(args[2]).strip()
    if op != "=":
        raise ValidationError.single("join", "only '=' supported")
    try:
        right = parse_column_ref(_as_str(args[3]))
    except ValueError:
        raise ValidationError.single("join", "invalid right") from None
    spec.joins.append(JoinSpec(table=table, alias=alias, left=left, right=right, op=op))


def _apply_where(spec: QuerySpec, args: List[Any]) -> None:
    if len(args) not in (2, 3):
        raise ValidationError.single("where", "expects 2 or 3 arguments")
    try:
        left = parse_column_ref(_as_str(args[0]))
    except ValueError:
        raise ValidationError.single("where", "invalid field") from None
    if len(args) == 2:
        op, value = "=", args[1]
    else:
        op, value = _as_str(args[1]).strip().lower(), args[2]
    if op not in ALLOWED_WHERE_OPERATORS:
        raise ValidationError.single("where", "unsupported operator")
    spec.where.append(WhereSpec(left=left, op=op, value=value))


def _apply_orderby(spec: QuerySpec, args: List[Any]) -> None:
    if len(args) != 2:
        raise ValidationError.single("orderby", "expects 2 arguments")
    try:
        field_ref = parse_column_ref(_as_str(args[0]))
    except ValueError:
        raise ValidationError.single("orderby", "invalid field") from None
    direction = _as_str(args[1]).strip().lower()
    if direction not in ALLOWED_DIRECTIONS:
        raise ValidationError.single("orderby", "dir must be asc or desc")
    spec.order_by.append(OrderBySpec(field=field_ref, direction=direction))


def _apply_take(spec: QuerySpec, args: List[Any]) -> None:
    if len(args) != 1:
        raise ValidationError.single("take", "expects 1 argument")
    try:
        spec.limit = _as_positive_int(args[0])
    except ValueError:
        raise ValidationError.single("take", "invalid") from None


_METHODS = {
    "table": _apply_table,
    "select": _apply_select,
    "join": _apply_join,
    "where": _apply_where,
    "orderby": _apply_orderby,
    "take": _apply_take,
}


def parse_query_expression(text: str) -> QuerySpec:
    """
    Parse a chained query expression into a `QuerySpec`.

    Raises
    ------
    ValidationError
        ``{"query": "required"}`` for blank input, a method-keyed reason for
        bad arguments, ``{"query": "invalid segment N: ..."}`` for malformed
        segments, ``{"query": "unsupported method: X"}`` for unknown methods
        and ``{"table": "required"}`` when no ``table(...)`` was given.
    """
    stripped = (text or "").strip()
    if not stripped:
        raise ValidationError.single("query", "required")

    spec = QuerySpec(from_table="")
    for index, raw_segment in enumerate(split_chain(stripped)):
        segment = raw_segment.strip()
        if not segment:
            continue
        try:
            name, args = parse_call(segment)
        except ValueError:
            raise ValidationError.single("query", f"invalid segment {index}: {segment}") from None
        handler = _METHODS.get(name.lower())
        if handler is None:
            raise ValidationError.single("query", f"unsupported method: {name}")
        handler(spec, args)

    if not spec.from_table:
        raise ValidationError.single("table", "required")
    if not spec.from_alias:
        spec.from_alias = spec.from_table
    return spec


__all__ = ["parse_query_expression", "parse_call", "parse_args", "split_chain", "CHAIN_DELIMITER"]
