"""
SQL builder and tenant enforcer for parsed query expressions.

Turns a `QuerySpec` into a parameterized, SELECT-only statement:

- every table, alias and column must be a plain identifier and must exist in
  the resolved schema of the alias it qualifies;
- values only ever appear as ``%s`` placeholders;
- one ``alias.<tenant column> = %s`` predicate is injected for every table
  exposing a tenant column, and the base table must expose one.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from tenantql.errors import ValidationError
from tenantql.querydsl.policy import ALLOW_ALL, TablePolicy
from tenantql.querydsl.spec import ColumnRef, QuerySpec
from tenantql.schema.resolver import SchemaSource
from tenantql.schema.table import TableSchema
from tenantql.sqlbuild import ArgBuilder, BuiltQuery, is_safe_identifier
from tenantql.tenancy import TenantColumns, validate_tenant_id
from tenantql.utils.logging import get_logger

log = get_logger(__name__)

_COMPARISONS = ("=", "<=", ">=", "<", ">")


class _Scope:
    """Alias -> schema bindings for one statement, plus column validation."""

    def __init__(self, base_alias: str) -> None:
        self.base_alias = base_alias
        self.schemas: Dict[str, TableSchema] = {}

    def bind(self, alias: str, schema: TableSchema) -> None:
        self.schemas[alias.lower()] = schema

    def column(self, ref: ColumnRef) -> str:
        """Validate ``ref`` and return its qualified SQL form."""
        key = ref.raw
        alias = ref.alias.strip() or self.base_alias
        column = ref.column.strip()
        if not is_safe_identifier(alias):
            raise ValidationError.single(key, "invalid table alias")
        if not is_safe_identifier(column):
            raise ValidationError.single(key, "invalid column")
        schema = self.schemas.get(alias.lower())
        if schema is None:
            raise ValidationError.single(key, "unknown table alias")
        canonical = schema.canonical_column(column)
        if canonical is None:
            raise ValidationError.single(key, "unknown field")
        return f"{alias}.{canonical}"


def _checked_table(schema: TableSchema, key: str) -> TableSchema:
    if not is_safe_identifier(schema.table):
        raise ValidationError.single(key, "invalid")
    return schema


def _default_select(alias: str, schema: TableSchema) -> str:
    unsafe = [c for c in schema.columns if not is_safe_identifier(c)]
    if unsafe:
        raise ValidationError({c: "invalid column" for c in unsafe})
    return ", ".join(f"{alias}.{c}" for c in schema.columns)


def build_query_sql(
    conn: Any,
    spec: QuerySpec,
    tenant_id: Any,
    source: SchemaSource,
    tenancy: Optional[TenantColumns] = None,
    policy: TablePolicy = ALLOW_ALL,
    strict_join_tenancy: bool = False,
) -> BuiltQuery:
    """
    Validate ``spec`` against resolved schemas and emit tenant-scoped SQL.

    Parameters
    ----------
    conn : Any
        Connection handed to ``source`` for schema resolution.
    spec : QuerySpec
        Parsed query expression.
    tenant_id : Any
        Authenticated tenant identifier.
    source : SchemaSource
        Resolver or registry providing table schemas.
    tenancy : TenantColumns | None
        Tenant column naming; defaults to ``company_id`` / ``com_id``.
    policy : TablePolicy
        Table denylist applied to the base and joined tables.
    strict_join_tenancy : bool
        Reject joined tables that expose no tenant column.

    Raises
    ------
    ValidationError
        On any invalid identifier, unknown table/alias/column, denied table,
        missing tenant column or invalid tenant id. No SQL is produced.
    """
    tenancy = tenancy or TenantColumns()
    tenant_id = validate_tenant_id(tenant_id, tenancy.preferred)

    base_table = spec.from_table.strip()
    base_alias = spec.base_alias
    if not is_safe_identifier(base_table):
        raise ValidationError.single("table", "invalid")
    if not is_safe_identifier(base_alias):
        raise ValidationError.single("alias", "invalid")
    policy.check(base_table)

    join_aliases: List[str] = []
    seen = {base_alias.lower()}
    for i, join in enumerate(spec.joins):
        table = join.table.strip()
        alias = join.alias.strip() or table
        if not table:
            raise ValidationError.single(f"joins[{i}].table", "required")
        if not is_safe_identifier(table):
            raise ValidationError.single(f"joins[{i}].table", "invalid")
        if not is_safe_identifier(alias):
            raise ValidationError.single(f"joins[{i}].alias", "invalid")
        policy.check(table, f"joins[{i}].table")
        if alias.lower() in seen:
            raise ValidationError.single("join", "duplicate alias")
        seen.add(alias.lower())
        join_aliases.append(alias)

    scope = _Scope(base_alias)
    base_schema = _checked_table(source.resolve(conn, base_table), "table")
    scope.bind(base_alias, base_schema)
    base_tenant = tenancy.require(base_schema)
    for i, (join, alias) in enumerate(zip(spec.joins, join_aliases)):
        schema = _checked_table(source.resolve(conn, join.table.strip()), f"joins[{i}].table")
        if strict_join_tenancy and tenancy.for_schema(schema) is None:
            raise ValidationError.single(f"joins[{i}].table", "schema does not support tenant filter")
        scope.bind(alias, schema)

    args = ArgBuilder()

    if spec.select:
        select_sql = ", ".join(scope.column(ref) for ref in spec.select)
    else:
        select_sql = _default_select(base_alias, base_schema)

    join_parts = []
    for join, alias in zip(spec.joins, join_aliases):
        left = scope.column(join.left)
        right = scope.column(join.right)
        if join.op.strip() != "=":
            raise ValidationError.single("join", "only '=' supported")
        join_parts.append(f"JOIN {scope.schemas[alias.lower()].table} AS {alias} ON {left} = {right}")

    where_parts = [f"{base_alias}.{base_tenant} = {args.push(tenant_id)}"]
    for alias in join_aliases:
        column = tenancy.for_schema(scope.schemas[alias.lower()])
        if column is not None:
            where_parts.append(f"{alias}.{column} = {args.push(tenant_id)}")

    for clause in spec.where:
        left = scope.column(clause.left)
        op = clause.op.strip().lower()
        if op in _COMPARISONS:
            where_parts.append(f"{left} {op} {args.push(clause.value)}")
        elif op == "like":
            where_parts.append(args.ilike(left, clause.value))
        else:
            raise ValidationError.single(clause.left.raw, "unsupported operator")

    order_parts = []
    for clause in spec.order_by:
        column = scope.column(clause.field)
        direction = (clause.direction or "asc").strip().lower()
        if direction not in ("asc", "desc"):
            raise ValidationError.single(clause.field.raw, "must be asc or desc")
        order_parts.append(f"{column} {direction.upper()}")

    sql = f"SELECT {select_sql} FROM {base_schema.table} AS {base_alias}"
    if join_parts:
        sql += " " + " ".join(join_parts)
    sql += " WHERE " + " AND ".join(where_parts)
    if order_parts:
        sql += " ORDER BY " + ", ".join(order_parts)
    if spec.limit > 0:
        sql += f" LIMIT {args.push(spec.limit)}"

    log.debug("Built query expression SQL", extra={"table": base_table, "sql": sql})
    return args.build(sql)


__all__ = ["build_query_sql"]
