"""
CRUD executor and pager.

Runs already-validated statements on a caller-supplied psycopg connection. The
caller owns the transaction: nothing here commits, rolls back or retries.

Find/update/delete by key are always tenant-scoped, and "no row matched" is
reported as `NotFoundError` whether the key is missing or belongs to another
tenant.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence

from psycopg.rows import dict_row

from tenantql.crud.select import SelectPlan
from tenantql.domain.models import PageResult
from tenantql.errors import NotFoundError, ValidationError
from tenantql.payload import NormalizedRecord
from tenantql.schema.table import TableSchema
from tenantql.sqlbuild import ArgBuilder, BuiltQuery, is_safe_identifier
from tenantql.utils.logging import get_logger

log = get_logger(__name__)


def _check_identifiers(schema: TableSchema, *columns: str) -> None:
    if not is_safe_identifier(schema.table):
        raise ValidationError.single("table", "invalid")
    for column in columns:
        if not is_safe_identifier(column):
            raise ValidationError.single(column, "invalid column")


def _tenant_column(tenant_column: str) -> str:
    column = (tenant_column or "").strip()
    if not column:
        raise ValidationError.single("tenant", "tenant column required")
    if not is_safe_identifier(column):
        raise ValidationError.single("tenant", "invalid")
    return column


def run_query(conn: Any, built: BuiltQuery) -> List[Dict[str, Any]]:
    """Execute a built SELECT and return every row as a dict."""
    log.debug("Executing query", extra={"sql": built.sql})
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(built.sql, built.args)
        return list(cur.fetchall())


def count_rows(conn: Any, built: BuiltQuery) -> int:
    """Execute a ``SELECT COUNT(*) AS total ...`` statement."""
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(built.sql, built.args)
        row = cur.fetchone()
    if not row:
        return 0
    return int(row.get("total") or 0)


def insert(conn: Any, schema: TableSchema, record: NormalizedRecord) -> Any:
    """
    Insert a normalized record and return the database-generated primary key.

    Parameters
    ----------
    conn : Any
        psycopg connection inside the caller's transaction.
    schema : TableSchema
        Target table.
    record : NormalizedRecord
        Output of `normalize_payload`.

    Returns
    -------
    Any
        Value of ``schema.primary_key`` from ``RETURNING``.
    """
    if not len(record):
        raise ValidationError.single("payload", "no fillable fields provided")
    columns = record.columns()
    _check_identifiers(schema, schema.primary_key, *columns)

    builder = ArgBuilder()
    placeholders = ", ".join(builder.push(v) for v in record.params())
    built = builder.build(
        f"INSERT INTO {schema.table} ({', '.join(columns)}) VALUES ({placeholders})"
        f" RETURNING {schema.primary_key}"
    )
    log.debug("Executing insert", extra={"table": schema.table, "sql": built.sql})
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(built.sql, built.args)
        row = cur.fetchone()
    if not row:
        raise RuntimeError(f"insert into {schema.table} did not return a primary key")
    return row[schema.primary_key]


def find_by_pk(
    conn: Any,
    schema: TableSchema,
    pk: Any,
    tenant_column: str,
    tenant_id: Any,
    columns: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Fetch one row by primary key within a tenant.

    Raises
    ------
    NotFoundError
        No row with ``pk`` exists for ``tenant_id``.
    """
    tenant_column = _tenant_column(tenant_column)
    cols = list(columns or schema.columns or (schema.primary_key,))
    _check_identifiers(schema, schema.primary_key, *cols)

    builder = ArgBuilder()
    built = builder.build(
        f"SELECT {', '.join(cols)} FROM {schema.table}"
        f" WHERE {builder.eq(schema.primary_key, pk)} AND {builder.eq(tenant_column, tenant_id)}"
        " LIMIT 1"
    )
    rows = run_query(conn, built)
    if not rows:
        raise NotFoundError(schema.table, pk)
    return rows[0]


def update_by_pk(
    conn: Any,
    schema: TableSchema,
    pk: Any,
    tenant_column: str,
    tenant_id: Any,
    record: NormalizedRecord,
) -> None:
    """
    Update one row by primary key within a tenant.

    Raises
    ------
    NotFoundError
        Zero rows affected (missing key or another tenant's key).
    """
    tenant_column = _tenant_column(tenant_column)
    if not len(record):
        raise ValidationError.single("payload", "no fillable fields provided")
    columns = record.columns()
    _check_identifiers(schema, schema.primary_key, *columns)

    builder = ArgBuilder()
    assignments = ", ".join(builder.eq(c, v) for c, v in zip(columns, record.params()))
    built = builder.build(
        f"UPDATE {schema.table} SET {assignments}"
        f" WHERE {builder.eq(schema.primary_key, pk)} AND {builder.eq(tenant_column, tenant_id)}"
    )
    log.debug("Executing update", extra={"table": schema.table, "sql": built.sql})
    with conn.cursor() as cur:
        cur.execute(built.sql, built.args)
        affected = cur.rowcount
    if affected == 0:
        raise NotFoundError(schema.table, pk)


def delete_by_pk(conn: Any, schema: TableSchema, pk: Any, tenant_column: str, tenant_id: Any) -> None:
    """
    Delete one row by primary key within a tenant.

    Raises
    ------
    NotFoundError
        Zero rows affected (missing key or another tenant's key).
    """
    tenant_column = _tenant_column(tenant_column)
    _check_identifiers(schema, schema.primary_key)

    builder = ArgBuilder()
    built = builder.build(
        f"DELETE FROM {schema.table}"
        f" WHERE {builder.eq(schema.primary_key, pk)} AND {builder.eq(tenant_column, tenant_id)}"
    )
    log.debug("Executing delete", extra={"table": schema.table, "sql": built.sql})
    with conn.cursor() as cur:
        cur.execute(built.sql, built.args)
        affected = cur.rowcount
    if affected == 0:
        raise NotFoundError(schema.table, pk)


def select_page(conn: Any, plan: SelectPlan, with_total: bool = False) -> PageResult:
    """
    Execute a paged select built by `build_select_sql`.

    The plan fetches ``per_page + 1`` rows; the extra row is trimmed and turns
    ``has_more`` on. With ``with_total`` the count statement also runs and
    fills ``total_rows``/``total_pages``.
    """
    rows = run_query(conn, plan.query)
    has_more = len(rows) > plan.per_page
    if has_more:
        rows = rows[: plan.per_page]

    result = PageResult(rows=rows, page=plan.page, per_page=plan.per_page, has_more=has_more)
    if with_total:
        total = count_rows(conn, plan.count)
        result.total_rows = total
        result.total_pages = math.ceil(total / plan.per_page) if total else 0
    return result


__all__ = [
    "count_rows",
    "delete_by_pk",
    "find_by_pk",
    "insert",
    "run_query",
    "select_page",
    "update_by_pk",
]
