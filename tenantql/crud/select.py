"""
Generic filter/page request -> tenant-scoped SELECT plus its COUNT twin.

Filter keys may be external (aliased) names; they are resolved to schema
columns and any unknown key fails with ``"unknown field"`` keyed by exactly
what the caller sent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import pydantic

from tenantql.domain.models import OrderBy, SelectRequest
from tenantql.errors import ValidationError
from tenantql.schema.table import TableSchema
from tenantql.sqlbuild import ArgBuilder, BuiltQuery, is_safe_identifier
from tenantql.tenancy import TenantColumns, validate_tenant_id
from tenantql.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_PER_PAGE = 25
MAX_PER_PAGE = 200


@dataclass(frozen=True)
class SelectPlan:
    """Effective paging plus the page and count statements."""

    page: int
    per_page: int
    query: BuiltQuery
    count: BuiltQuery


def clamp_paging(
    page: Optional[int],
    per_page: Optional[int],
    default_per_page: int = DEFAULT_PER_PAGE,
    max_per_page: int = MAX_PER_PAGE,
) -> Tuple[int, int]:
    """
    Normalize requested paging.

    Non-positive values fall back to page 1 / ``default_per_page``; page size
    is silently clamped to ``max_per_page``. The result is always >= 1.
    """
    max_per_page = max(1, max_per_page)
    page = page if page and page > 0 else 1
    if not per_page or per_page <= 0:
        per_page = default_per_page
    per_page = max(1, min(per_page, max_per_page))
    return page, per_page


def coerce_request(request: Union[SelectRequest, Mapping[str, Any], None]) -> SelectRequest:
    """Accept a model or a plain mapping; shape errors become `ValidationError`."""
    if request is None:
        return SelectRequest()
    if isinstance(request, SelectRequest):
        return request
    try:
        return SelectRequest.model_validate(dict(request))
    except pydantic.ValidationError as exc:
        errors = {}
        for err in exc.errors():
            key = ".".join(str(p) for p in err.get("loc", ())) or "request"
            errors[key] = err.get("msg", "invalid")
        raise ValidationError(errors) from None


def _column(schema: TableSchema, raw: str) -> Optional[str]:
    column = schema.canonical_column(schema.resolve_alias(raw))
    if column is None or not is_safe_identifier(column):
        return None
    return column


def _select_list(schema: TableSchema, requested: List[str]) -> List[str]:
    if not requested:
        unsafe = [c for c in schema.columns if not is_safe_identifier(c)]
        if unsafe:
            raise ValidationError({c: "invalid column" for c in unsafe})
        return list(schema.columns)

    cols: List[str] = []
    errors: Dict[str, str] = {}
    for raw in requested:
        if not str(raw).strip():
            continue
        column = _column(schema, str(raw))
        if column is None:
            errors[str(raw)] = "unknown field"
            continue
        if column not in cols:
            cols.append(column)
    if errors:
        raise ValidationError(errors)
    if not cols:
        raise ValidationError.single("select", "empty")
    return cols


def _order_by(schema: TableSchema, clauses: List[OrderBy]) -> str:
    parts: List[str] = []
    errors: Dict[str, str] = {}
    for i, clause in enumerate(clauses):
        name = clause.field.strip()
        if not name:
            errors[f"order_by[{i}].field"] = "required"
            continue
        column = _column(schema, name)
        if column is None:
            errors[f"order_by[{i}].field"] = "unknown field"
            continue
        direction = (clause.dir or "asc").strip().lower() or "asc"
        if direction not in ("asc", "desc"):
            errors[f"order_by[{i}].dir"] = "must be asc or desc"
            continue
        parts.append(f"{column} {direction.upper()}")
    if errors:
        raise ValidationError(errors)
    return " ORDER BY " + ", ".join(parts) if parts else ""


def _filters(schema: TableSchema, filters: Mapping[str, Any], errors: Dict[str, str]) -> List[Tuple[str, Any]]:
    """Resolve filter keys in sorted order, recording unknown keys in ``errors``."""
    resolved = []
    for key in sorted(filters):
        column = _column(schema, key)
        if column is None:
            errors[key] = "unknown field"
            continue
        resolved.append((column, filters[key]))
    return resolved


def build_select_sql(
    schema: TableSchema,
    tenant_id: Any,
    request: Union[SelectRequest, Mapping[str, Any], None] = None,
    tenancy: Optional[TenantColumns] = None,
    default_per_page: int = DEFAULT_PER_PAGE,
    max_per_page: int = MAX_PER_PAGE,
) -> SelectPlan:
    """
    Build the paged SELECT and matching COUNT for a filter/page request.

    Predicates are, in order: the tenant column, ``where`` equalities,
    ``like`` substring matches, then one parenthesised OR group holding every
    ``or_where`` and ``or_like`` predicate. The page statement fetches
    ``per_page + 1`` rows so the executor can detect ``has_more``.

    Raises
    ------
    ValidationError
        Invalid tenant id, missing tenant column, unknown fields, bad ordering
        or a malformed request. No SQL is produced.
    """
    tenancy = tenancy or TenantColumns()
    req = coerce_request(request)
    tenant_id = validate_tenant_id(tenant_id, tenancy.preferred)
    tenant_column = tenancy.require(schema)
    if not is_safe_identifier(schema.table):
        raise ValidationError.single("table", "invalid")

    select_cols = _select_list(schema, req.select)
    page, per_page = clamp_paging(req.page, req.per_page, default_per_page, max_per_page)

    errors: Dict[str, str] = {}
    where = _filters(schema, req.where, errors)
    like = _filters(schema, req.like, errors)
    or_where = _filters(schema, req.or_where, errors)
    or_like = _filters(schema, req.or_like, errors)
    if errors:
        raise ValidationError(errors)
    order_sql = _order_by(schema, req.order_by)

    builder = ArgBuilder()
    parts = [builder.eq(tenant_column, tenant_id)]
    parts.extend(builder.eq(c, v) for c, v in where)
    parts.extend(builder.ilike(c, v) for c, v in like)
    any_of = [builder.eq(c, v) for c, v in or_where]
    any_of.extend(builder.ilike(c, v) for c, v in or_like)
    if any_of:
        parts.append("(" + " OR ".join(any_of) + ")")
    where_sql = " AND ".join(parts)
    filter_args = tuple(builder.args)

    count = BuiltQuery(
        sql=f"SELECT COUNT(*) AS total FROM {schema.table} WHERE {where_sql}",
        args=filter_args,
    )
    offset = (page - 1) * per_page
    query = builder.build(
        f"SELECT {', '.join(select_cols)} FROM {schema.table} WHERE {where_sql}{order_sql}"
        f" LIMIT {builder.push(per_page + 1)} OFFSET {builder.push(offset)}"
    )
    log.debug("Built select SQL", extra={"table": schema.table, "sql": query.sql})
    return SelectPlan(page=page, per_page=per_page, query=query, count=count)


__all__ = [
    "DEFAULT_PER_PAGE",
    "MAX_PER_PAGE",
    "SelectPlan",
    "build_select_sql",
    "clamp_paging",
    "coerce_request",
]
