"""
Tenant-scoped facades over the core.

`TableCRUD` serves generic per-table CRUD: access policy -> schema resolution
-> tenant column -> normalization -> executor. `QueryService` serves query
expressions: parse -> cap the row limit -> build -> execute.

Both take the authenticated tenant identifier from the caller; the tenant
column is always written and filtered from that value, never from input.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from tenantql.casting import cast_value
from tenantql.config import Settings, get_settings
from tenantql.crud import executor
from tenantql.crud.select import build_select_sql
from tenantql.domain.models import PageResult, SelectRequest
from tenantql.errors import CastError, NotFoundError, ValidationError
from tenantql.payload import WriteMode, normalize_payload
from tenantql.querydsl.builder import build_query_sql
from tenantql.querydsl.parser import parse_query_expression
from tenantql.querydsl.policy import TablePolicy
from tenantql.schema.introspect import get_schema_cache
from tenantql.schema.resolver import SchemaResolver, SchemaSource
from tenantql.schema.table import TableSchema
from tenantql.sqlbuild import BuiltQuery
from tenantql.tenancy import TenantColumns, validate_tenant_id
from tenantql.utils.logging import get_logger

log = get_logger(__name__)


def tenancy_from_settings(settings: Settings) -> TenantColumns:
    return TenantColumns(preferred=settings.tenant_column, legacy=settings.legacy_tenant)


def resolver_from_settings(settings: Settings) -> SchemaResolver:
    """Schema resolver configured from settings, sharing the process-wide cache."""
    cache = get_schema_cache(settings.schema_cache_ttl_seconds)
    return SchemaResolver(
        schema_name=settings.db_schema,
        schema_dir=settings.schema_dir,
        cache=cache,
    )


class TableCRUD:
    """
    Generic CRUD over any resolvable table, confined to one tenant per call.

    Parameters
    ----------
    source : SchemaSource | None
        Schema resolver or registry. Defaults to a resolver built from settings.
    settings : Settings | None
        Defaults for tenancy, policy and paging.
    tenancy : TenantColumns | None
        Overrides the tenant column naming from settings.
    policy : TablePolicy | None
        Overrides ``CRUD_DENIED_TABLES``.
    """

    def __init__(
        self,
        source: Optional[SchemaSource] = None,
        settings: Optional[Settings] = None,
        tenancy: Optional[TenantColumns] = None,
        policy: Optional[TablePolicy] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.source = source if source is not None else resolver_from_settings(self.settings)
        self.tenancy = tenancy or tenancy_from_settings(self.settings)
        self.policy = policy if policy is not None else TablePolicy.parse(self.settings.crud_denied_tables)

    def _prepare(self, conn: Any, table: str, tenant_id: Any) -> Tuple[TableSchema, str, Any]:
        self.policy.check(table)
        tenant_id = validate_tenant_id(tenant_id, self.tenancy.preferred)
        schema = self.source.resolve(conn, table)
        return schema, self.tenancy.require(schema), tenant_id

    @staticmethod
    def _primary_key(schema: TableSchema, pk: Any) -> Any:
        if pk is None or (isinstance(pk, str) and not pk.strip()):
            raise ValidationError.single("id", "required")
        try:
            typed = cast_value(schema.cast_for(schema.primary_key), pk)
        except CastError:
            raise ValidationError.single("id", "invalid") from None
        if typed.is_null:
            raise ValidationError.single("id", "required")
        return typed.value

    def create(self, conn: Any, table: str, tenant_id: Any, payload: Optional[Mapping[str, Any]]) -> Any:
        """Insert a row for the tenant and return its generated primary key."""
        schema, tenant_column, tenant_id = self._prepare(conn, table, tenant_id)
        record = normalize_payload(schema, payload, WriteMode.INSERT, forced={tenant_column: tenant_id})
        pk = executor.insert(conn, schema, record)
        log.info("Row created", extra={"table": schema.table, "pk": pk})
        return pk

    def get(self, conn: Any, table: str, tenant_id: Any, pk: Any) -> Dict[str, Any]:
        schema, tenant_column, tenant_id = self._prepare(conn, table, tenant_id)
        key = self._primary_key(schema, pk)
        try:
            return executor.find_by_pk(conn, schema, key, tenant_column, tenant_id)
        except NotFoundError:
            log.info("Row not found", extra={"table": schema.table, "pk": key})
            raise

    def update(
        self,
        conn: Any,
        table: str,
        tenant_id: Any,
        pk: Any,
        payload: Optional[Mapping[str, Any]],
    ) -> None:
        """Update a row; the tenant column is pinned to ``tenant_id``."""
        schema, tenant_column, tenant_id = self._prepare(conn, table, tenant_id)
        key = self._primary_key(schema, pk)
        record = normalize_payload(schema, payload, WriteMode.UPDATE, forced={tenant_column: tenant_id})
        try:
            executor.update_by_pk(conn, schema, key, tenant_column, tenant_id, record)
        except NotFoundError:
            log.info("Row not found for update", extra={"table": schema.table, "pk": key})
            raise
        log.info("Row updated", extra={"table": schema.table, "pk": key})

    def delete(self, conn: Any, table: str, tenant_id: Any, pk: Any) -> None:
        schema, tenant_column, tenant_id = self._prepare(conn, table, tenant_id)
        key = self._primary_key(schema, pk)
        try:
            executor.delete_by_pk(conn, schema, key, tenant_column, tenant_id)
        except NotFoundError:
            log.info("Row not found for delete", extra={"table": schema.table, "pk": key})
            raise
        log.info("Row deleted", extra={"table": schema.table, "pk": key})

    def list(
        self,
        conn: Any,
        table: str,
        tenant_id: Any,
        request: Union[SelectRequest, Mapping[str, Any], None] = None,
        with_total: bool = False,
    ) -> PageResult:
        """Paged, filtered listing of the tenant's rows."""
        schema, _, tenant_id = self._prepare(conn, table, tenant_id)
        plan = build_select_sql(
            schema,
            tenant_id,
            request,
            tenancy=self.tenancy,
            default_per_page=self.settings.crud_default_per_page,
            max_per_page=self.settings.max_per_page,
        )
        return executor.select_page(conn, plan, with_total=with_total)


def generic_select(
    conn: Any,
    source: SchemaSource,
    table: str,
    tenant_id: Any,
    request: Union[SelectRequest, Mapping[str, Any], None] = None,
    with_total: bool = False,
    settings: Optional[Settings] = None,
) -> PageResult:
    """
    Generic select entry point (no CRUD table policy, select paging defaults).
    """
    settings = settings or get_settings()
    schema = source.resolve(conn, table)
    plan = build_select_sql(
        schema,
        tenant_id,
        request,
        tenancy=tenancy_from_settings(settings),
        default_per_page=settings.select_default_per_page,
        max_per_page=settings.max_per_page,
    )
    return executor.select_page(conn, plan, with_total=with_total)


class QueryService:
    """
    Runs restricted query expressions for one tenant.

    A missing or oversized ``take(n)`` is replaced by ``max_limit``.
    """

    def __init__(
        self,
        source: Optional[SchemaSource] = None,
        settings: Optional[Settings] = None,
        tenancy: Optional[TenantColumns] = None,
        policy: Optional[TablePolicy] = None,
        max_limit: Optional[int] = None,
        strict_join_tenancy: Optional[bool] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.source = source if source is not None else resolver_from_settings(self.settings)
        self.tenancy = tenancy or tenancy_from_settings(self.settings)
        self.policy = (
            policy if policy is not None else TablePolicy.parse(self.settings.querydsl_denied_tables)
        )
        self.max_limit = max_limit if max_limit is not None else self.settings.query_max_limit
        self.strict_join_tenancy = (
            strict_join_tenancy if strict_join_tenancy is not None else self.settings.strict_join_tenancy
        )

    def build(self, conn: Any, expression: str, tenant_id: Any) -> BuiltQuery:
        spec = parse_query_expression(expression)
        if self.max_limit > 0 and (spec.limit <= 0 or spec.limit > self.max_limit):
            spec.limit = self.max_limit
        return build_query_sql(
            conn,
            spec,
            tenant_id,
            self.source,
            tenancy=self.tenancy,
            policy=self.policy,
            strict_join_tenancy=self.strict_join_tenancy,
        )

    def run(self, conn: Any, expression: str, tenant_id: Any) -> List[Dict[str, Any]]:
        try:
            built = self.build(conn, expression, tenant_id)
        except ValidationError as exc:
            log.info("Query expression rejected", extra={"errors": exc.errors})
            raise
        rows = executor.run_query(conn, built)
        log.info("Query expression executed", extra={"rows": len(rows)})
        return rows


__all__ = [
    "QueryService",
    "TableCRUD",
    "generic_select",
    "resolver_from_settings",
    "tenancy_from_settings",
]
