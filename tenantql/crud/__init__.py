"""
CRUD package for tenantql.

Generic select building, the statement executor/pager and the tenant-scoped
facades used by calling layers.
"""

from tenantql.crud.executor import (
    count_rows,
    delete_by_pk,
    find_by_pk,
    insert,
    run_query,
    select_page,
    update_by_pk,
)
from tenantql.crud.select import SelectPlan, build_select_sql, clamp_paging
from tenantql.crud.tenant import QueryService, TableCRUD, generic_select

__all__ = [
    "QueryService",
    "SelectPlan",
    "TableCRUD",
    "build_select_sql",
    "clamp_paging",
    "count_rows",
    "delete_by_pk",
    "find_by_pk",
    "generic_select",
    "insert",
    "run_query",
    "select_page",
    "update_by_pk",
]
