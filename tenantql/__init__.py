"""
tenantql - tenant-isolated, schema-validated CRUD and querying for PostgreSQL.

The package never accepts raw SQL. Callers hand it a table name plus a filter
object or a restricted query expression, together with an already
authenticated tenant identifier, and get back parameterized SQL executed on a
connection whose transaction they own:

- Schema resolution from declarative files or catalog introspection
- Payload normalization and value casting
- A restricted, chainable query-expression language
- Tenant-enforced SQL building
- CRUD execution with over-fetch paging
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from tenantql.config import Settings, get_settings
from tenantql.crud import QueryService, TableCRUD, build_select_sql, generic_select
from tenantql.domain import OrderBy, PageResult, SelectRequest
from tenantql.errors import NotFoundError, TenantQLError, ValidationError
from tenantql.querydsl import build_query_sql, parse_query_expression
from tenantql.schema import SchemaRegistry, SchemaResolver, TableSchema
from tenantql.tenancy import TenantColumns
from tenantql.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Schema
    "SchemaRegistry",
    "SchemaResolver",
    "TableSchema",
    "TenantColumns",
    # Building and execution
    "build_query_sql",
    "build_select_sql",
    "parse_query_expression",
    "generic_select",
    "QueryService",
    "TableCRUD",
    # Models
    "OrderBy",
    "PageResult",
    "SelectRequest",
    # Errors
    "NotFoundError",
    "TenantQLError",
    "ValidationError",
    # Logging
    "configure_logging",
    "get_logger",
]
