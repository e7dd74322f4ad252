"""
Schema package for tenantql.

Resolves canonical table descriptions from declarative files and/or catalog
introspection.
"""

from tenantql.schema.definition import SchemaDefinition, load_definition, parse_definition
from tenantql.schema.introspect import SchemaCache, get_schema_cache, guess_cast_kind
from tenantql.schema.resolver import (
    SchemaRegistry,
    SchemaResolver,
    SchemaSource,
    normalize_table_name,
)
from tenantql.schema.table import TableSchema

__all__ = [
    "SchemaCache",
    "SchemaDefinition",
    "SchemaRegistry",
    "SchemaResolver",
    "SchemaSource",
    "TableSchema",
    "get_schema_cache",
    "guess_cast_kind",
    "load_definition",
    "normalize_table_name",
    "parse_definition",
]
