"""
Restricted query-expression package for tenantql.

Parses chained expressions into a `QuerySpec` and turns it into
tenant-enforced, parameterized SQL.
"""

from tenantql.querydsl.builder import build_query_sql
from tenantql.querydsl.parser import parse_query_expression
from tenantql.querydsl.policy import ALLOW_ALL, TablePolicy
from tenantql.querydsl.spec import ColumnRef, JoinSpec, OrderBySpec, QuerySpec, WhereSpec

__all__ = [
    "ALLOW_ALL",
    "ColumnRef",
    "JoinSpec",
    "OrderBySpec",
    "QuerySpec",
    "TablePolicy",
    "WhereSpec",
    "build_query_sql",
    "parse_query_expression",
]
