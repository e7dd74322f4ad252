"""
Infrastructure package for tenantql.

Centralizes database connectivity concerns (connection factory, pooling and
the per-request transaction boundary). Keep this layer focused on I/O and
resource management, decoupled from schema and SQL building logic.
"""

from tenantql.infrastructure.db_factory import (
    PoolManager,
    acquire_connection,
    build_dsn,
    get_sync_connection,
)

__all__ = [
    "PoolManager",
    "acquire_connection",
    "build_dsn",
    "get_sync_connection",
]
