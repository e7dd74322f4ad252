"""
Pytest configuration for tenantql.

Provides fixtures for:
- In-memory fake psycopg connections that record SQL and replay scripted rows
- Shared demo table schemas
- Database connection management and demo seeding for integration tests
"""

from __future__ import annotations

import os
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Generator, List, Optional, Sequence, Tuple

import psycopg
import pytest

from tenantql.casting import CastKind
from tenantql.config import Settings
from tenantql.infrastructure.db_factory import build_dsn
from tenantql.schema.resolver import SchemaRegistry
from tenantql.schema.table import TableSchema

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


class FakeCursor:
    """Cursor double: records each statement and serves the next scripted result."""

    def __init__(self, conn: "FakeConnection") -> None:
        self._conn = conn
        self._rows: List[Any] = []
        self.rowcount = -1

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        self._conn.executed.append((sql, tuple(params or ())))
        rows, rowcount = self._conn.next_result()
        self._rows = list(rows)
        self.rowcount = len(self._rows) if rowcount is None else rowcount

    def fetchall(self) -> List[Any]:
        rows, self._rows = self._rows, []
        return rows

    def fetchone(self) -> Optional[Any]:
        return self._rows.pop(0) if self._rows else None


class FakeConnection:
    """Connection double; results are consumed in statement order."""

    def __init__(self) -> None:
        self.executed: List[Tuple[str, Tuple[Any, ...]]] = []
        self._results: Deque[Tuple[List[Any], Optional[int]]] = deque()

    def queue(self, rows: Sequence[Any] = (), rowcount: Optional[int] = None) -> "FakeConnection":
        self._results.append((list(rows), rowcount))
        return self

    def next_result(self) -> Tuple[List[Any], Optional[int]]:
        if not self._results:
            return [], None
        return self._results.popleft()

    def cursor(self, *args: Any, **kwargs: Any) -> FakeCursor:
        return FakeCursor(self)

    @property
    def last_sql(self) -> str:
        return self.executed[-1][0]

    @property
    def last_args(self) -> Tuple[Any, ...]:
        return self.executed[-1][1]


@pytest.fixture
def fake_conn() -> FakeConnection:
    return FakeConnection()


def make_pasien_schema(**overrides: Any) -> TableSchema:
    fields = dict(
        table="pasien",
        primary_key="kd_ps",
        columns=("kd_ps", "nama_ps", "alamat", "tgl_lahir", "company_id", "created_at", "updated_at"),
        casts={
            "kd_ps": CastKind.INT,
            "nama_ps": CastKind.STRING,
            "alamat": CastKind.STRING,
            "tgl_lahir": CastKind.DATETIME,
            "company_id": CastKind.INT,
            "created_at": CastKind.DATETIME,
            "updated_at": CastKind.DATETIME,
        },
        aliases={"nama": "nama_ps"},
        timestamps=True,
        now=lambda: FIXED_NOW,
    )
    fields.update(overrides)
    return TableSchema(**fields)


@pytest.fixture
def pasien_schema() -> TableSchema:
    return make_pasien_schema()


@pytest.fixture
def registry(pasien_schema: TableSchema) -> SchemaRegistry:
    """Registry with a tenant-scoped ``pasien``/``menu``, shared ``app`` and tenant-less ``audit``."""
    reg = SchemaRegistry()
    reg.register("pasien", pasien_schema)
    reg.register(
        "menu",
        TableSchema(
            table="menu",
            primary_key="id",
            columns=("id", "menu_name", "app_id", "company_id"),
            casts={"id": CastKind.INT, "app_id": CastKind.INT, "company_id": CastKind.INT},
        ),
    )
    reg.register(
        "app",
        TableSchema(table="app", primary_key="id", columns=("id", "app_name")),
    )
    reg.register(
        "legacy_menu",
        TableSchema(table="legacy_menu", primary_key="id", columns=("id", "title", "com_id")),
    )
    reg.register(
        "audit",
        TableSchema(table="audit", primary_key="id", columns=("id", "message")),
    )
    return reg


@pytest.fixture
def unit_settings() -> Settings:
    """Settings independent of the environment."""
    return Settings.model_validate(
        {
            "TENANT_COLUMN": "company_id",
            "LEGACY_TENANT_COLUMN": "com_id",
            "SELECT_DEFAULT_PER_PAGE": 25,
            "CRUD_DEFAULT_PER_PAGE": 100,
            "MAX_PER_PAGE": 200,
            "QUERY_MAX_LIMIT": 200,
            "CRUD_DENIED_TABLES": "",
            "QUERYDSL_DENIED_TABLES": "",
            "STRICT_JOIN_TENANCY": False,
        }
    )


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings.model_validate(
        {
            "DB_HOST": os.getenv("DB_HOST", "localhost"),
            "DB_PORT": int(os.getenv("DB_PORT", "5432")),
            "DB_USER": os.getenv("DB_USER", "postgres"),
            "DB_PASSWORD": os.getenv("DB_PASSWORD", "postgres"),
            "DB_NAME": os.getenv("DB_NAME", "tenantql"),
            "LOG_LEVEL": "DEBUG",
        }
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def seeded_demo(db_connection: psycopg.Connection) -> Generator[psycopg.Connection, None, None]:
    """
    Recreate and seed the demo tables for tenants 10 and 20 (3 pasien rows each).

    Each test runs inside its own transaction, rolled back afterwards.
    """
    from scripts.seed_demo import create_tables, seed

    create_tables(db_connection, reset=True)
    seed(db_connection, tenants=[10, 20], rows_per_tenant=3, seed_value=42)
    db_connection.commit()
    try:
        yield db_connection
    finally:
        db_connection.rollback()
