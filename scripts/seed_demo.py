"""
Demo schema and data seeding script for tenantql.

Creates a small multi-tenant schema and fills it with deterministic
pseudo-random rows for several tenants:

- ``pasien``: tenant-scoped, ``kd_ps`` serial key, automatic timestamps
- ``menu``: tenant-scoped, references ``app``
- ``app``: shared reference data without a tenant column
"""

from __future__ import annotations

import random
import sys
import time
from datetime import date, timedelta
from typing import List, Optional

import psycopg
import typer

from tenantql.infrastructure.db_factory import get_sync_connection

app = typer.Typer(help="Create demo tables and seed multi-tenant rows into Postgres.")

DDL = (
    """
    CREATE TABLE IF NOT EXISTS app (
        id SERIAL PRIMARY KEY,
        app_name VARCHAR(100) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pasien (
        kd_ps SERIAL PRIMARY KEY,
        nama_ps VARCHAR(150) NOT NULL,
        alamat TEXT,
        tgl_lahir DATE,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        company_id INTEGER NOT NULL,
        created_at TIMESTAMPTZ,
        updated_at TIMESTAMPTZ
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS menu (
        id SERIAL PRIMARY KEY,
        menu_name VARCHAR(100) NOT NULL,
        app_id INTEGER REFERENCES app (id),
        company_id INTEGER NOT NULL
    )
    """,
)

DROP = "DROP TABLE IF EXISTS menu, pasien, app"

APPS = ("lab", "radiology", "pharmacy", "billing")
FIRST_NAMES = ("Budi", "Siti", "Agus", "Dewi", "Rina", "Joko", "Ani", "Tono")
LAST_NAMES = ("Santoso", "Wijaya", "Pratama", "Lestari", "Hidayat", "Saputra")
STREETS = ("Jl. Merdeka", "Jl. Sudirman", "Jl. Diponegoro", "Jl. Gatot Subroto")


def create_tables(conn: psycopg.Connection, reset: bool = False) -> None:
    with conn.cursor() as cur:
        if reset:
            cur.execute(DROP)
        for statement in DDL:
            cur.execute(statement)


def seed(conn: psycopg.Connection, tenants: List[int], rows_per_tenant: int, seed_value: int = 42) -> int:
    """
    Insert demo rows for every tenant; returns the number of ``pasien`` rows.
    """
    rng = random.Random(seed_value)
    inserted = 0
    with conn.cursor() as cur:
        cur.execute("SELECT COUNT(*) FROM app")
        if cur.fetchone()[0] == 0:
            cur.executemany("INSERT INTO app (app_name) VALUES (%s)", [(name,) for name in APPS])
        cur.execute("SELECT id FROM app ORDER BY id")
        app_ids = [row[0] for row in cur.fetchall()]

        for tenant in tenants:
            patients = []
            for _ in range(rows_per_tenant):
                born = date(1950, 1, 1) + timedelta(days=rng.randint(0, 365 * 60))
                patients.append(
                    (
                        f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}",
                        f"{rng.choice(STREETS)} No. {rng.randint(1, 200)}",
                        born,
                        rng.random() > 0.1,
                        tenant,
                    )
                )
            cur.executemany(
                "INSERT INTO pasien (nama_ps, alamat, tgl_lahir, is_active, company_id, created_at, updated_at)"
                " VALUES (%s, %s, %s, %s, %s, now(), now())",
                patients,
            )
            inserted += len(patients)

            cur.executemany(
                "INSERT INTO menu (menu_name, app_id, company_id) VALUES (%s, %s, %s)",
                [(f"{name} menu", app_id, tenant) for name, app_id in zip(APPS, app_ids)],
            )
    return inserted


@app.command()
def main(
    tenants: List[int] = typer.Option(
        [10, 20, 30],
        "--tenant",
        "-t",
        help="Tenant (company_id) to seed; repeat for several.",
    ),
    rows: int = typer.Option(
        50,
        "--rows",
        "-r",
        help="Number of pasien rows per tenant.",
    ),
    seed_value: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    reset: bool = typer.Option(
        False,
        "--reset",
        help="Drop and recreate the demo tables first.",
    ),
    dsn: Optional[str] = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
) -> None:
    """
    Create the demo tables and seed rows for each tenant.
    """
    start = time.perf_counter()
    with get_sync_connection(dsn) as conn:
        create_tables(conn, reset=reset)
        inserted = seed(conn, tenants, rows, seed_value)
        conn.commit()
    duration = time.perf_counter() - start
    typer.echo(
        f"Seeded {inserted:,} pasien rows for tenants {', '.join(map(str, tenants))} in {duration:.2f}s."
    )


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
