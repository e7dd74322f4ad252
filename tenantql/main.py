from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import typer

from tenantql.config import get_settings
from tenantql.crud.tenant import QueryService, TableCRUD, generic_select, resolver_from_settings
from tenantql.domain.models import OrderBy, SelectRequest
from tenantql.errors import NotFoundError, ValidationError
from tenantql.infrastructure.db_factory import PoolManager
from tenantql.reporter import print_error, print_rows, print_schema
from tenantql.utils.logging import configure_logging

app = typer.Typer(help="tenantql CLI: tenant-scoped CRUD and query expressions over PostgreSQL.")


def _setup() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


def _tenant(raw: str) -> Any:
    text = raw.strip()
    return int(text) if text.isdigit() else text


def _pairs(values: Optional[List[str]], option: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"expected key=value, got {item!r}", param_hint=option)
        out[key.strip()] = value
    return out


@contextmanager
def _reported_errors() -> Iterator[None]:
    """Print validation/not-found envelopes and exit non-zero."""
    try:
        yield
    except (ValidationError, NotFoundError) as exc:
        print_error(exc.to_dict())
        raise typer.Exit(code=1) from None


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"schema={settings.db_schema} schema_dir={settings.schema_dir or '-'} "
        f"cache_ttl={settings.schema_cache_ttl_seconds}s"
    )
    typer.echo(
        f"tenant={settings.tenant_column} legacy={settings.legacy_tenant or '-'} "
        f"strict_joins={settings.strict_join_tenancy} | "
        f"per_page={settings.select_default_per_page}/{settings.crud_default_per_page} "
        f"max_per_page={settings.max_per_page} query_max_limit={settings.query_max_limit}"
    )


@app.command()
def describe(table: str = typer.Argument(..., help="Table to resolve.")) -> None:
    """
    Resolve and print a table schema.
    """
    _setup()
    resolver = resolver_from_settings(get_settings())
    with _reported_errors(), PoolManager().transaction() as conn:
        schema = resolver.resolve(conn, table)
    print_schema(schema)


@app.command()
def query(
    expression: str = typer.Argument(..., help="Query expression, e.g. \"table('menu m')->take(5)\"."),
    tenant: str = typer.Option(..., "--tenant", "-t", help="Authenticated tenant identifier."),
) -> None:
    """
    Run a restricted query expression for a tenant.
    """
    _setup()
    service = QueryService()
    with _reported_errors(), PoolManager().transaction() as conn:
        rows = service.run(conn, expression, _tenant(tenant))
    print_rows(rows, title="Query")


@app.command()
def get(
    table: str = typer.Argument(..., help="Table name."),
    pk: str = typer.Argument(..., help="Primary key value."),
    tenant: str = typer.Option(..., "--tenant", "-t", help="Authenticated tenant identifier."),
) -> None:
    """
    Fetch one row by primary key.
    """
    _setup()
    crud = TableCRUD()
    with _reported_errors(), PoolManager().transaction() as conn:
        row = crud.get(conn, table, _tenant(tenant), pk)
    print_rows([row], title=table)


@app.command()
def select(
    table: str = typer.Argument(..., help="Table name."),
    tenant: str = typer.Option(..., "--tenant", "-t", help="Authenticated tenant identifier."),
    where: Optional[List[str]] = typer.Option(None, "--where", "-w", help="Equality filter key=value."),
    like: Optional[List[str]] = typer.Option(None, "--like", "-l", help="Substring filter key=value."),
    or_where: Optional[List[str]] = typer.Option(None, "--or-where", help="OR-grouped equality key=value."),
    or_like: Optional[List[str]] = typer.Option(None, "--or-like", help="OR-grouped substring key=value."),
    columns: Optional[List[str]] = typer.Option(None, "--select", "-c", help="Output column."),
    order_by: Optional[List[str]] = typer.Option(None, "--order-by", "-o", help="field or field:dir."),
    page: int = typer.Option(1, "--page", "-p"),
    per_page: int = typer.Option(0, "--per-page", help="Rows per page (0 uses the default)."),
    totals: bool = typer.Option(False, "--totals", help="Also count matching rows."),
) -> None:
    """
    Paged, filtered select over a table.
    """
    _setup()
    settings = get_settings()
    request = SelectRequest(
        select=columns or [],
        where=_pairs(where, "--where"),
        like=_pairs(like, "--like"),
        or_where=_pairs(or_where, "--or-where"),
        or_like=_pairs(or_like, "--or-like"),
        order_by=[OrderBy.parse(o) for o in order_by or []],
        page=page,
        per_page=per_page,
    )
    resolver = resolver_from_settings(settings)
    with _reported_errors(), PoolManager().transaction() as conn:
        result = generic_select(
            conn, resolver, table, _tenant(tenant), request, with_total=totals, settings=settings
        )
    print_rows(result.rows, title=table, paging=result.paging())


@app.command()
def delete(
    table: str = typer.Argument(..., help="Table name."),
    pk: str = typer.Argument(..., help="Primary key value."),
    tenant: str = typer.Option(..., "--tenant", "-t", help="Authenticated tenant identifier."),
) -> None:
    """
    Delete one row by primary key.
    """
    _setup()
    crud = TableCRUD()
    with _reported_errors(), PoolManager().transaction() as conn:
        crud.delete(conn, table, _tenant(tenant), pk)
    typer.echo(f"Deleted {table} {pk}.")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
