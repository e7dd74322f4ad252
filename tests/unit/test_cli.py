from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime, timezone

import pytest
from rich.console import Console
from typer.testing import CliRunner

from tenantql import main
from tenantql.crud.tenant import QueryService, TableCRUD
from tenantql.reporter import format_cell, print_rows, print_schema

TENANT = "10"

runner = CliRunner()


class _FakePoolManager:
    conn = None

    @contextmanager
    def transaction(self):
        yield self.conn


@pytest.fixture
def cli_env(monkeypatch, fake_conn, registry, unit_settings):
    _FakePoolManager.conn = fake_conn
    monkeypatch.setattr(main, "PoolManager", _FakePoolManager)
    monkeypatch.setattr(main, "configure_logging", lambda **kwargs: None)
    monkeypatch.setattr(main, "get_settings", lambda: unit_settings)
    monkeypatch.setattr(main, "resolver_from_settings", lambda settings: registry)
    monkeypatch.setattr(main, "QueryService", lambda: QueryService(source=registry, settings=unit_settings))
    monkeypatch.setattr(main, "TableCRUD", lambda: TableCRUD(source=registry, settings=unit_settings))
    return fake_conn


def test_info_shows_effective_settings(monkeypatch, unit_settings) -> None:
    monkeypatch.setattr(main, "get_settings", lambda: unit_settings)
    result = runner.invoke(main.app, ["info"])
    assert result.exit_code == 0
    assert "tenant=company_id legacy=com_id" in result.output
    assert "query_max_limit=200" in result.output


def test_select_command_builds_request(cli_env) -> None:
    cli_env.queue([{"kd_ps": 1, "nama_ps": "Budi"}])

    result = runner.invoke(
        main.app,
        ["select", "pasien", "--tenant", TENANT, "--like", "nama=bud", "--order-by", "kd_ps:desc", "--per-page", "5"],
    )

    assert result.exit_code == 0, result.output
    assert "Budi" in result.output
    sql, args = cli_env.executed[-1]
    assert "nama_ps ILIKE %s" in sql
    assert "ORDER BY kd_ps DESC" in sql
    assert args == (10, "%bud%", 6, 0)


def test_select_rejects_malformed_pair(cli_env) -> None:
    result = runner.invoke(main.app, ["select", "pasien", "--tenant", TENANT, "--where", "nama"])
    assert result.exit_code != 0


def test_query_validation_error_prints_envelope(cli_env) -> None:
    result = runner.invoke(main.app, ["query", "table('menu')->where('bad_col','1')", "--tenant", TENANT])
    assert result.exit_code == 1
    assert '"bad_col": "unknown field"' in result.output
    assert '"code": "validation_error"' in result.output


def test_get_not_found_prints_envelope(cli_env) -> None:
    result = runner.invoke(main.app, ["get", "pasien", "7", "--tenant", TENANT])
    assert result.exit_code == 1
    assert '"code": "not_found"' in result.output


def test_delete_command(cli_env) -> None:
    cli_env.queue(rowcount=1)
    result = runner.invoke(main.app, ["delete", "pasien", "7", "--tenant", TENANT])
    assert result.exit_code == 0
    assert "Deleted pasien 7." in result.output
    assert cli_env.last_args == (7, 10)


def test_describe_command(cli_env) -> None:
    result = runner.invoke(main.app, ["describe", "pasien"])
    assert result.exit_code == 0
    assert "kd_ps" in result.output


def test_format_cell() -> None:
    assert format_cell(None) == "[dim]NULL[/dim]"
    assert format_cell(datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)) == "2024-01-02 03:04:05"
    assert json.loads(format_cell({"a": 1})) == {"a": 1}
    assert format_cell(3) == "3"


def test_print_rows_and_schema(pasien_schema) -> None:
    console = Console(record=True, width=200)
    print_rows(
        [{"kd_ps": 1, "nama_ps": "Budi"}],
        title="pasien",
        paging={"page": 1, "per_page": 2, "has_more": True, "total_rows": 3, "total_pages": 2},
        console=console,
    )
    print_schema(pasien_schema, console=console)
    text = console.export_text()
    assert "Budi" in text
    assert "3 row(s) in 2 page(s)" in text
    assert "more available" in text
    assert "nama" in text
    assert "primary key: kd_ps" in text


def test_print_rows_empty() -> None:
    console = Console(record=True, width=120)
    print_rows([], paging={"page": 4, "per_page": 25, "has_more": False}, console=console)
    text = console.export_text()
    assert "No rows." in text
    assert "page 4" in text
