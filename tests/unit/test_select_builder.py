from __future__ import annotations

import pytest

from tenantql.crud.select import build_select_sql, clamp_paging, coerce_request
from tenantql.domain.models import OrderBy, SelectRequest
from tenantql.errors import ValidationError
from tenantql.schema.table import TableSchema

TENANT = 10


def _errors(schema, request) -> dict:
    with pytest.raises(ValidationError) as exc:
        build_select_sql(schema, TENANT, request)
    return exc.value.errors


@pytest.mark.parametrize(
    "page, per_page, expected",
    [
        (None, None, (1, 25)),
        (0, 0, (1, 25)),
        (-3, -1, (1, 25)),
        (2, 10, (2, 10)),
        (1, 500, (1, 200)),
        (1, 200, (1, 200)),
    ],
)
def test_clamp_paging(page, per_page, expected) -> None:
    assert clamp_paging(page, per_page) == expected


def test_clamp_paging_custom_default() -> None:
    assert clamp_paging(0, 0, default_per_page=100) == (1, 100)


def test_default_request_selects_all_columns(pasien_schema) -> None:
    plan = build_select_sql(pasien_schema, TENANT)

    assert plan.page == 1
    assert plan.per_page == 25
    assert plan.query.sql == (
        "SELECT kd_ps, nama_ps, alamat, tgl_lahir, company_id, created_at, updated_at"
        " FROM pasien WHERE company_id = %s LIMIT %s OFFSET %s"
    )
    assert plan.query.args == (TENANT, 26, 0)
    assert plan.count.sql == "SELECT COUNT(*) AS total FROM pasien WHERE company_id = %s"
    assert plan.count.args == (TENANT,)


def test_filters_order_and_or_group(pasien_schema) -> None:
    request = SelectRequest(
        select=["kd_ps", "nama", "kd_ps"],
        where={"company_id": 99, "alamat": "Jl. Merdeka"},
        like={"nama": "bud"},
        or_where={"kd_ps": 1},
        or_like={"alamat": "sudirman%"},
        order_by=[OrderBy(field="nama", dir="DESC"), OrderBy(field="kd_ps")],
        page=3,
        per_page=2,
    )

    plan = build_select_sql(pasien_schema, TENANT, request)

    assert plan.query.sql == (
        "SELECT kd_ps, nama_ps FROM pasien"
        " WHERE company_id = %s AND alamat = %s AND company_id = %s AND nama_ps ILIKE %s"
        " AND (kd_ps = %s OR alamat ILIKE %s)"
        " ORDER BY nama_ps DESC, kd_ps ASC LIMIT %s OFFSET %s"
    )
    assert plan.query.args == (TENANT, "Jl. Merdeka", 99, "%bud%", 1, "sudirman%", 3, 4)
    assert plan.count.args == (TENANT, "Jl. Merdeka", 99, "%bud%", 1, "sudirman%")
    assert "(kd_ps = %s OR alamat ILIKE %s)" in plan.count.sql


def test_unknown_fields_keyed_by_caller_text(pasien_schema) -> None:
    errors = _errors(
        pasien_schema,
        {"select": ["bad_col"], "where": {"other": 1}},
    )
    assert errors == {"bad_col": "unknown field"}

    errors = _errors(pasien_schema, {"where": {"other": 1}, "or_like": {"Nope": "x"}})
    assert errors == {"other": "unknown field", "Nope": "unknown field"}


def test_order_by_errors(pasien_schema) -> None:
    errors = _errors(
        pasien_schema,
        {"order_by": [{"field": "", "dir": "asc"}, {"field": "x"}, {"field": "kd_ps", "dir": "up"}]},
    )
    assert errors == {
        "order_by[0].field": "required",
        "order_by[1].field": "unknown field",
        "order_by[2].dir": "must be asc or desc",
    }


def test_blank_select_entries_only(pasien_schema) -> None:
    assert _errors(pasien_schema, {"select": ["  "]}) == {"select": "empty"}


def test_missing_tenant_column_is_rejected() -> None:
    schema = TableSchema(table="audit", primary_key="id", columns=("id", "message"))
    assert _errors(schema, None) == {
        "company_id": "schema does not support tenant filter (company_id/com_id missing)"
    }


def test_invalid_tenant(pasien_schema) -> None:
    with pytest.raises(ValidationError) as exc:
        build_select_sql(pasien_schema, 0)
    assert exc.value.errors == {"company_id": "invalid"}


def test_request_shape_errors_become_validation_errors() -> None:
    with pytest.raises(ValidationError) as exc:
        coerce_request({"wher": {"a": 1}})
    assert "wher" in exc.value.errors

    with pytest.raises(ValidationError):
        coerce_request({"page": "first"})


def test_null_collections_are_treated_as_empty() -> None:
    request = coerce_request({"where": None, "select": None, "page": None})
    assert request.where == {}
    assert request.select == []
    assert request.page == 0


def test_max_per_page_override(pasien_schema) -> None:
    plan = build_select_sql(pasien_schema, TENANT, {"per_page": 80}, max_per_page=50)
    assert plan.per_page == 50
    assert plan.query.args[-2:] == (51, 0)
