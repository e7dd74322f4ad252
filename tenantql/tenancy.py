"""
Tenant boundary helpers.

Every multi-tenant table carries a tenant column (``company_id`` by default,
``com_id`` on legacy tables). The tenant identifier itself is opaque: it comes
from the already-authenticated caller and is only ever bound as a parameter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from tenantql.errors import ValidationError
from tenantql.schema.table import TableSchema

DEFAULT_TENANT_COLUMN = "company_id"
DEFAULT_LEGACY_TENANT_COLUMN = "com_id"


@dataclass(frozen=True)
class TenantColumns:
    """Preferred tenant column name plus an optional legacy fallback."""

    preferred: str = DEFAULT_TENANT_COLUMN
    legacy: Optional[str] = DEFAULT_LEGACY_TENANT_COLUMN

    def for_schema(self, schema: TableSchema) -> Optional[str]:
        return schema.tenant_column(self.preferred, self.legacy)

    def require(self, schema: TableSchema) -> str:
        """
        Return the tenant column of ``schema``.

        Raises
        ------
        ValidationError
            Keyed by the preferred column when the table exposes neither name.
        """
        column = self.for_schema(schema)
        if column is None:
            names = self.preferred if not self.legacy else f"{self.preferred}/{self.legacy}"
            raise ValidationError.single(
                self.preferred,
                f"schema does not support tenant filter ({names} missing)",
            )
        return column


def validate_tenant_id(tenant_id: Any, field_key: str = DEFAULT_TENANT_COLUMN) -> Any:
    """
    Reject missing or non-positive tenant identifiers.

    Strings are stripped; integers must be positive; everything else is
    passed through as an opaque value.
    """
    if tenant_id is None or isinstance(tenant_id, bool):
        raise ValidationError.single(field_key, "invalid")
    if isinstance(tenant_id, int):
        if tenant_id <= 0:
            raise ValidationError.single(field_key, "invalid")
        return tenant_id
    if isinstance(tenant_id, str):
        text = tenant_id.strip()
        if not text:
            raise ValidationError.single(field_key, "invalid")
        return text
    return tenant_id


__all__ = [
    "DEFAULT_TENANT_COLUMN",
    "DEFAULT_LEGACY_TENANT_COLUMN",
    "TenantColumns",
    "validate_tenant_id",
]
