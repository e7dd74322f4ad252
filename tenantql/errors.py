"""
Error types surfaced by tenantql.

Only two kinds are raised deliberately: ValidationError (field-keyed reasons)
and NotFoundError (primary-key lookup under a tenant scope matched nothing).
Database and connection failures propagate unmodified from psycopg.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class TenantQLError(Exception):
    """Base class for errors raised by tenantql itself."""


class ValidationError(TenantQLError):
    """
    Input failed validation.

    Parameters
    ----------
    errors : Mapping[str, str]
        Field (or reference) name to human-readable reason.
    """

    def __init__(self, errors: Optional[Mapping[str, str]] = None) -> None:
        self.errors: Dict[str, str] = dict(errors or {})
        super().__init__("validation failed")

    @classmethod
    def single(cls, field: str, reason: str) -> "ValidationError":
        return cls({field: reason})

    def to_dict(self) -> Dict[str, str]:
        out = dict(self.errors)
        out["code"] = "validation_error"
        return out

    def __str__(self) -> str:
        detail = ", ".join(f"{k}: {v}" for k, v in self.errors.items())
        return f"validation failed ({detail})" if detail else "validation failed"


class NotFoundError(TenantQLError):
    """
    A primary key matched no row within the tenant scope.

    A key that exists under another tenant raises this too.
    """

    def __init__(self, table: str, pk: Any) -> None:
        self.table = table
        self.pk = pk
        super().__init__("not found")

    def to_dict(self) -> Dict[str, str]:
        return {"id": "not found", "code": "not_found"}


class CastError(TenantQLError):
    """A single value could not be coerced to its declared cast kind."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


__all__ = ["TenantQLError", "ValidationError", "NotFoundError", "CastError"]
