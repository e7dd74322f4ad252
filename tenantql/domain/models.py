"""
Request/response models for the generic select path.

`SelectRequest` is the caller-facing filter/page shape; `PageResult` is the
paged response including the paging metadata envelope.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class OrderBy(BaseModel):
    """One ordering clause: a (possibly aliased) field and a direction."""

    field: str = Field(..., description="Column or external field name.")
    dir: str = Field("asc", description="asc or desc.")

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, raw: str) -> "OrderBy":
        """Build from ``"field"`` or ``"field:dir"``."""
        name, _, direction = raw.partition(":")
        return cls(field=name.strip(), dir=direction.strip() or "asc")


class SelectRequest(BaseModel):
    """
    Generic filter/page request.

    ``page`` and ``per_page`` left at zero (or negative) fall back to the
    entry point's defaults; ``per_page`` above the maximum is clamped.
    """

    select: List[str] = Field(default_factory=list)
    where: Dict[str, Any] = Field(default_factory=dict)
    or_where: Dict[str, Any] = Field(default_factory=dict)
    like: Dict[str, Any] = Field(default_factory=dict)
    or_like: Dict[str, Any] = Field(default_factory=dict)
    order_by: List[OrderBy] = Field(default_factory=list)
    page: int = 0
    per_page: int = 0

    model_config = {"extra": "forbid"}

    @field_validator("select", "where", "or_where", "like", "or_like", "order_by", mode="before")
    @classmethod
    def _none_as_empty(cls, value, info):
        if value is None:
            return [] if info.field_name in ("select", "order_by") else {}
        return value

    @field_validator("page", "per_page", mode="before")
    @classmethod
    def _none_as_zero(cls, value):
        return 0 if value is None else value


class PageResult(BaseModel):
    """A page of rows plus paging metadata."""

    rows: List[Dict[str, Any]] = Field(default_factory=list)
    page: int
    per_page: int
    has_more: bool = False
    total_rows: Optional[int] = None
    total_pages: Optional[int] = None

    def paging(self) -> Dict[str, Any]:
        """Paging envelope; totals only appear when they were computed."""
        meta: Dict[str, Any] = {
            "page": self.page,
            "per_page": self.per_page,
            "has_more": self.has_more,
        }
        if self.total_rows is not None:
            meta["total_rows"] = self.total_rows
            meta["total_pages"] = self.total_pages
        return meta


__all__ = ["OrderBy", "SelectRequest", "PageResult"]
