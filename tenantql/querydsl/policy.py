"""
Table access policy (denylist).

- An empty denylist allows every table.
- ``*`` denies every table.
- Names are compared case-insensitively.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Union

from tenantql.errors import ValidationError


@dataclass(frozen=True)
class TablePolicy:
    denied: FrozenSet[str] = field(default_factory=frozenset)
    deny_all: bool = False

    @classmethod
    def parse(cls, raw: Union[str, Iterable[str], None]) -> "TablePolicy":
        """Build a policy from ``"a,b,c"`` or an iterable of names."""
        if raw is None:
            return cls()
        parts = raw.split(",") if isinstance(raw, str) else raw
        names = {p.strip().lower() for p in parts if p and p.strip()}
        deny_all = "*" in names
        names.discard("*")
        return cls(denied=frozenset(names), deny_all=deny_all)

    def allows(self, table: str) -> bool:
        name = (table or "").strip().lower()
        if not name or self.deny_all:
            return False
        return name not in self.denied

    def check(self, table: str, field_key: str = "table") -> None:
        """Raise ``{field_key: "not allowed"}`` unless ``table`` is allowed."""
        if not self.allows(table):
            raise ValidationError.single(field_key, "not allowed")


ALLOW_ALL = TablePolicy()

__all__ = ["TablePolicy", "ALLOW_ALL"]
