"""
Shared SQL assembly primitives.

Identifiers are interpolated into SQL text only after matching
`IDENTIFIER_RE`; every value goes through `ArgBuilder.push`, which returns a
psycopg positional placeholder and records the argument in order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Tuple

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

PLACEHOLDER = "%s"


def is_safe_identifier(name: str) -> bool:
    return bool(name) and IDENTIFIER_RE.match(name) is not None


def like_pattern(value: Any) -> str:
    """Wrap a substring filter in wildcards unless the caller supplied one."""
    text = str(value)
    if "%" in text:
        return text
    return f"%{text}%"


@dataclass(frozen=True)
class BuiltQuery:
    """Parameterized SQL text plus its positional arguments."""

    sql: str
    args: Tuple[Any, ...] = ()


@dataclass
class ArgBuilder:
    args: List[Any] = field(default_factory=list)

    def push(self, value: Any) -> str:
        self.args.append(value)
        return PLACEHOLDER

    def eq(self, column: str, value: Any) -> str:
        return f"{column} = {self.push(value)}"

    def ilike(self, column: str, value: Any) -> str:
        return f"{column} ILIKE {self.push(like_pattern(value))}"

    def build(self, sql: str) -> BuiltQuery:
        return BuiltQuery(sql=sql, args=tuple(self.args))


__all__ = [
    "IDENTIFIER_RE",
    "PLACEHOLDER",
    "ArgBuilder",
    "BuiltQuery",
    "is_safe_identifier",
    "like_pattern",
]
