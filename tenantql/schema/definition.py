"""
Declarative per-table schema files.

A definition lives at ``<SCHEMA_DIR>/<table>.txt`` and is a line-oriented
``key=value`` file::

    # pasien.txt
    primary_key=kd_ps
    timestamps=true
    aliases=com_id:company_id
    fillable=nama_ps,alamat
    columns=kd_ps,nama_ps,alamat,company_id,created_at,updated_at
    casts=company_id:int,created_at:datetime

Every field is optional; whatever is omitted is filled in from catalog
introspection by the resolver.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from tenantql.casting import CastKind
from tenantql.utils.logging import get_logger

log = get_logger(__name__)

_TRUTHY = {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class SchemaDefinition:
    primary_key: Optional[str] = None
    timestamps: Optional[bool] = None
    fillable: Tuple[str, ...] = ()
    columns: Tuple[str, ...] = ()
    aliases: Dict[str, str] = field(default_factory=dict)
    casts: Dict[str, CastKind] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        """True when the file alone is enough to build a schema."""
        return bool(self.primary_key and self.columns and self.casts)


def _split_csv(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _split_pairs(raw: str) -> List[Tuple[str, str]]:
    pairs = []
    for item in _split_csv(raw):
        key, sep, value = item.partition(":")
        key, value = key.strip(), value.strip()
        if not sep or not key or not value:
            continue
        pairs.append((key, value))
    return pairs


def parse_definition(text: str) -> SchemaDefinition:
    """
    Parse the text of a declarative schema file.

    Unknown keys, malformed lines, malformed pairs and unknown cast kinds are
    skipped.
    """
    primary_key: Optional[str] = None
    timestamps: Optional[bool] = None
    fillable: List[str] = []
    columns: List[str] = []
    aliases: Dict[str, str] = {}
    casts: Dict[str, CastKind] = {}

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or stripped.startswith("//"):
            continue
        key, sep, value = stripped.partition("=")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()

        if key in ("primary_key", "pk"):
            primary_key = value or None
        elif key == "timestamps":
            timestamps = value.lower() in _TRUTHY
        elif key == "fillable":
            fillable = _split_csv(value)
        elif key == "columns":
            columns = _split_csv(value)
        elif key == "aliases":
            aliases.update(_split_pairs(value))
        elif key == "casts":
            for column, kind_name in _split_pairs(value):
                kind = CastKind.parse(kind_name)
                if kind is not None:
                    casts[column] = kind

    return SchemaDefinition(
        primary_key=primary_key,
        timestamps=timestamps,
        fillable=tuple(fillable),
        columns=tuple(columns),
        aliases=aliases,
        casts=casts,
    )


def load_definition(schema_dir: Optional[Path], table: str) -> Optional[SchemaDefinition]:
    """
    Load ``<schema_dir>/<table>.txt`` if present.

    Returns None when no directory is configured, the file does not exist, or
    it cannot be read; the caller then falls back to introspection.
    """
    if schema_dir is None:
        return None
    path = Path(schema_dir) / f"{table}.txt"
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log.warning(
            "Schema definition unreadable; falling back to introspection",
            extra={"table": table, "path": str(path), "error": str(exc)},
        )
        return None
    log.debug("Loaded schema definition", extra={"table": table, "path": str(path)})
    return parse_definition(text)


__all__ = ["SchemaDefinition", "parse_definition", "load_definition"]
