"""
Record shape and per-resource table descriptions.

Why:
    All user-scoped facts (enrollments, lesson completions, follows, saved
    posts, roles) share one shape: an owner, a resource key, an optional
    secondary key and a creation timestamp. Describing each table once keeps
    the store adapters generic and the resource classes thin.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class ResourceSpec:
    """Static description of one synchronized table.

    Parameters:
        name: Short resource name used for logging and notice lookup.
        table: Remote table name (public schema).
        key_column: Column holding the resource key (e.g. `course_id`).
        secondary_column: Optional column holding the secondary key.
        created_column: Column holding the creation timestamp.
        order_created_desc: Whether fetches order by `created_column` desc.
        extra_columns: Non-key columns copied into `Record.extra`.
        unique: Whether the remote enforces one row per owner and key(s).
        clear_on_fetch_error: Drop cached rows when a fetch fails.
    """

    name: str
    table: str
    key_column: str
    secondary_column: Optional[str] = None
    created_column: str = "created_at"
    owner_column: str = "user_id"
    id_column: str = "id"
    order_created_desc: bool = False
    extra_columns: Tuple[str, ...] = ()
    unique: bool = True
    clear_on_fetch_error: bool = False

    @property
    def columns(self) -> Tuple[str, ...]:
        cols = [self.id_column, self.owner_column, self.key_column]
        if self.secondary_column:
            cols.append(self.secondary_column)
        cols.append(self.created_column)
        cols.extend(c for c in self.extra_columns if c not in cols)
        return tuple(cols)

    def row_to_record(self, row: Dict[str, Any]) -> "Record":
        """Map a store row (column -> value) into a Record."""
        secondary = row.get(self.secondary_column) if self.secondary_column else None
        created = row.get(self.created_column)
        return Record(
            id=str(row[self.id_column]),
            owner_user_id=str(row[self.owner_column]),
            resource_key=str(row[self.key_column]),
            secondary_key=str(secondary) if secondary is not None else None,
            created_at=str(created) if created is not None else None,
            extra={c: row.get(c) for c in self.extra_columns},
        )

    def insert_payload(self, owner_user_id: str, resource_key: str, secondary_key: Optional[str]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {self.owner_column: owner_user_id, self.key_column: resource_key}
        if self.secondary_column:
            if secondary_key is None:
                raise ValueError(f"invalid_{self.secondary_column}")
            payload[self.secondary_column] = secondary_key
        return payload


@dataclass(frozen=True)
class Record:
    id: str
    owner_user_id: str
    resource_key: str
    secondary_key: Optional[str] = None
    created_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        return (self.resource_key, self.secondary_key)

    def matches(self, resource_key: str, secondary_key: Optional[str] = None) -> bool:
        """Key match; a missing secondary key matches any secondary value."""
        if self.resource_key != resource_key:
            return False
        return secondary_key is None or self.secondary_key == secondary_key


def normalize_key(value: object, name: str = "resource_key") -> str:
    """Validate a key argument and return it as a trimmed string."""
    if value is None or isinstance(value, bool):
        raise ValueError(f"invalid_{name}")
    text = str(value).strip()
    if not text:
        raise ValueError(f"invalid_{name}")
    return text


__all__ = ["ResourceSpec", "Record", "normalize_key"]
