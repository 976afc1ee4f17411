"""
In-memory record cache for one resource type, scoped to one user.

Behavior:
    - `replace` swaps the whole snapshot (fetch results are never merged).
    - `add` keeps at most one record per (resource_key, secondary_key).
    - Rows owned by another user are dropped and logged; records never leak
      across identities.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from .records import Record

logger = logging.getLogger("coursesync.sync")


class RecordCache:
    def __init__(self) -> None:
        self._owner: Optional[str] = None
        self._records: List[Record] = []

    @property
    def owner_user_id(self) -> Optional[str]:
        return self._owner

    def snapshot(self) -> Tuple[Record, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(tuple(self._records))

    def reset(self, owner_user_id: Optional[str] = None) -> None:
        """Empty the cache and rebind it to `owner_user_id` (None when anonymous)."""
        self._owner = owner_user_id
        self._records = []

    def replace(self, records: Iterable[Record]) -> None:
        kept: List[Record] = []
        seen: set = set()
        for rec in records:
            if not self._owned(rec):
                continue
            if rec.key in seen:
                continue
            seen.add(rec.key)
            kept.append(rec)
        self._records = kept

    def add(self, record: Record, *, first: bool = False) -> None:
        if not self._owned(record):
            return
        self._records = [r for r in self._records if r.key != record.key]
        if first:
            self._records.insert(0, record)
        else:
            self._records.append(record)

    def discard(self, resource_key: str, secondary_key: Optional[str] = None) -> int:
        before = len(self._records)
        self._records = [r for r in self._records if not r.matches(resource_key, secondary_key)]
        return before - len(self._records)

    def _owned(self, record: Record) -> bool:
        if self._owner is None or record.owner_user_id != self._owner:
            logger.warning(
                "Dropping record %s not owned by cache user (owner_tail=%s)",
                record.id,
                (record.owner_user_id or "")[-6:],
            )
            return False
        return True


__all__ = ["RecordCache"]
