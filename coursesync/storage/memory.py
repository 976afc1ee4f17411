"""
In-memory record store for development and tests.

Mirrors the remote tables closely enough for the sync layer: server-assigned
ids and timestamps, a per-owner uniqueness constraint that reports SQLSTATE
23505, and delete filters that may affect zero rows.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from coursesync.sync.records import Record, ResourceSpec
from coursesync.sync.results import UNIQUE_VIOLATION, Err, Ok, RemoteError, StoreResult


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


class InMemoryRecordStore:
    def __init__(self) -> None:
        self._tables: Dict[str, List[Dict[str, Any]]] = {}

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return [dict(r) for r in self._tables.get(table, [])]

    def seed(self, spec: ResourceSpec, owner_user_id: str, resource_key: str, secondary_key: Optional[str] = None, **extra: Any) -> Record:
        """Insert a row directly, bypassing uniqueness (fixtures only)."""
        row = self._new_row(spec, owner_user_id, resource_key, secondary_key)
        row.update(extra)
        self._tables.setdefault(spec.table, []).append(row)
        return spec.row_to_record(row)

    async def select(self, spec: ResourceSpec, owner_user_id: str) -> StoreResult[List[Record]]:
        rows = [r for r in self._tables.get(spec.table, []) if r[spec.owner_column] == owner_user_id]
        if spec.order_created_desc:
            rows = sorted(rows, key=lambda r: r[spec.created_column] or "", reverse=True)
        return Ok([spec.row_to_record(r) for r in rows])

    async def insert(
        self,
        spec: ResourceSpec,
        owner_user_id: str,
        resource_key: str,
        secondary_key: Optional[str] = None,
    ) -> StoreResult[Record]:
        table = self._tables.setdefault(spec.table, [])
        if spec.unique:
            wanted = self._key(spec, owner_user_id, resource_key, secondary_key)
            for row in table:
                if self._row_key(spec, row) == wanted:
                    return Err(RemoteError.from_code(UNIQUE_VIOLATION, f"duplicate key value violates unique constraint on {spec.table}"))
        row = self._new_row(spec, owner_user_id, resource_key, secondary_key)
        table.append(row)
        return Ok(spec.row_to_record(row))

    async def delete(
        self,
        spec: ResourceSpec,
        owner_user_id: str,
        resource_key: str,
        secondary_key: Optional[str] = None,
    ) -> StoreResult[int]:
        table = self._tables.get(spec.table, [])
        keep = []
        removed = 0
        for row in table:
            hit = row[spec.owner_column] == owner_user_id and row[spec.key_column] == resource_key
            if hit and secondary_key is not None and spec.secondary_column:
                hit = row.get(spec.secondary_column) == secondary_key
            if hit:
                removed += 1
            else:
                keep.append(row)
        self._tables[spec.table] = keep
        return Ok(removed)

    # --- Helpers -------------------------------------------------------------------

    @staticmethod
    def _new_row(spec: ResourceSpec, owner_user_id: str, resource_key: str, secondary_key: Optional[str]) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            spec.id_column: str(uuid4()),
            spec.owner_column: owner_user_id,
            spec.key_column: resource_key,
            spec.created_column: _now_iso(),
        }
        if spec.secondary_column:
            row[spec.secondary_column] = secondary_key
        for col in spec.extra_columns:
            row.setdefault(col, None)
        return row

    @staticmethod
    def _key(spec: ResourceSpec, owner: str, key: str, secondary: Optional[str]) -> Tuple[str, str, Optional[str]]:
        return (owner, key, secondary if spec.secondary_column else None)

    @staticmethod
    def _row_key(spec: ResourceSpec, row: Dict[str, Any]) -> Tuple[str, str, Optional[str]]:
        secondary = row.get(spec.secondary_column) if spec.secondary_column else None
        return (row[spec.owner_column], row[spec.key_column], secondary)


__all__ = ["InMemoryRecordStore"]
