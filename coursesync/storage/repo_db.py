"""
Postgres-backed record store (psycopg3, async).

Security:
- Access with a limited-role DSN so Row Level Security (RLS) guards every query.
- Each call sets `app.current_sub` transaction-locally to the owner id.

Design:
- Each call opens a short-lived async connection; nothing is pooled.
- Table and column names come from ResourceSpec and are validated as plain
  identifiers before they are interpolated; values are always bound.
- Remote errors are returned as `Err`, never raised. SQLSTATE 23505 is a
  duplicate.
"""
from __future__ import annotations

import asyncio
import logging
import os
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from coursesync.sync.records import Record, ResourceSpec
from coursesync.sync.results import UNIQUE_VIOLATION, Err, ErrorKind, Ok, RemoteError, StoreResult

try:
    import psycopg
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional in some dev envs
    psycopg = None  # type: ignore
    UniqueViolation = None  # type: ignore
    HAVE_PSYCOPG = False
else:  # pragma: no cover - import errors handled above
    try:
        from psycopg.errors import UniqueViolation  # type: ignore
    except Exception:  # pragma: no cover - fallback when errors module unavailable
        UniqueViolation = None  # type: ignore

logger = logging.getLogger("coursesync.storage")

_IDENT_RE = re.compile(r"^[a-z_][a-z0-9_]*$")
_ISO_SQL = """to_char({col} at time zone 'utc', 'YYYY-MM-DD"T"HH24:MI:SS"+00:00"')"""


def _default_app_login_dsn() -> str:
    host = os.getenv("TEST_DB_HOST", "127.0.0.1")
    port = os.getenv("TEST_DB_PORT", "54322")
    user = os.getenv("APP_DB_USER", "coursesync_app")
    password = os.getenv("APP_DB_PASSWORD", "CHANGE_ME_DEV")
    return f"postgresql://{user}:{password}@{host}:{port}/postgres"


def _dsn() -> str:
    """Resolve the DSN; first non-empty of the context override, DATABASE_URL, dev default."""
    env = (os.getenv("COURSESYNC_ENV", "dev") or "dev").lower()
    candidates = [
        os.getenv("COURSESYNC_DATABASE_URL"),
        os.getenv("DATABASE_URL"),
    ]
    if env not in {"prod", "production"}:
        candidates.append(_default_app_login_dsn())
    for candidate in candidates:
        if candidate:
            return candidate
    raise RuntimeError("Database DSN unavailable for DBRecordStore")


def _ident(name: str) -> str:
    if not _IDENT_RE.match(name or ""):
        raise ValueError(f"invalid_identifier: {name!r}")
    return name


def _select_list(spec: ResourceSpec) -> str:
    parts = []
    for col in spec.columns:
        c = _ident(col)
        if c == spec.created_column or c.endswith("_at"):
            parts.append(_ISO_SQL.format(col=c))
        else:
            parts.append(f"{c}::text")
    return ", ".join(parts)


def _row_to_dict(spec: ResourceSpec, row: Sequence[Any]) -> Dict[str, Any]:
    return dict(zip(spec.columns, row))


def _classify(exc: BaseException) -> RemoteError:
    sqlstate = getattr(exc, "sqlstate", None) or getattr(exc, "pgcode", None)
    if (UniqueViolation and isinstance(exc, UniqueViolation)) or sqlstate == UNIQUE_VIOLATION:
        return RemoteError(kind=ErrorKind.DUPLICATE, message="unique_violation", code=UNIQUE_VIOLATION)
    if isinstance(exc, asyncio.TimeoutError):
        return RemoteError(kind=ErrorKind.OTHER, message="timeout")
    return RemoteError(kind=ErrorKind.OTHER, message=exc.__class__.__name__, code=str(sqlstate) if sqlstate else None)


class DBRecordStore:
    def __init__(self, dsn: Optional[str] = None, *, timeout_seconds: float = 10.0) -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBRecordStore")
        self._dsn = dsn or _dsn()
        self._timeout = float(timeout_seconds)

    async def _run(self, owner_user_id: str, statement: str, params: Tuple[Any, ...], *, fetch: str) -> Any:
        async with await psycopg.AsyncConnection.connect(self._dsn) as conn:
            async with conn.cursor() as cur:
                # RLS: set local current_sub for this transaction
                await cur.execute("select set_config('app.current_sub', %s, true)", (owner_user_id,))
                await cur.execute(statement, params)
                if fetch == "all":
                    result = await cur.fetchall() or []
                elif fetch == "one":
                    result = await cur.fetchone()
                else:
                    result = cur.rowcount
            await conn.commit()
        return result

    async def _guarded(self, op: str, spec: ResourceSpec, owner_user_id: str, statement: str, params: Tuple[Any, ...], *, fetch: str) -> StoreResult:
        try:
            value = await asyncio.wait_for(self._run(owner_user_id, statement, params, fetch=fetch), timeout=self._timeout)
        except Exception as exc:
            err = _classify(exc)
            if not err.is_duplicate:
                logger.warning("%s %s failed: %s", op, spec.table, exc.__class__.__name__)
            return Err(err)
        return Ok(value)

    # --- Protocol methods --------------------------------------------------------

    async def select(self, spec: ResourceSpec, owner_user_id: str) -> StoreResult[List[Record]]:
        statement = f"select {_select_list(spec)} from public.{_ident(spec.table)} where {_ident(spec.owner_column)} = %s"
        if spec.order_created_desc:
            statement += f" order by {_ident(spec.created_column)} desc"
        result = await self._guarded("select", spec, owner_user_id, statement, (owner_user_id,), fetch="all")
        if isinstance(result, Err):
            return result
        return Ok([spec.row_to_record(_row_to_dict(spec, row)) for row in result.value])

    async def insert(
        self,
        spec: ResourceSpec,
        owner_user_id: str,
        resource_key: str,
        secondary_key: Optional[str] = None,
    ) -> StoreResult[Record]:
        payload = spec.insert_payload(owner_user_id, resource_key, secondary_key)
        cols = ", ".join(_ident(c) for c in payload)
        marks = ", ".join(["%s"] * len(payload))
        statement = f"insert into public.{_ident(spec.table)} ({cols}) values ({marks}) returning {_select_list(spec)}"
        result = await self._guarded("insert", spec, owner_user_id, statement, tuple(payload.values()), fetch="one")
        if isinstance(result, Err):
            return result
        if result.value is None:
            return Err(RemoteError(kind=ErrorKind.OTHER, message="insert_returned_no_row"))
        return Ok(spec.row_to_record(_row_to_dict(spec, result.value)))

    async def delete(
        self,
        spec: ResourceSpec,
        owner_user_id: str,
        resource_key: str,
        secondary_key: Optional[str] = None,
    ) -> StoreResult[int]:
        statement = f"delete from public.{_ident(spec.table)} where {_ident(spec.owner_column)} = %s and {_ident(spec.key_column)} = %s"
        params: Tuple[Any, ...] = (owner_user_id, resource_key)
        if secondary_key is not None and spec.secondary_column:
            statement += f" and {_ident(spec.secondary_column)} = %s"
            params = params + (secondary_key,)
        result = await self._guarded("delete", spec, owner_user_id, statement, params, fetch="rowcount")
        if isinstance(result, Err):
            return result
        # rowcount can be -1 on some drivers; zero affected rows is still success
        return Ok(max(0, int(result.value or 0)))


__all__ = ["DBRecordStore", "HAVE_PSYCOPG"]
