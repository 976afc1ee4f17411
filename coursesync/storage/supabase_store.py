"""
Supabase (PostgREST) backed record store.

This adapter implements RemoteStoreProtocol using a provided Supabase client.
It is intentionally duck-typed to avoid a hard dependency during testing. The
client is expected to expose `.table(name)` (supabase-py) or `.from_(name)`
(postgrest client) which returns a query builder offering:

- select(columns).eq(col, value)[.order(col, desc=True)].execute()
- insert(payload).execute()        -> response.data == [inserted row]
- delete().eq(col, value)...execute() -> response.data == [deleted rows]

Both sync and async clients work: `execute()` results are awaited when they
are awaitable, otherwise the blocking call runs in a worker thread.

Errors:
    PostgREST reports Postgres errors as `APIError` with the SQLSTATE in
    `.code`; 23505 maps to a duplicate. Network errors and timeouts map to
    `other`. Nothing is raised to the caller.

Security:
    Use the anon key together with the user's access token so RLS applies;
    never hand a service-role client to end-user sessions.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from coursesync.sync.records import Record, ResourceSpec
from coursesync.sync.results import Err, ErrorKind, Ok, RemoteError, StoreResult

try:
    from postgrest.exceptions import APIError  # type: ignore
except Exception:  # pragma: no cover - optional in some dev envs
    APIError = None  # type: ignore

logger = logging.getLogger("coursesync.storage")

DEFAULT_TIMEOUT_SECONDS = 10.0


class SupabaseRecordStore:
    """Record store using a supabase client for table operations."""

    def __init__(self, client: Any, *, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        # Duck-typed supabase client, e.g., from `supabase import acreate_client(...)`.
        self._client = client
        self._timeout = float(timeout_seconds)

    # --- Helpers -----------------------------------------------------------------

    def _table(self, name: str) -> Any:
        """Return a query builder from either a supabase or a postgrest client."""
        c = self._client
        if hasattr(c, "table"):
            return c.table(name)
        if hasattr(c, "from_"):
            return c.from_(name)
        raise RuntimeError("invalid_supabase_client")

    async def _execute(self, build: Callable[[], Any]) -> Any:
        """Execute a query built by `build()` with a timeout; returns the response."""

        execute = build().execute
        if inspect.iscoroutinefunction(execute):
            return await asyncio.wait_for(execute(), timeout=self._timeout)
        return await asyncio.wait_for(asyncio.to_thread(execute), timeout=self._timeout)

    @staticmethod
    def _data(response: Any) -> List[Dict[str, Any]]:
        data = getattr(response, "data", None)
        if data is None and isinstance(response, dict):
            data = response.get("data")
        if data is None:
            return []
        if isinstance(data, dict):
            return [data]
        return list(data)

    @staticmethod
    def _error(exc: BaseException) -> RemoteError:
        if APIError is not None and isinstance(exc, APIError):
            return RemoteError.from_code(getattr(exc, "code", None), str(getattr(exc, "message", "") or exc))
        code = getattr(exc, "code", None)
        if code is not None and not isinstance(exc, (httpx.HTTPError, asyncio.TimeoutError)):
            return RemoteError.from_code(code, str(exc))
        if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
            return RemoteError(kind=ErrorKind.OTHER, message="timeout")
        return RemoteError(kind=ErrorKind.OTHER, message=exc.__class__.__name__)

    # --- Protocol methods --------------------------------------------------------

    async def select(self, spec: ResourceSpec, owner_user_id: str) -> StoreResult[List[Record]]:
        def build() -> Any:
            q = self._table(spec.table).select(",".join(spec.columns)).eq(spec.owner_column, owner_user_id)
            if spec.order_created_desc:
                q = q.order(spec.created_column, desc=True)
            return q

        try:
            response = await self._execute(build)
        except Exception as exc:
            err = self._error(exc)
            logger.warning("select %s failed: %s code=%s", spec.table, exc.__class__.__name__, err.code)
            return Err(err)
        return Ok([spec.row_to_record(row) for row in self._data(response)])

    async def insert(
        self,
        spec: ResourceSpec,
        owner_user_id: str,
        resource_key: str,
        secondary_key: Optional[str] = None,
    ) -> StoreResult[Record]:
        payload = spec.insert_payload(owner_user_id, resource_key, secondary_key)
        try:
            response = await self._execute(lambda: self._table(spec.table).insert(payload))
        except Exception as exc:
            err = self._error(exc)
            if not err.is_duplicate:
                logger.warning("insert %s failed: %s code=%s", spec.table, exc.__class__.__name__, err.code)
            return Err(err)
        rows = self._data(response)
        if not rows:
            return Err(RemoteError(kind=ErrorKind.OTHER, message="insert_returned_no_row"))
        return Ok(spec.row_to_record(rows[0]))

    async def delete(
        self,
        spec: ResourceSpec,
        owner_user_id: str,
        resource_key: str,
        secondary_key: Optional[str] = None,
    ) -> StoreResult[int]:
        def build() -> Any:
            q = self._table(spec.table).delete().eq(spec.owner_column, owner_user_id).eq(spec.key_column, resource_key)
            if secondary_key is not None and spec.secondary_column:
                q = q.eq(spec.secondary_column, secondary_key)
            return q

        try:
            response = await self._execute(build)
        except Exception as exc:
            err = self._error(exc)
            logger.warning("delete %s failed: %s code=%s", spec.table, exc.__class__.__name__, err.code)
            return Err(err)
        return Ok(len(self._data(response)))


__all__ = ["SupabaseRecordStore"]
