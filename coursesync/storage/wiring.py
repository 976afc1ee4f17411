"""
Build the remote record store selected by configuration.

Behavior:
    - "memory": a fresh InMemoryRecordStore (dev/test only).
    - "supabase": an async supabase client wrapped in SupabaseRecordStore.
      An already constructed client can be passed in (e.g. one carrying the
      user's access token).
    - "db": DBRecordStore on the configured DSN.

Logging:
    - Logs which store was wired at info level.
    - Client construction failures are logged with the exception class and
      re-raised; a misconfigured store must not silently fall back.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from coursesync.config import SyncConfig
from coursesync.sync.ports import RemoteStoreProtocol

from .memory import InMemoryRecordStore
from .repo_db import DBRecordStore
from .supabase_store import SupabaseRecordStore

logger = logging.getLogger("coursesync.storage")


async def build_remote_store(config: SyncConfig, *, supabase_client: Optional[Any] = None) -> RemoteStoreProtocol:
    backend = config.store_backend
    if backend == "memory":
        logger.info("Record store wired: memory")
        return InMemoryRecordStore()
    if backend == "supabase":
        client = supabase_client
        if client is None:
            try:
                from supabase import acreate_client  # type: ignore

                client = await acreate_client(config.supabase_url or "", config.supabase_key or "")
            except Exception as exc:
                logger.warning("Supabase client unavailable: %s: %s", exc.__class__.__name__, str(exc))
                raise
        logger.info("Record store wired: Supabase")
        return SupabaseRecordStore(client, timeout_seconds=config.remote_timeout_seconds)
    if backend == "db":
        logger.info("Record store wired: Postgres")
        return DBRecordStore(config.database_url, timeout_seconds=config.remote_timeout_seconds)
    raise ValueError(f"unknown store backend: {backend!r}")


__all__ = ["build_remote_store"]
