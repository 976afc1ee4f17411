"""
Configuration parsing and validation for coursesync.

Intent:
    Provide a single place to read environment variables that select the
    remote store, its credentials and the network timeout.

Why:
    Centralising configuration makes validation and defaults explicit and
    lets tests exercise config behaviour without building any store.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

STORE_BACKENDS = frozenset({"memory", "supabase", "db"})


@dataclass(frozen=True)
class SyncConfig:
    env: str
    store_backend: str  # "memory" | "supabase" | "db"
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    database_url: Optional[str]
    remote_timeout_seconds: int
    fetch_retries: int

    @property
    def is_prod_like(self) -> bool:
        return _is_prod_like(self.env)


def _is_prod_like(env: str) -> bool:
    return (env or "").lower() in {"prod", "production", "stage", "staging"}


def _int_env(name: str, default: int, low: int, high: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value < low or value > high:
        raise ValueError(f"{name} out of range ({low}..{high}), got: {value}")
    return value


def _validate_supabase_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ValueError("SUPABASE_URL must start with http:// or https:// and name a host")


def load_sync_config() -> SyncConfig:
    """
    Parse and validate sync configuration from environment variables.

    Behavior:
        - `COURSESYNC_STORE` selects the store: "memory" (default), "supabase" or "db".
        - "supabase" requires SUPABASE_URL and SUPABASE_ANON_KEY.
        - "db" requires COURSESYNC_DATABASE_URL or DATABASE_URL.
        - Prod-like environments reject the in-memory store.
        - Timeouts are 1..120 seconds, fetch retries 1..10.
    """
    env = (os.getenv("COURSESYNC_ENV") or "dev").strip().lower()
    backend = (os.getenv("COURSESYNC_STORE") or "memory").strip().lower()
    if backend not in STORE_BACKENDS:
        raise ValueError("COURSESYNC_STORE must be 'memory', 'supabase' or 'db'")
    if backend == "memory" and _is_prod_like(env):
        raise ValueError("COURSESYNC_STORE=memory is not allowed in production-like environments")

    supabase_url = (os.getenv("SUPABASE_URL") or "").strip() or None
    supabase_key = (os.getenv("SUPABASE_ANON_KEY") or "").strip() or None
    database_url = (os.getenv("COURSESYNC_DATABASE_URL") or os.getenv("DATABASE_URL") or "").strip() or None

    if backend == "supabase":
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY are required for COURSESYNC_STORE=supabase")
        _validate_supabase_url(supabase_url)
    if backend == "db" and not database_url:
        raise ValueError("COURSESYNC_DATABASE_URL or DATABASE_URL is required for COURSESYNC_STORE=db")
    if backend == "db" and _is_prod_like(env) and "sslmode=disable" in (database_url or ""):
        raise ValueError("DATABASE_URL must not disable TLS in production-like environments")

    return SyncConfig(
        env=env,
        store_backend=backend,
        supabase_url=supabase_url,
        supabase_key=supabase_key,
        database_url=database_url,
        remote_timeout_seconds=_int_env("COURSESYNC_REMOTE_TIMEOUT_SECONDS", 10, 1, 120),
        fetch_retries=_int_env("COURSESYNC_FETCH_RETRIES", 3, 1, 10),
    )


__all__ = ["SyncConfig", "STORE_BACKENDS", "load_sync_config"]
