"""
Generic synchronization of one user-scoped resource with the remote store.

Intent:
    One reusable pattern for enrollments, lesson progress, follows, saved
    posts and roles: gate on the session, fetch the user's rows, apply
    confirmed mutations and expose pure views over the cached set.

Behavior:
    - Session transitions advance an epoch. Fetch and mutation responses
      tagged with an older epoch are discarded (no write after logout), and
      fetch tasks scheduled for the old epoch are cancelled.
    - Entering `identified` empties the cache, sets `loading` and schedules a
      fetch on the running loop. Entering `anonymous` empties the cache and
      clears `loading` without touching the network.
    - The cache only changes after a remote round trip completes.
    - A fetch overlapping a mutation is re-issued (bounded) so an older
      snapshot cannot clobber newer local state.

Permissions:
    Every remote call is scoped to the identified user's id; the store
    enforces ownership (RLS) on its side.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, Set, Tuple

from coursesync.identity_access.session_gate import Phase, SessionGate, SessionState

from . import views
from .cache import RecordCache
from .outcomes import Notifier, Outcome
from .ports import RemoteStoreProtocol
from .records import Record, ResourceSpec, normalize_key
from .results import Err, ErrorKind, RemoteError, StaleReadRace, StoreResult

logger = logging.getLogger("coursesync.sync")

DEFAULT_FETCH_RETRIES = 3


class ResourceSync:
    def __init__(
        self,
        spec: ResourceSpec,
        store: RemoteStoreProtocol,
        gate: SessionGate,
        *,
        notifier: Optional[Notifier] = None,
        fetch_retries: int = DEFAULT_FETCH_RETRIES,
    ) -> None:
        self.spec = spec
        self._store = store
        self._gate = gate
        self._notifier = notifier
        self._fetch_retries = max(1, int(fetch_retries))
        self._cache = RecordCache()
        self._loading = True
        self._epoch = 0
        self._mutations = 0
        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe = gate.subscribe(self._on_transition)
        self._enter(gate.state)

    # --- State -------------------------------------------------------------------

    @property
    def records(self) -> Tuple[Record, ...]:
        return self._cache.snapshot()

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def has_pending_work(self) -> bool:
        return any(not t.done() for t in self._tasks)

    # --- Derived views -------------------------------------------------------------

    def is_member(self, resource_key: str, secondary_key: Optional[str] = None) -> bool:
        return views.is_member(self._cache, resource_key, secondary_key)

    def count(self, resource_key: Optional[str] = None) -> int:
        return views.count(self._cache, resource_key)

    def percentage(self, resource_key: str, total_units: int) -> int:
        return views.progress_percentage(self.count(resource_key), total_units)

    # --- Session lifecycle ---------------------------------------------------------

    def _on_transition(self, previous: SessionState, current: SessionState) -> None:
        self._enter(current)

    def _enter(self, state: SessionState) -> None:
        self._epoch += 1
        self._cancel_pending()
        if state.phase is Phase.IDENTIFIED:
            self._cache.reset(state.user_id)
            self._loading = True
            self._schedule_fetch()
        elif state.phase is Phase.ANONYMOUS:
            self._cache.reset(None)
            self._loading = False
        else:
            self._cache.reset(None)
            self._loading = True

    def _schedule_fetch(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("%s: no running event loop, fetch deferred until refetch()", self.spec.name)
            return
        task = loop.create_task(self.refetch())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _cancel_pending(self) -> None:
        current = None
        try:
            current = asyncio.current_task()
        except RuntimeError:
            pass
        for task in list(self._tasks):
            if task is not current and not task.done():
                task.cancel()

    async def wait_idle(self) -> None:
        """Wait until every scheduled fetch has finished or been cancelled."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        self._unsubscribe()
        self._epoch += 1
        self._cancel_pending()

    # --- Fetcher -------------------------------------------------------------------

    async def refetch(self) -> None:
        """Replace the cache with the user's remote rows.

        Behavior:
            - No network call unless the session is identified.
            - On failure the previous snapshot stays (or is cleared when the
              resource fails closed) and `loading` is cleared.
            - A snapshot taken before a confirmed mutation is never applied;
              after `fetch_retries` overlapping attempts the cache is kept.
        """
        state = self._gate.state
        if not state.is_identified or state.user_id is None:
            if state.phase is Phase.ANONYMOUS:
                self._loading = False
            return
        epoch = self._epoch
        user_id = state.user_id
        attempt = 0
        while True:
            attempt += 1
            seen_mutations = self._mutations
            result = await self._call(self._store.select(self.spec, user_id))
            try:
                self._ensure_current(epoch)
            except StaleReadRace:
                logger.debug("%s: discarding stale fetch response (user_tail=%s)", self.spec.name, user_id[-6:])
                return
            if isinstance(result, Err):
                logger.warning(
                    "%s: fetch failed for user_tail=%s kind=%s code=%s",
                    self.spec.name,
                    user_id[-6:],
                    result.error.kind.value,
                    result.error.code,
                )
                if self.spec.clear_on_fetch_error:
                    self._cache.replace(())
                self._loading = False
                return
            if seen_mutations != self._mutations:
                if attempt < self._fetch_retries:
                    logger.debug("%s: fetch overlapped a mutation, re-issuing (attempt %s)", self.spec.name, attempt)
                    continue
                # Snapshot predates a confirmed mutation; the cache stays authoritative.
                logger.debug("%s: fetch retries exhausted, keeping cache (attempts=%s)", self.spec.name, attempt)
                self._loading = False
                return
            self._cache.replace(result.value)
            self._loading = False
            return

    # --- Mutator -------------------------------------------------------------------

    async def create(self, resource_key: object, secondary_key: object = None, *, name: Optional[str] = None) -> Outcome:
        key, secondary = self._keys(resource_key, secondary_key, require_secondary=True)
        state = self._gate.state
        if not state.is_identified or state.user_id is None:
            return self._finish("create", Outcome.blocked(), name)
        epoch = self._epoch
        result = await self._call(self._store.insert(self.spec, state.user_id, key, secondary))
        if isinstance(result, Err):
            if result.error.is_duplicate:
                outcome = Outcome.already_done(result.error)
            else:
                logger.warning(
                    "%s: create failed key=%s code=%s", self.spec.name, key, result.error.code
                )
                outcome = Outcome.failed(result.error)
        else:
            outcome = Outcome.success(result.value)
            try:
                self._ensure_current(epoch)
                self._cache.add(result.value, first=self.spec.order_created_desc)
                self._mutations += 1
            except StaleReadRace:
                logger.debug("%s: session changed during create, cache left untouched", self.spec.name)
        return self._finish("create", outcome, name)

    async def remove(self, resource_key: object, secondary_key: object = None, *, name: Optional[str] = None) -> Outcome:
        key, secondary = self._keys(resource_key, secondary_key, require_secondary=False)
        state = self._gate.state
        if not state.is_identified or state.user_id is None:
            return self._finish("remove", Outcome.blocked(), name)
        epoch = self._epoch
        result = await self._call(self._store.delete(self.spec, state.user_id, key, secondary))
        if isinstance(result, Err):
            logger.warning("%s: remove failed key=%s code=%s", self.spec.name, key, result.error.code)
            outcome = Outcome.failed(result.error)
        else:
            outcome = Outcome.success()
            try:
                self._ensure_current(epoch)
                self._cache.discard(key, secondary)
                self._mutations += 1
            except StaleReadRace:
                logger.debug("%s: session changed during remove, cache left untouched", self.spec.name)
        return self._finish("remove", outcome, name)

    # --- Helpers -------------------------------------------------------------------

    def _ensure_current(self, epoch: int) -> None:
        if epoch != self._epoch:
            raise StaleReadRace(f"{self.spec.name}: epoch {epoch} superseded by {self._epoch}")

    def _keys(self, resource_key: object, secondary_key: object, *, require_secondary: bool) -> Tuple[str, Optional[str]]:
        key = normalize_key(resource_key, self.spec.key_column)
        if self.spec.secondary_column is None:
            if secondary_key is not None:
                raise ValueError(f"{self.spec.name}_has_no_secondary_key")
            return key, None
        if secondary_key is None:
            if require_secondary:
                raise ValueError(f"invalid_{self.spec.secondary_column}")
            return key, None
        return key, normalize_key(secondary_key, self.spec.secondary_column)

    async def _call(self, pending: Awaitable[StoreResult]) -> StoreResult:
        # Stores return Err for remote failures; anything raised is treated the same way.
        try:
            return await pending
        except Exception as exc:
            logger.warning("%s: store raised %s", self.spec.name, exc.__class__.__name__)
            return Err(RemoteError(kind=ErrorKind.OTHER, message=exc.__class__.__name__))

    def _finish(self, action: str, outcome: Outcome, name: Optional[str]) -> Outcome:
        if self._notifier is not None:
            self._notifier.notify(self.spec.name, action, outcome, name=name)
        return outcome


__all__ = ["ResourceSync", "DEFAULT_FETCH_RETRIES"]
