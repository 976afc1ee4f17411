"""
Pytest configuration and shared fakes for coursesync tests.

Why: Force AnyIO to use the asyncio backend; the sync layer schedules its
fetches on the running asyncio loop.
"""
from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from coursesync.identity_access.session_gate import SessionGate
from coursesync.storage.memory import InMemoryRecordStore
from coursesync.sync.outcomes import Notice
from coursesync.sync.records import ResourceSpec
from coursesync.sync.results import Err, ErrorKind, RemoteError


@pytest.fixture
def anyio_backend():
    return "asyncio"


class ScriptedStore:
    """In-memory store with a call log, one-shot failures and held responses.

    A held operation computes its result immediately (the snapshot the server
    would have taken) and only returns it once the test sets the event.
    """

    def __init__(self) -> None:
        self.inner = InMemoryRecordStore()
        self.calls: List[Tuple[str, str, str]] = []
        self._failures: Dict[str, RemoteError] = {}
        self._raises: Dict[str, Exception] = {}
        self._holds: Dict[str, asyncio.Event] = {}

    def hold(self, op: str) -> asyncio.Event:
        event = asyncio.Event()
        self._holds[op] = event
        return event

    def fail(self, op: str, error: Optional[RemoteError] = None) -> None:
        self._failures[op] = error or RemoteError(kind=ErrorKind.OTHER, message="boom", code="XX000")

    def raise_on(self, op: str, exc: Exception) -> None:
        self._raises[op] = exc

    def count(self, op: Optional[str] = None) -> int:
        return sum(1 for c in self.calls if op is None or c[0] == op)

    async def _respond(self, op: str, spec: ResourceSpec, owner: str, call):
        self.calls.append((op, spec.table, owner))
        if op in self._raises:
            raise self._raises.pop(op)
        failure = self._failures.pop(op, None)
        result = Err(failure) if failure is not None else await call()
        event = self._holds.pop(op, None)
        if event is not None:
            await event.wait()
        return result

    async def select(self, spec, owner_user_id):
        return await self._respond("select", spec, owner_user_id, lambda: self.inner.select(spec, owner_user_id))

    async def insert(self, spec, owner_user_id, resource_key, secondary_key=None):
        return await self._respond(
            "insert", spec, owner_user_id, lambda: self.inner.insert(spec, owner_user_id, resource_key, secondary_key)
        )

    async def delete(self, spec, owner_user_id, resource_key, secondary_key=None):
        return await self._respond(
            "delete", spec, owner_user_id, lambda: self.inner.delete(spec, owner_user_id, resource_key, secondary_key)
        )


class RecordingSink:
    def __init__(self) -> None:
        self.notices: List[Notice] = []

    def show(self, notice: Notice) -> None:
        self.notices.append(notice)


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def store() -> ScriptedStore:
    return ScriptedStore()


@pytest.fixture
def gate() -> SessionGate:
    return SessionGate()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def settle_tasks():
    return settle
