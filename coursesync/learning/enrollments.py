"""
Course enrollments of the signed-in learner.

Behavior:
    - Rows are fetched newest first (`enrolled_at desc`); new enrollments are
      placed at the front of the cache.
    - Enrolling twice reports already-done, never an error.
    - `completed_at` is carried in `Record.extra` and splits enrollments into
      in-progress and completed.
"""
from __future__ import annotations

from typing import Optional, Tuple

from coursesync.identity_access.session_gate import SessionGate
from coursesync.sync.outcomes import Notifier, Outcome
from coursesync.sync.ports import RemoteStoreProtocol
from coursesync.sync.records import Record, ResourceSpec
from coursesync.sync.resource import DEFAULT_FETCH_RETRIES, ResourceSync

ENROLLMENTS = ResourceSpec(
    name="enrollment",
    table="course_enrollments",
    key_column="course_id",
    created_column="enrolled_at",
    order_created_desc=True,
    extra_columns=("completed_at",),
)


def is_completed(record: Record) -> bool:
    return bool(record.extra.get("completed_at"))


class Enrollments:
    def __init__(
        self,
        store: RemoteStoreProtocol,
        gate: SessionGate,
        *,
        notifier: Optional[Notifier] = None,
        fetch_retries: int = DEFAULT_FETCH_RETRIES,
    ) -> None:
        self.sync = ResourceSync(ENROLLMENTS, store, gate, notifier=notifier, fetch_retries=fetch_retries)

    @property
    def records(self) -> Tuple[Record, ...]:
        return self.sync.records

    @property
    def loading(self) -> bool:
        return self.sync.loading

    async def enroll(self, course_id: str) -> Outcome:
        return await self.sync.create(course_id)

    async def unenroll(self, course_id: str) -> Outcome:
        return await self.sync.remove(course_id)

    def is_enrolled(self, course_id: str) -> bool:
        return self.sync.is_member(course_id)

    def in_progress(self) -> Tuple[Record, ...]:
        return tuple(r for r in self.sync.records if not is_completed(r))

    def completed(self) -> Tuple[Record, ...]:
        return tuple(r for r in self.sync.records if is_completed(r))

    async def refetch(self) -> None:
        await self.sync.refetch()


__all__ = ["ENROLLMENTS", "Enrollments", "is_completed"]
