"""Instructors followed by the signed-in user."""
from __future__ import annotations

from typing import Optional, Tuple

from coursesync.identity_access.session_gate import SessionGate
from coursesync.sync.outcomes import Notifier, Outcome
from coursesync.sync.ports import RemoteStoreProtocol
from coursesync.sync.records import Record, ResourceSpec
from coursesync.sync.resource import DEFAULT_FETCH_RETRIES, ResourceSync

INSTRUCTOR_FOLLOWS = ResourceSpec(
    name="instructor_follow",
    table="instructor_follows",
    key_column="instructor_id",
)


class InstructorFollows:
    def __init__(
        self,
        store: RemoteStoreProtocol,
        gate: SessionGate,
        *,
        notifier: Optional[Notifier] = None,
        fetch_retries: int = DEFAULT_FETCH_RETRIES,
    ) -> None:
        self.sync = ResourceSync(INSTRUCTOR_FOLLOWS, store, gate, notifier=notifier, fetch_retries=fetch_retries)

    @property
    def records(self) -> Tuple[Record, ...]:
        return self.sync.records

    @property
    def loading(self) -> bool:
        return self.sync.loading

    async def follow(self, instructor_id: str, instructor_name: Optional[str] = None) -> Outcome:
        """Follow an instructor; the cache keeps the stored row as returned by the server."""
        return await self.sync.create(instructor_id, name=instructor_name)

    async def unfollow(self, instructor_id: str, instructor_name: Optional[str] = None) -> Outcome:
        return await self.sync.remove(instructor_id, name=instructor_name)

    def is_following(self, instructor_id: str) -> bool:
        return self.sync.is_member(instructor_id)

    def follow_count(self) -> int:
        return self.sync.count()

    async def refetch(self) -> None:
        await self.sync.refetch()


__all__ = ["INSTRUCTOR_FOLLOWS", "InstructorFollows"]
