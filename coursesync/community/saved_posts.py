"""
Blog posts saved by the signed-in user.

`toggle` decides between save and unsave from the cached set; the remote
uniqueness constraint still arbitrates when the cache is behind (a save of
an already saved post reports already-done).
"""
from __future__ import annotations

from typing import Optional, Tuple

from coursesync.identity_access.session_gate import SessionGate
from coursesync.sync.outcomes import Notifier, Outcome
from coursesync.sync.ports import RemoteStoreProtocol
from coursesync.sync.records import Record, ResourceSpec
from coursesync.sync.resource import DEFAULT_FETCH_RETRIES, ResourceSync

SAVED_POSTS = ResourceSpec(
    name="saved_post",
    table="saved_posts",
    key_column="post_id",
)


class SavedPosts:
    def __init__(
        self,
        store: RemoteStoreProtocol,
        gate: SessionGate,
        *,
        notifier: Optional[Notifier] = None,
        fetch_retries: int = DEFAULT_FETCH_RETRIES,
    ) -> None:
        self.sync = ResourceSync(SAVED_POSTS, store, gate, notifier=notifier, fetch_retries=fetch_retries)

    @property
    def records(self) -> Tuple[Record, ...]:
        return self.sync.records

    @property
    def post_ids(self) -> Tuple[str, ...]:
        return tuple(r.resource_key for r in self.sync.records)

    @property
    def loading(self) -> bool:
        return self.sync.loading

    async def save(self, post_id: str) -> Outcome:
        return await self.sync.create(post_id)

    async def unsave(self, post_id: str) -> Outcome:
        return await self.sync.remove(post_id)

    async def toggle(self, post_id: str) -> Outcome:
        if self.is_saved(post_id):
            return await self.unsave(post_id)
        return await self.save(post_id)

    def is_saved(self, post_id: str) -> bool:
        return self.sync.is_member(post_id)

    async def refetch(self) -> None:
        await self.sync.refetch()


__all__ = ["SAVED_POSTS", "SavedPosts"]
