"""
All user-scoped resources wired against one session gate and store.

Usage:
    config = load_sync_config()
    gate = SessionGate()
    store = await build_remote_store(config)
    hooks = UserDataHooks.from_config(store, gate, config, sink=my_toast_sink)
    gate.update(current_user="user-1", session_loading=False)
    await hooks.wait_idle()
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from coursesync.community.follows import InstructorFollows
from coursesync.community.saved_posts import SavedPosts
from coursesync.config import SyncConfig
from coursesync.identity_access.roles import UserRoles
from coursesync.identity_access.session_gate import SessionGate
from coursesync.learning.progress import CourseProgress
from coursesync.sync.outcomes import Notifier
from coursesync.sync.ports import NotificationSinkProtocol, RemoteStoreProtocol
from coursesync.sync.resource import DEFAULT_FETCH_RETRIES


@dataclass
class UserDataHooks:
    gate: SessionGate
    progress: CourseProgress
    follows: InstructorFollows
    saved_posts: SavedPosts
    roles: UserRoles

    @classmethod
    def build(
        cls,
        store: RemoteStoreProtocol,
        gate: SessionGate,
        *,
        sink: Optional[NotificationSinkProtocol] = None,
        fetch_retries: int = DEFAULT_FETCH_RETRIES,
    ) -> "UserDataHooks":
        notifier = Notifier(sink) if sink is not None else None
        kwargs = {"notifier": notifier, "fetch_retries": fetch_retries}
        return cls(
            gate=gate,
            progress=CourseProgress(store, gate, **kwargs),
            follows=InstructorFollows(store, gate, **kwargs),
            saved_posts=SavedPosts(store, gate, **kwargs),
            roles=UserRoles(store, gate, **kwargs),
        )

    @classmethod
    def from_config(
        cls,
        store: RemoteStoreProtocol,
        gate: SessionGate,
        config: SyncConfig,
        *,
        sink: Optional[NotificationSinkProtocol] = None,
    ) -> "UserDataHooks":
        """Build with the fetch retry bound from `COURSESYNC_FETCH_RETRIES`."""
        return cls.build(store, gate, sink=sink, fetch_retries=config.fetch_retries)

    @property
    def loading(self) -> bool:
        return (
            self.progress.loading
            or self.follows.loading
            or self.saved_posts.loading
            or self.roles.loading
        )

    async def refetch(self) -> None:
        await asyncio.gather(
            self.progress.refetch(),
            self.follows.refetch(),
            self.saved_posts.refetch(),
            self.roles.refetch(),
        )

    async def wait_idle(self) -> None:
        await asyncio.gather(
            self.progress.wait_idle(),
            self.follows.sync.wait_idle(),
            self.saved_posts.sync.wait_idle(),
            self.roles.sync.wait_idle(),
        )

    def close(self) -> None:
        self.progress.close()
        self.follows.sync.close()
        self.saved_posts.sync.close()
        self.roles.sync.close()


__all__ = ["UserDataHooks"]
