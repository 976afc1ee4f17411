"""
Role assignments of the signed-in user.

Behavior:
    - Read-only from the client: roles are granted server-side, so only
      fetching and predicates are exposed.
    - Fails closed: a failed fetch empties the cached roles so stale
      privileges are never reported.
    - Unknown role names stored remotely are cached but never match a
      predicate; `roles` only lists known roles.
"""
from __future__ import annotations

from typing import Optional, Tuple

from coursesync.sync import views
from coursesync.sync.outcomes import Notifier
from coursesync.sync.ports import RemoteStoreProtocol
from coursesync.sync.resource import DEFAULT_FETCH_RETRIES, ResourceSync
from coursesync.sync.records import ResourceSpec

from .domain import ALLOWED_ROLES, AppRole, normalize_role
from .session_gate import SessionGate

USER_ROLES = ResourceSpec(
    name="role_assignment",
    table="user_roles",
    key_column="role",
    unique=False,
    clear_on_fetch_error=True,
)


class UserRoles:
    def __init__(
        self,
        store: RemoteStoreProtocol,
        gate: SessionGate,
        *,
        notifier: Optional[Notifier] = None,
        fetch_retries: int = DEFAULT_FETCH_RETRIES,
    ) -> None:
        self.sync = ResourceSync(USER_ROLES, store, gate, notifier=notifier, fetch_retries=fetch_retries)

    @property
    def roles(self) -> Tuple[AppRole, ...]:
        return tuple(AppRole(r.resource_key) for r in self.sync.records if r.resource_key in ALLOWED_ROLES)

    @property
    def loading(self) -> bool:
        return self.sync.loading

    def has_role(self, role: object) -> bool:
        return views.has_role(self.sync.records, normalize_role(role))

    @property
    def is_admin(self) -> bool:
        return self.has_role(AppRole.ADMIN)

    @property
    def is_instructor(self) -> bool:
        return self.has_role(AppRole.INSTRUCTOR)

    @property
    def is_student(self) -> bool:
        return self.has_role(AppRole.STUDENT)

    async def refetch(self) -> None:
        await self.sync.refetch()


__all__ = ["USER_ROLES", "UserRoles"]
