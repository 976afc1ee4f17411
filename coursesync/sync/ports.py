"""
Ports for the sync layer: remote store and notification sink protocols.

Intent:
    Keep the sync core framework-agnostic. Concrete stores live in
    `coursesync.storage`; the notification sink is whatever the UI uses to
    show toasts.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Protocol

from .records import Record, ResourceSpec
from .results import StoreResult

if TYPE_CHECKING:  # pragma: no cover
    from .outcomes import Notice


class RemoteStoreProtocol(Protocol):
    """Remote relational store reached over the network.

    All primitives return `Ok`/`Err` and never raise for remote failures.
    """

    async def select(self, spec: ResourceSpec, owner_user_id: str) -> StoreResult[List[Record]]:
        ...

    async def insert(
        self,
        spec: ResourceSpec,
        owner_user_id: str,
        resource_key: str,
        secondary_key: Optional[str] = None,
    ) -> StoreResult[Record]:
        ...

    async def delete(
        self,
        spec: ResourceSpec,
        owner_user_id: str,
        resource_key: str,
        secondary_key: Optional[str] = None,
    ) -> StoreResult[int]:
        ...


class NotificationSinkProtocol(Protocol):
    """Presentation collaborator receiving user-facing notices."""

    def show(self, notice: "Notice") -> None:
        ...


__all__ = ["RemoteStoreProtocol", "NotificationSinkProtocol"]
