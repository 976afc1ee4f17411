"""
Role assignments: predicates, unknown roles and fail-closed fetching.
"""
from __future__ import annotations

import pytest

from coursesync.identity_access.domain import AppRole, normalize_role
from coursesync.identity_access.roles import USER_ROLES, UserRoles

pytestmark = pytest.mark.anyio


async def _roles(store, gate) -> UserRoles:
    roles = UserRoles(store, gate)
    gate.update(current_user="user-1", session_loading=False)
    await roles.sync.wait_idle()
    return roles


async def test_role_predicates(store, gate):
    store.inner.seed(USER_ROLES, "user-1", "admin")
    store.inner.seed(USER_ROLES, "user-1", "student")
    store.inner.seed(USER_ROLES, "user-2", "instructor")
    roles = await _roles(store, gate)

    assert roles.is_admin
    assert roles.is_student
    assert not roles.is_instructor
    assert roles.has_role("ADMIN")
    assert roles.has_role(AppRole.STUDENT)
    assert set(roles.roles) == {AppRole.ADMIN, AppRole.STUDENT}


async def test_unknown_remote_roles_are_ignored_by_predicates(store, gate):
    store.inner.seed(USER_ROLES, "user-1", "superuser")
    roles = await _roles(store, gate)
    assert roles.roles == ()
    assert not roles.is_admin
    with pytest.raises(ValueError):
        roles.has_role("superuser")


async def test_failed_role_fetch_fails_closed(store, gate):
    store.inner.seed(USER_ROLES, "user-1", "admin")
    roles = await _roles(store, gate)
    assert roles.is_admin

    store.fail("select")
    await roles.refetch()

    assert not roles.is_admin
    assert roles.loading is False


async def test_roles_are_empty_while_anonymous(store, gate):
    store.inner.seed(USER_ROLES, "user-1", "admin")
    roles = await _roles(store, gate)
    gate.sign_out()
    assert roles.roles == ()
    assert not roles.is_admin


def test_normalize_role_rejects_unknown_values():
    assert normalize_role(" Instructor ") == "instructor"
    with pytest.raises(ValueError):
        normalize_role("moderator")
    with pytest.raises(ValueError):
        normalize_role(None)
