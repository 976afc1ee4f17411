"""
Identity domain constants and simple helpers.

Why:
- Centralize allowed roles to avoid drift between the role resource and callers.
"""

from __future__ import annotations

from enum import Enum


class AppRole(str, Enum):
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"


# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset(r.value for r in AppRole)


def normalize_role(role: object) -> str:
    value = role.value if isinstance(role, AppRole) else str(role or "").strip().lower()
    if value not in ALLOWED_ROLES:
        raise ValueError("invalid_role")
    return value


__all__ = ["AppRole", "ALLOWED_ROLES", "normalize_role"]
