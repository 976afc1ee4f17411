"""
Tagged results and the error taxonomy at the remote-store boundary.

Design:
    - `Ok(value)` / `Err(error)` are returned by every store primitive so the
      duplicate-vs-other distinction is structural, not string matching.
    - `ErrorKind.DUPLICATE` is derived from SQLSTATE 23505 (unique_violation),
      reported both by PostgREST (`APIError.code`) and psycopg (`sqlstate`).
    - Exception classes name the taxonomy. `Outcome.raise_for_outcome()` maps
      blocked/failed outcomes onto them; `StaleReadRace` only signals discarded
      responses inside ResourceSync and never reaches callers.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")

UNIQUE_VIOLATION = "23505"


class ErrorKind(str, Enum):
    DUPLICATE = "duplicate"
    OTHER = "other"


@dataclass(frozen=True)
class RemoteError:
    kind: ErrorKind
    message: str = ""
    code: Optional[str] = None

    @classmethod
    def from_code(cls, code: object, message: str = "") -> "RemoteError":
        code_s = str(code) if code is not None else None
        kind = ErrorKind.DUPLICATE if code_s == UNIQUE_VIOLATION else ErrorKind.OTHER
        return cls(kind=kind, message=message, code=code_s)

    @property
    def is_duplicate(self) -> bool:
        return self.kind is ErrorKind.DUPLICATE


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: RemoteError

    @property
    def ok(self) -> bool:
        return False


StoreResult = Union[Ok[T], Err]


# ------------------------------ Errors --------------------------------------


class SyncError(Exception):
    """Base class for synchronization failures."""


class Unauthenticated(SyncError):
    """Operation attempted while no user is identified."""


class DuplicateConflict(SyncError):
    """Remote uniqueness violation; the desired record already exists."""


class RemoteFailure(SyncError):
    """Any other network or store error."""


class StaleReadRace(SyncError):
    """A response arrived after the cache moved on; it is discarded."""


__all__ = [
    "UNIQUE_VIOLATION",
    "ErrorKind",
    "RemoteError",
    "Ok",
    "Err",
    "StoreResult",
    "SyncError",
    "Unauthenticated",
    "DuplicateConflict",
    "RemoteFailure",
    "StaleReadRace",
]
