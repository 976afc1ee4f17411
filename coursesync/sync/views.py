"""Pure derived views over cached records. No network access, ever."""
from __future__ import annotations

from typing import Iterable, Optional

from .records import Record


def is_member(records: Iterable[Record], resource_key: str, secondary_key: Optional[str] = None) -> bool:
    return any(r.matches(resource_key, secondary_key) for r in records)


def count(records: Iterable[Record], resource_key: Optional[str] = None) -> int:
    if resource_key is None:
        return sum(1 for _ in records)
    return sum(1 for r in records if r.resource_key == resource_key)


def progress_percentage(completed: int, total_units: int) -> int:
    """Return round-half-up of 100 * completed / total_units, clamped to 0..100.

    Integer arithmetic avoids float artefacts at .5 boundaries.
    """
    total = int(total_units)
    if total <= 0:
        return 0
    done = max(0, int(completed))
    pct = (200 * done + total) // (2 * total)
    return max(0, min(100, pct))


def has_role(records: Iterable[Record], role: str) -> bool:
    return any(r.resource_key == role for r in records)


__all__ = ["is_member", "count", "progress_percentage", "has_role"]
