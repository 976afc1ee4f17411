"""
Unit tests for the record cache and the pure derived views.

These keep the scope narrow (no store, no session) and check the invariants
the resources rely on: owner scoping, one record per key, and the rounding
rule for progress percentages.
"""
from __future__ import annotations

import pytest

from coursesync.sync import views
from coursesync.sync.cache import RecordCache
from coursesync.sync.records import Record


def _rec(rid: str, key: str, secondary: str | None = None, owner: str = "u-1") -> Record:
    return Record(id=rid, owner_user_id=owner, resource_key=key, secondary_key=secondary)


def test_replace_drops_rows_of_other_owners_and_duplicate_keys():
    cache = RecordCache()
    cache.reset("u-1")
    cache.replace([_rec("1", "C1"), _rec("2", "C2", owner="u-2"), _rec("3", "C1")])
    assert [r.id for r in cache.snapshot()] == ["1"]


def test_add_keeps_one_record_per_key_and_can_prepend():
    cache = RecordCache()
    cache.reset("u-1")
    cache.add(_rec("1", "C1"))
    cache.add(_rec("2", "C2"), first=True)
    cache.add(_rec("3", "C1"))
    assert [r.id for r in cache.snapshot()] == ["2", "3"]


def test_add_is_rejected_while_anonymous():
    cache = RecordCache()
    cache.add(_rec("1", "C1"))
    assert len(cache) == 0


def test_discard_matches_by_key_not_id():
    cache = RecordCache()
    cache.reset("u-1")
    cache.replace([_rec("1", "C1", "L1"), _rec("2", "C1", "L2"), _rec("3", "C2", "L1")])
    assert cache.discard("C1", "L2") == 1
    assert [r.id for r in cache.snapshot()] == ["1", "3"]
    assert cache.discard("C1") == 1
    assert cache.discard("missing") == 0
    assert [r.id for r in cache.snapshot()] == ["3"]


def test_reset_rebinds_owner_and_empties():
    cache = RecordCache()
    cache.reset("u-1")
    cache.add(_rec("1", "C1"))
    cache.reset("u-2")
    assert cache.owner_user_id == "u-2"
    assert cache.snapshot() == ()


@pytest.mark.parametrize(
    "completed,total,expected",
    [
        (3, 0, 0),
        (0, 10, 0),
        (3, 10, 30),
        (1, 3, 33),
        (2, 3, 67),
        (2, 4, 50),
        (1, 8, 13),  # 12.5 rounds half up
        (1, 200, 1),  # 0.5 rounds half up
        (5, 4, 100),
        (2, -1, 0),
    ],
)
def test_progress_percentage(completed, total, expected):
    assert views.progress_percentage(completed, total) == expected


def test_membership_and_counts_with_partial_keys():
    records = [_rec("1", "C1", "L1"), _rec("2", "C1", "L2"), _rec("3", "C2", "L1")]
    assert views.is_member(records, "C1")
    assert views.is_member(records, "C1", "L2")
    assert not views.is_member(records, "C2", "L2")
    assert views.count(records) == 3
    assert views.count(records, "C1") == 2
    assert views.count(records, "C9") == 0


def test_has_role():
    records = [_rec("1", "admin")]
    assert views.has_role(records, "admin")
    assert not views.has_role(records, "student")
