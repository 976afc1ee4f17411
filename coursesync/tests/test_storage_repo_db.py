"""
DBRecordStore against a fake psycopg, plus an optional live check.

Why: The SQL and the RLS session setup matter more than the driver; a fake
AsyncConnection lets us assert statements and error mapping without Postgres.
The live test only runs when a migrated database is reachable.
"""
from __future__ import annotations

import os
from types import SimpleNamespace
from uuid import uuid4

import pytest

from coursesync.learning.enrollments import ENROLLMENTS
from coursesync.learning.progress import LESSON_PROGRESS
from coursesync.storage import repo_db
from coursesync.sync.results import Err, ErrorKind, Ok

pytestmark = pytest.mark.anyio


class FakeUniqueViolation(Exception):
    sqlstate = "23505"


class _FakeCursor:
    def __init__(self, conn: "_FakeConnection"):
        self._conn = conn
        self.rowcount = conn.rowcount

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, statement, params=None):
        self._conn.executed.append((statement, params))
        if self._conn.error is not None and not statement.startswith("select set_config"):
            raise self._conn.error

    async def fetchall(self):
        return list(self._conn.rows)

    async def fetchone(self):
        return self._conn.rows[0] if self._conn.rows else None


class _FakeConnection:
    def __init__(self, rows=(), rowcount=0, error=None):
        self.rows = list(rows)
        self.rowcount = rowcount
        self.error = error
        self.executed: list = []
        self.committed = False
        self.dsn = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def cursor(self):
        return _FakeCursor(self)

    async def commit(self):
        self.committed = True


@pytest.fixture
def fake_db(monkeypatch):
    conn = _FakeConnection()

    async def connect(dsn):
        conn.dsn = dsn
        return conn

    monkeypatch.setattr(repo_db, "psycopg", SimpleNamespace(AsyncConnection=SimpleNamespace(connect=connect)))
    monkeypatch.setattr(repo_db, "HAVE_PSYCOPG", True)
    monkeypatch.setattr(repo_db, "UniqueViolation", FakeUniqueViolation)
    return conn


async def test_select_sets_rls_subject_first_and_orders(fake_db):
    fake_db.rows = [("e-1", "user-1", "C1", "2024-06-01T10:00:00+00:00", None)]
    store = repo_db.DBRecordStore("postgresql://app@localhost/postgres")

    result = await store.select(ENROLLMENTS, "user-1")

    assert isinstance(result, Ok)
    assert result.value[0].resource_key == "C1"
    assert result.value[0].extra == {"completed_at": None}
    assert fake_db.dsn == "postgresql://app@localhost/postgres"
    first, second = fake_db.executed
    assert first == ("select set_config('app.current_sub', %s, true)", ("user-1",))
    assert "from public.course_enrollments where user_id = %s" in second[0]
    assert second[0].endswith("order by enrolled_at desc")
    assert "id::text" in second[0]
    assert "to_char(enrolled_at at time zone 'utc'" in second[0]
    assert fake_db.committed


async def test_insert_binds_values_and_returns_row(fake_db):
    fake_db.rows = [("lp-1", "user-1", "C1", "L1", "2024-06-01T10:00:00+00:00")]
    store = repo_db.DBRecordStore("postgresql://app@localhost/postgres")

    result = await store.insert(LESSON_PROGRESS, "user-1", "C1", "L1")

    assert isinstance(result, Ok)
    assert result.value.key == ("C1", "L1")
    statement, params = fake_db.executed[1]
    assert statement.startswith("insert into public.lesson_progress (user_id, course_id, lesson_id) values (%s, %s, %s) returning ")
    assert params == ("user-1", "C1", "L1")


async def test_insert_unique_violation_is_duplicate(fake_db):
    fake_db.error = FakeUniqueViolation("duplicate key")
    store = repo_db.DBRecordStore("postgresql://app@localhost/postgres")

    result = await store.insert(ENROLLMENTS, "user-1", "C1")

    assert isinstance(result, Err)
    assert result.error.kind is ErrorKind.DUPLICATE
    assert result.error.code == "23505"


async def test_other_sqlstate_is_other(fake_db):
    class ForeignKeyViolation(Exception):
        sqlstate = "23503"

    fake_db.error = ForeignKeyViolation("fk")
    store = repo_db.DBRecordStore("postgresql://app@localhost/postgres")

    result = await store.insert(ENROLLMENTS, "user-1", "C404")

    assert isinstance(result, Err)
    assert result.error.kind is ErrorKind.OTHER
    assert result.error.code == "23503"


async def test_delete_scopes_key_and_clamps_rowcount(fake_db):
    fake_db.rowcount = -1
    store = repo_db.DBRecordStore("postgresql://app@localhost/postgres")

    result = await store.delete(LESSON_PROGRESS, "user-1", "C1", "L1")

    assert isinstance(result, Ok) and result.value == 0
    statement, params = fake_db.executed[1]
    assert statement == "delete from public.lesson_progress where user_id = %s and course_id = %s and lesson_id = %s"
    assert params == ("user-1", "C1", "L1")


def test_identifiers_are_validated():
    with pytest.raises(ValueError):
        repo_db._ident("course_enrollments; drop table x")
    assert repo_db._ident("saved_posts") == "saved_posts"


def test_dsn_resolution(monkeypatch):
    monkeypatch.delenv("COURSESYNC_DATABASE_URL", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql://from-env/postgres")
    assert repo_db._dsn() == "postgresql://from-env/postgres"

    monkeypatch.setenv("COURSESYNC_DATABASE_URL", "postgresql://override/postgres")
    assert repo_db._dsn() == "postgresql://override/postgres"

    monkeypatch.delenv("COURSESYNC_DATABASE_URL")
    monkeypatch.delenv("DATABASE_URL")
    monkeypatch.setenv("COURSESYNC_ENV", "prod")
    with pytest.raises(RuntimeError):
        repo_db._dsn()


def test_store_requires_psycopg(monkeypatch):
    monkeypatch.setattr(repo_db, "HAVE_PSYCOPG", False)
    with pytest.raises(RuntimeError):
        repo_db.DBRecordStore("postgresql://app@localhost/postgres")


def _probe_dsn(dsn: str) -> bool:
    try:
        import psycopg  # type: ignore
        with psycopg.connect(dsn, connect_timeout=1) as _:
            return True
    except Exception:
        return False


async def test_db_store_create_is_idempotent_when_db_available():
    dsn = os.getenv("DATABASE_URL") or repo_db._default_app_login_dsn()
    if not repo_db.HAVE_PSYCOPG or not _probe_dsn(dsn):
        pytest.skip("Database not reachable; apply migrations and expose limited DSN")

    store = repo_db.DBRecordStore(dsn)
    user = str(uuid4())
    course = f"course-{uuid4()}"
    first = await store.insert(ENROLLMENTS, user, course)
    if isinstance(first, Err):
        pytest.skip(f"course_enrollments not writable for test user: {first.error.code}")
    second = await store.insert(ENROLLMENTS, user, course)
    assert isinstance(second, Err) and second.error.is_duplicate
    removed = await store.delete(ENROLLMENTS, user, course)
    assert isinstance(removed, Ok) and removed.value == 1
