"""Tests for persistence layer."""

import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from auth.errors import DuplicateEmailError, NotFoundError, RoleConflictError
from auth.models import Role, Session, User
from persistence.db import Database, StorageError

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _user(email="alice@example.com", name="alice", role=Role.USER):
    return User.new(email=email, name=name, password_hash="$2b$04$hash", role=role)


def _session(email="alice@example.com", now=NOW, ttl=timedelta(hours=1)):
    return Session.new(email=email, name="alice", role=Role.USER, ttl=ttl, now=now)


class TestDatabaseInit:
    """Test database initialization."""

    def test_init_creates_tables(self, db):
        with db.connect() as conn:
            tables = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
            }
        assert {"users", "sessions"} <= tables

    def test_init_is_idempotent(self, db):
        db.init_db()
        db.init_db()

    def test_constructor_does_not_touch_disk(self, tmp_path):
        path = tmp_path / "nested" / "members.db"
        Database(path)
        assert not path.exists()

    def test_first_use_creates_file(self, tmp_path):
        path = tmp_path / "nested" / "members.db"
        database = Database(path)
        with database.connect() as conn:
            conn.execute("SELECT 1")
        assert path.exists()
        database.close()

    def test_close_reaches_connections_of_other_threads(self, db, credentials):
        opened = []

        def use():
            credentials.count()
            opened.append(db._get_connection())

        threads = [threading.Thread(target=use) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        db.close()

        assert len(opened) == 3
        for conn in opened:
            with pytest.raises(sqlite3.ProgrammingError):
                conn.execute("SELECT 1")

    def test_use_after_close_reconnects(self, db, credentials):
        credentials.insert(_user())
        db.close()

        assert credentials.find_by_email("alice@example.com") is not None

    def test_reset_drops_tables(self, db):
        db.reset()
        with db.connect() as conn:
            count = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
        assert count == 0

    def test_rollback_on_error(self, db, credentials):
        with pytest.raises(RuntimeError):
            with db.connect() as conn:
                conn.execute(
                    "INSERT INTO users (email, name, password_hash, role, created_at, updated_at)"
                    " VALUES ('x@example.com', 'x', 'h', 'user', 'now', 'now')"
                )
                raise RuntimeError("boom")
        assert credentials.find_by_email("x@example.com") is None

    def test_sqlite_error_becomes_storage_error(self, db, credentials):
        broken = MagicMock()
        broken.execute.side_effect = sqlite3.OperationalError("disk I/O error")

        with patch.object(Database, "_get_connection", return_value=broken):
            with pytest.raises(StorageError):
                credentials.find_by_email("alice@example.com")
        broken.rollback.assert_called_once()

    def test_role_check_constraint(self, db):
        with pytest.raises(sqlite3.IntegrityError):
            with db.connect() as conn:
                conn.execute(
                    "INSERT INTO users (email, name, password_hash, role, created_at, updated_at)"
                    " VALUES ('x@example.com', 'x', 'h', 'root', 'now', 'now')"
                )


class TestCredentialStore:
    def test_insert_and_find(self, credentials):
        credentials.insert(_user())

        user = credentials.find_by_email("alice@example.com")
        assert user.name == "alice"
        assert user.role is Role.USER
        assert user.password_hash == "$2b$04$hash"

    def test_find_missing(self, credentials):
        assert credentials.find_by_email("nobody@example.com") is None

    def test_email_is_case_sensitive(self, credentials):
        credentials.insert(_user())
        assert credentials.find_by_email("Alice@example.com") is None

    def test_duplicate_insert_rejected(self, credentials):
        credentials.insert(_user())

        with pytest.raises(DuplicateEmailError):
            credentials.insert(_user(name="impostor"))
        assert credentials.count("alice@example.com") == 1
        assert credentials.find_by_email("alice@example.com").name == "alice"

    def test_concurrent_inserts_keep_one_row(self, credentials):
        barrier = threading.Barrier(8)
        outcomes = []
        lock = threading.Lock()

        def insert(i):
            barrier.wait()
            try:
                credentials.insert(_user(name=f"racer{i}"))
                result = "ok"
            except DuplicateEmailError:
                result = "dup"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=insert, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("dup") == 7
        assert credentials.count("alice@example.com") == 1

    def test_update_role(self, credentials):
        credentials.insert(_user())

        updated = credentials.update_role("alice@example.com", Role.ADMIN)
        assert updated.role is Role.ADMIN
        assert credentials.find_by_email("alice@example.com").role is Role.ADMIN

    def test_update_role_bumps_updated_at(self, credentials):
        created = credentials.insert(_user())

        updated = credentials.update_role("alice@example.com", Role.ADMIN)
        assert updated.updated_at >= created.updated_at
        assert updated.created_at == created.created_at

    def test_update_role_missing_user(self, credentials):
        with pytest.raises(NotFoundError):
            credentials.update_role("nobody@example.com", Role.ADMIN)

    def test_update_role_expected_mismatch(self, credentials):
        credentials.insert(_user(role=Role.ADMIN))

        with pytest.raises(RoleConflictError):
            credentials.update_role("alice@example.com", Role.ADMIN, expected=Role.USER)
        assert credentials.find_by_email("alice@example.com").role is Role.ADMIN

    def test_update_role_expected_match(self, credentials):
        credentials.insert(_user())

        updated = credentials.update_role("alice@example.com", Role.ADMIN, expected=Role.USER)
        assert updated.role is Role.ADMIN

    def test_list_users(self, credentials):
        credentials.insert(_user("a@example.com", "a"))
        credentials.insert(_user("b@example.com", "b", Role.ADMIN))

        users = credentials.list_users()
        assert [u.email for u in users] == ["a@example.com", "b@example.com"]
        assert users[1].role is Role.ADMIN
        assert credentials.count() == 2


class TestSessionStore:
    def test_save_and_get(self, session_store):
        session = _session()
        session_store.save(session)

        stored = session_store.get(session.token)
        assert stored == session

    def test_get_missing(self, session_store):
        assert session_store.get("missing") is None

    def test_save_is_upsert(self, session_store):
        session = _session()
        session_store.save(session)
        session_store.save(session.touched(NOW + timedelta(minutes=5)))

        assert session_store.count() == 1
        assert session_store.get(session.token).last_seen_at == NOW + timedelta(minutes=5)

    def test_get_returns_expired_sessions(self, session_store):
        """Expiry is the manager's call, not the store's."""
        session = _session(now=NOW - timedelta(hours=3))
        session_store.save(session)
        assert session_store.get(session.token) is not None

    def test_delete(self, session_store):
        session = _session()
        session_store.save(session)

        assert session_store.delete(session.token) is True
        assert session_store.delete(session.token) is False

    def test_delete_for_email(self, session_store):
        for _ in range(3):
            session_store.save(_session())
        session_store.save(_session(email="bob@example.com"))

        assert session_store.delete_for_email("alice@example.com") == 3
        assert session_store.count() == 1

    def test_purge_expired(self, session_store):
        expired = _session(now=NOW - timedelta(hours=2))
        at_boundary = _session(now=NOW - timedelta(hours=1))
        live = _session(now=NOW)
        for s in (expired, at_boundary, live):
            session_store.save(s)

        assert session_store.purge_expired(NOW) == 2
        assert session_store.get(live.token) is not None
