"""Configure pytest for the members area project."""
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# =============================================================================
# Test Environment Configuration
# =============================================================================
# Set environment for tests BEFORE any imports
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

# Add project root so tests can import app, auth and persistence
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Lowest cost bcrypt allows; keeps hashing out of the test runtime
TEST_BCRYPT_ROUNDS = 4


class FakeClock:
    """Settable UTC clock for session expiry tests."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db(tmp_path):
    """Fresh file-backed database per test."""
    from persistence.db import Database

    database = Database(tmp_path / "members.db")
    database.init_db()
    yield database
    database.close()


@pytest.fixture
def credentials(db):
    from persistence.users import CredentialStore

    return CredentialStore(db)


@pytest.fixture
def session_store(db):
    from persistence.sessions import SessionStore

    return SessionStore(db)


@pytest.fixture
def session_manager(session_store, clock):
    from auth.sessions import SessionManager

    return SessionManager(session_store, clock=clock)


@pytest.fixture
def hasher():
    from auth.password import PasswordHasher

    return PasswordHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def auth_service(credentials, hasher, session_manager):
    from app.config import DEFAULT_BOOTSTRAP_ADMIN_EMAIL
    from auth.service import AuthenticationService

    return AuthenticationService(
        credentials,
        hasher,
        session_manager,
        bootstrap_admin_email=DEFAULT_BOOTSTRAP_ADMIN_EMAIL,
    )


@pytest.fixture
def test_config(tmp_path):
    """AppConfig pointing at a temp database with cheap hashing."""
    from app.config import AppConfig

    return AppConfig(
        environment="test",
        db_path=str(tmp_path / "app.db"),
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
    )
