# auth/models.py
"""
User and Session models for authentication.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
import secrets


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Access level of a user."""

    USER = "user"
    ADMIN = "admin"

    def flipped(self) -> Role:
        return Role.ADMIN if self is Role.USER else Role.USER


@dataclass
class User:
    """
    User account model.

    Attributes:
        email: User's email (unique, used for login)
        name: Display name (alphanumeric)
        password_hash: Bcrypt-hashed password
        role: Access level (user or admin)
        created_at: Account creation timestamp
        updated_at: Last update timestamp (role changes)
    """
    email: str
    name: str
    password_hash: str
    role: Role = Role.USER
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(cls, email: str, name: str, password_hash: str, role: Role = Role.USER) -> User:
        """Create a new user record stamped with the current time."""
        now = utcnow()
        return cls(
            email=email,
            name=name,
            password_hash=password_hash,
            role=Role(role),
            created_at=now,
            updated_at=now,
        )


@dataclass
class Session:
    """
    Server-side session model.

    The role is a snapshot taken when the session was issued; it is not
    re-read from the users table afterwards.

    Attributes:
        token: Opaque random identifier (cookie value, storage key)
        email: Identity email
        name: Identity display name
        role: Role at issuance
        created_at: Issue timestamp
        expires_at: Absolute expiry, never extended
        last_seen_at: Refreshed each time the session is re-saved
        authenticated: Always True for a stored session
    """
    token: str
    email: str
    name: str
    role: Role
    created_at: datetime
    expires_at: datetime
    last_seen_at: datetime
    authenticated: bool = True

    @classmethod
    def new(cls, email: str, name: str, role: Role, ttl: timedelta, now: datetime) -> Session:
        """Create a new session with a cryptographically random token."""
        return cls(
            token=secrets.token_urlsafe(32),
            email=email,
            name=name,
            role=Role(role),
            created_at=now,
            expires_at=now + ttl,
            last_seen_at=now,
        )

    def is_valid_at(self, now: datetime) -> bool:
        """A session is valid strictly before its expiry."""
        return self.authenticated and now < self.expires_at

    def touched(self, now: datetime) -> Session:
        """Copy with a refreshed last_seen_at; expiry is unchanged."""
        return replace(self, last_seen_at=now)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
