# persistence/users.py
"""
Credential store: durable user records keyed by email.

Email uniqueness is enforced by the primary key on users.email, so two
concurrent signups for the same address cannot both insert.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import List, Optional

from auth.errors import DuplicateEmailError, NotFoundError, RoleConflictError
from auth.models import Role, User, utcnow
from persistence.db import Database

_logger = logging.getLogger(__name__)


def _row_to_user(row) -> User:
    """Convert a database row to a User object."""
    return User(
        email=row["email"],
        name=row["name"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class CredentialStore:
    """Reads and writes the users table."""

    def __init__(self, db: Database):
        self._db = db

    def find_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email address.

        Returns:
            User if found, None otherwise
        """
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?",
                (email,),
            ).fetchone()

        if not row:
            return None

        return _row_to_user(row)

    def insert(self, user: User) -> User:
        """
        Insert a new user.

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        try:
            with self._db.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO users (email, name, password_hash, role, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user.email,
                        user.name,
                        user.password_hash,
                        user.role.value,
                        user.created_at.isoformat(),
                        user.updated_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateEmailError(f"User with email {user.email} already exists") from e

        _logger.info(f"Stored user: {user.email}")
        return user

    def update_role(self, email: str, new_role: Role, expected: Optional[Role] = None) -> User:
        """
        Set a user's role.

        Args:
            email: User to update
            new_role: Role to store
            expected: If given, only update when the stored role equals it

        Returns:
            The updated User

        Raises:
            NotFoundError: If no user has this email
            RoleConflictError: If expected is given and does not match
        """
        new_role = Role(new_role)
        query = "UPDATE users SET role = ?, updated_at = ? WHERE email = ?"
        params = [new_role.value, utcnow().isoformat(), email]
        if expected is not None:
            query += " AND role = ?"
            params.append(Role(expected).value)

        with self._db.connect() as conn:
            updated = conn.execute(query, params).rowcount
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()

        if row is None:
            raise NotFoundError(f"No user with email {email}")
        if updated == 0:
            raise RoleConflictError(
                f"Role of {email} is {row['role']}, expected {Role(expected).value}"
            )

        return _row_to_user(row)

    def list_users(self) -> List[User]:
        """All users, oldest first."""
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM users ORDER BY created_at, email"
            ).fetchall()
        return [_row_to_user(row) for row in rows]

    def count(self, email: Optional[str] = None) -> int:
        """Number of users, optionally restricted to one email."""
        with self._db.connect() as conn:
            if email is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM users WHERE email = ?", (email,)
                ).fetchone()
        return row["n"]
