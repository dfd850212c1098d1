# persistence/sessions.py
"""
Session store: durable key/value store of sessions keyed by token.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from auth.models import Role, Session
from persistence.db import Database

_logger = logging.getLogger(__name__)


def _row_to_session(row) -> Session:
    return Session(
        token=row["token"],
        authenticated=bool(row["authenticated"]),
        email=row["email"],
        name=row["name"],
        role=Role(row["role"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        expires_at=datetime.fromisoformat(row["expires_at"]),
        last_seen_at=datetime.fromisoformat(row["last_seen_at"]),
    )


class SessionStore:
    """Reads and writes the sessions table."""

    def __init__(self, db: Database):
        self._db = db

    def save(self, session: Session) -> None:
        """Insert or overwrite the session stored under its token."""
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO sessions
                    (token, authenticated, email, name, role, created_at, expires_at, last_seen_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(token) DO UPDATE SET
                    authenticated = excluded.authenticated,
                    email = excluded.email,
                    name = excluded.name,
                    role = excluded.role,
                    expires_at = excluded.expires_at,
                    last_seen_at = excluded.last_seen_at
                """,
                (
                    session.token,
                    int(session.authenticated),
                    session.email,
                    session.name,
                    session.role.value,
                    session.created_at.isoformat(),
                    session.expires_at.isoformat(),
                    session.last_seen_at.isoformat(),
                ),
            )

    def get(self, token: str) -> Optional[Session]:
        """Session stored under token, expired or not."""
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM sessions WHERE token = ?",
                (token,),
            ).fetchone()

        if not row:
            return None

        return _row_to_session(row)

    def delete(self, token: str) -> bool:
        """
        Delete a session.

        Returns:
            True if deleted, False if not found
        """
        with self._db.connect() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
            return cursor.rowcount > 0

    def delete_for_email(self, email: str) -> int:
        """Delete every session of one user; returns how many."""
        with self._db.connect() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE email = ?", (email,))
            return cursor.rowcount

    def purge_expired(self, now: datetime) -> int:
        """Remove sessions whose expiry is at or before now."""
        with self._db.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM sessions WHERE expires_at <= ?",
                (now.isoformat(),),
            )
            count = cursor.rowcount

        if count > 0:
            _logger.info(f"Cleaned up {count} expired sessions")

        return count

    def count(self) -> int:
        with self._db.connect() as conn:
            return conn.execute("SELECT COUNT(*) AS n FROM sessions").fetchone()["n"]
