# auth/sessions.py
"""
Session issuance, validation and destruction.

Expiry is absolute from issuance: validating a session may re-save it
(refreshing last_seen_at) but never moves expires_at.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from auth.models import Role, Session, utcnow

_logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(hours=1)


class SessionManager:
    """
    Issues, validates and destroys sessions in a SessionStore.

    Example:
        manager = SessionManager(SessionStore(db))
        session = manager.issue("a@example.com", "alice", Role.USER)
        manager.validate(session.token)  # -> Session
    """

    def __init__(
        self,
        store,
        ttl: timedelta = SESSION_TTL,
        resave: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.ttl = ttl
        self.resave = resave
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def issue(self, email: str, name: str, role: Role) -> Session:
        """Create and persist a session; its token is the client credential."""
        session = Session.new(email=email, name=name, role=role, ttl=self.ttl, now=self.now())
        self.store.save(session)
        _logger.debug(f"Issued session for {email} (role={session.role.value})")
        return session

    def validate(self, token: Optional[str]) -> Optional[Session]:
        """
        Look up a session by token.

        Returns:
            The Session if present and not expired, None otherwise
        """
        if not token:
            return None

        session = self.store.get(token)
        if session is None:
            return None

        now = self.now()
        if not session.is_valid_at(now):
            self.store.delete(token)
            _logger.debug(f"Dropped expired session for {session.email}")
            return None

        if self.resave:
            session = session.touched(now)
            self.store.save(session)

        return session

    def destroy(self, token: Optional[str]) -> None:
        """Remove a session; unknown or empty tokens are ignored."""
        if token:
            self.store.delete(token)

    def revoke_all(self, email: str) -> int:
        """Remove every session belonging to email."""
        count = self.store.delete_for_email(email)
        if count:
            _logger.info(f"Revoked {count} session(s) for {email}")
        return count

    def purge_expired(self) -> int:
        return self.store.purge_expired(self.now())
