# auth/roles.py
"""
Role administration: flip a user between the user and admin roles.

Callers must already hold an admin-authorized session; the web layer
enforces that with the require_admin dependency before calling in here.

A toggle request arrives as a plain link, so each link carries an HMAC of
its target and expected role, keyed by the admin's own session token. A
link crafted elsewhere cannot carry a valid signature.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Optional

from auth.errors import NotFoundError
from auth.models import Role
from auth.sessions import SessionManager

_logger = logging.getLogger(__name__)


def sign_toggle(key: str, email: str, role: Role) -> str:
    """HMAC-SHA256 over (email, role), hex encoded."""
    message = f"{email}\n{Role(role).value}".encode("utf-8")
    return hmac.new(key.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_toggle(key: str, email: str, role: Role, signature: str) -> bool:
    if not key or not signature:
        return False
    expected = sign_toggle(key, email, role).encode("ascii")
    return hmac.compare_digest(expected, signature.encode("utf-8"))


class RoleAdministration:
    """
    Toggles stored roles.

    Sessions snapshot the role at login. With revoke_sessions set, the
    target's sessions are dropped after a flip so the new role applies at
    their next login; without it, existing sessions keep the old role
    until they expire.
    """

    def __init__(
        self,
        credentials,
        sessions: Optional[SessionManager] = None,
        revoke_sessions: bool = True,
    ):
        self.credentials = credentials
        self.sessions = sessions
        self.revoke_sessions = revoke_sessions

    def toggle_role(self, email: str, expected_role: Optional[Role] = None) -> Role:
        """
        Flip a user's role between user and admin.

        Args:
            email: Target user
            expected_role: Role the caller believes is stored; the flip is
                refused if it has changed in the meantime

        Returns:
            The new role

        Raises:
            NotFoundError: If no user has this email
            RoleConflictError: If expected_role no longer matches
        """
        if expected_role is None:
            user = self.credentials.find_by_email(email)
            if user is None:
                raise NotFoundError(f"No user with email {email}")
            expected_role = user.role

        expected_role = Role(expected_role)
        updated = self.credentials.update_role(email, expected_role.flipped(), expected=expected_role)

        _logger.info(f"Role of {email} changed {expected_role.value} -> {updated.role.value}")

        if self.revoke_sessions and self.sessions is not None:
            self.sessions.revoke_all(email)

        return updated.role
