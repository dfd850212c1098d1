# auth/gate.py
"""
Request-time authorization decisions.

A request moves Anonymous -> Authenticated -> Admin-authorized depending on
the session its token resolves to. The gate only reads; it never changes
users or sessions itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from auth.models import Session
from auth.sessions import SessionManager

_logger = logging.getLogger(__name__)


class Access(str, Enum):
    """What a route requires."""

    MEMBER = "member"
    ADMIN = "admin"


class GateState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    ADMIN_AUTHORIZED = "admin_authorized"


@dataclass(frozen=True)
class GateDecision:
    state: GateState
    allowed: bool
    session: Optional[Session] = None

    @property
    def denied_as_anonymous(self) -> bool:
        return not self.allowed and self.state is GateState.ANONYMOUS

    @property
    def denied_as_member(self) -> bool:
        return not self.allowed and self.state is GateState.AUTHENTICATED


class AuthorizationGate:
    """Maps (token, required access) to an allow/deny decision."""

    def __init__(self, sessions: SessionManager):
        self.sessions = sessions

    def resolve(self, token: Optional[str]) -> GateDecision:
        """State of the request with no access requirement."""
        return self.check(token, None)

    def check(self, token: Optional[str], required: Optional[Access]) -> GateDecision:
        session = self.sessions.validate(token)

        if session is None:
            state = GateState.ANONYMOUS
        elif session.is_admin:
            state = GateState.ADMIN_AUTHORIZED
        else:
            state = GateState.AUTHENTICATED

        if required is None:
            allowed = True
        elif required is Access.MEMBER:
            allowed = state is not GateState.ANONYMOUS
        else:
            allowed = state is GateState.ADMIN_AUTHORIZED

        if not allowed:
            who = session.email if session else "anonymous"
            _logger.warning(f"Access denied: {who} requires {required.value}")

        return GateDecision(state=state, allowed=allowed, session=session)
