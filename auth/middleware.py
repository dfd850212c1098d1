# auth/middleware.py
"""
FastAPI glue for the authorization gate.

Provides:
- Session cookie handling
- Dependencies that run the gate for a route and raise Unauthenticated or
  Unauthorized (turned into a redirect / 403 page by the app)
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request, Response

from auth.errors import Unauthenticated, Unauthorized
from auth.gate import Access, AuthorizationGate, GateDecision
from auth.models import Session

# Cookie configuration
SESSION_COOKIE_NAME = "members_session"
SESSION_COOKIE_MAX_AGE = 60 * 60  # 1 hour in seconds


def get_session_token(request: Request) -> Optional[str]:
    """Extract session token from request cookies."""
    return request.cookies.get(SESSION_COOKIE_NAME)


def set_session_cookie(
    response: Response,
    token: str,
    max_age: int = SESSION_COOKIE_MAX_AGE,
    secure: bool = False,
) -> None:
    """
    Set session cookie on response.

    The server-side expiry is authoritative; max_age only keeps the browser
    from sending a token that is already dead.
    """
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=max_age,
        httponly=True,  # Prevent JS access
        samesite="lax",  # CSRF protection
        secure=secure,
    )


def clear_session_cookie(response: Response) -> None:
    """Clear session cookie from response."""
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        httponly=True,
        samesite="lax",
    )


def get_gate(request: Request) -> AuthorizationGate:
    return request.app.state.gate


def get_decision(request: Request) -> GateDecision:
    """
    FastAPI dependency: gate state of the request with no requirement.

    Never raises; anonymous requests get an ANONYMOUS decision.
    """
    return get_gate(request).resolve(get_session_token(request))


def require_access(required: Access):
    """
    Factory for access requirement dependencies.

    The returned checker is a plain function: resolving the session reads
    and may write the session store, so FastAPI runs it in its threadpool.

    Usage:
        @router.get("/admin")
        def admin(session: Session = Depends(require_access(Access.ADMIN))):
            ...
    """

    def check_access(request: Request) -> Session:
        decision = get_gate(request).check(get_session_token(request), required)
        if decision.denied_as_anonymous:
            raise Unauthenticated("Authentication required")
        if decision.denied_as_member:
            raise Unauthorized("Not Authorized")
        return decision.session

    return check_access


require_member = require_access(Access.MEMBER)
require_admin = require_access(Access.ADMIN)

