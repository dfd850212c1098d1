# auth/errors.py
"""
Authentication and authorization errors.

Every error here is a business outcome that the web layer turns into a
redirect or a rendered page. Storage failures live in persistence.db.
"""

from __future__ import annotations

from typing import Optional


class AuthError(Exception):
    """Base authentication error."""
    pass


class ValidationError(AuthError):
    """Malformed email, name or password."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Invalid email or password."""
    pass


class DuplicateEmailError(AuthError):
    """User with this email already exists."""
    pass


class NotFoundError(AuthError):
    """No user with this email."""
    pass


class RoleConflictError(AuthError):
    """Stored role differs from the role the caller expected to flip."""
    pass


class HashingError(AuthError):
    """Password hashing failed."""
    pass


class Unauthenticated(AuthError):
    """No valid session on a protected route."""
    pass


class Unauthorized(AuthError):
    """Valid session without the role the route requires."""
    pass
