# auth/__init__.py
"""
Authentication module.

Provides:
- User and Session models with the user/admin role
- Password hashing with bcrypt
- Session issue/validate/destroy with absolute expiry
- Login/signup orchestration
- Authorization gate and role administration
"""

from auth.errors import (
    AuthError,
    ValidationError,
    InvalidCredentialsError,
    DuplicateEmailError,
    NotFoundError,
    RoleConflictError,
    HashingError,
    Unauthenticated,
    Unauthorized,
)
from auth.models import Role, User, Session
from auth.password import PasswordHasher
from auth.sessions import SessionManager
from auth.service import AuthenticationService
from auth.gate import Access, AuthorizationGate, GateDecision, GateState
from auth.roles import RoleAdministration

__all__ = [
    "AuthError",
    "ValidationError",
    "InvalidCredentialsError",
    "DuplicateEmailError",
    "NotFoundError",
    "RoleConflictError",
    "HashingError",
    "Unauthenticated",
    "Unauthorized",
    "Role",
    "User",
    "Session",
    "PasswordHasher",
    "SessionManager",
    "AuthenticationService",
    "Access",
    "AuthorizationGate",
    "GateDecision",
    "GateState",
    "RoleAdministration",
]
