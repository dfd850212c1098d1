# auth/service.py
"""
Authentication service.

Handles:
- Login (credential check, session issue)
- Signup (validation, hashing, bootstrap admin role, session issue)
- Logout
"""

from __future__ import annotations

import logging

from auth.errors import DuplicateEmailError, InvalidCredentialsError
from auth.models import Role, Session, User
from auth.password import PasswordHasher
from auth.sessions import SessionManager
from auth.validation import LoginForm, SignupForm, parse

_logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class AuthenticationService:
    """
    Orchestrates login and signup over the credential store, the password
    hasher and the session manager.

    The bootstrap admin email is configuration: the one account that is
    created with the admin role. Every other signup gets the user role.
    """

    def __init__(
        self,
        credentials,
        hasher: PasswordHasher,
        sessions: SessionManager,
        bootstrap_admin_email: str = "",
    ):
        self.credentials = credentials
        self.hasher = hasher
        self.sessions = sessions
        self.bootstrap_admin_email = bootstrap_admin_email

    def role_for(self, email: str) -> Role:
        """Role a new account with this email is created with."""
        if self.bootstrap_admin_email and email == self.bootstrap_admin_email:
            return Role.ADMIN
        return Role.USER

    def login(self, email: str, password: str) -> Session:
        """
        Authenticate user with email and password.

        Returns:
            A new Session carrying the stored name and role

        Raises:
            ValidationError: If email or password is malformed
            InvalidCredentialsError: If no user matches or the password is wrong
        """
        form = parse(LoginForm, email=email, password=password)

        user = self.credentials.find_by_email(form.email)
        if user is None:
            _logger.warning(f"Login attempt for non-existent user: {form.email}")
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)

        if not self.hasher.verify(form.password, user.password_hash):
            _logger.warning(f"Invalid password for user: {form.email}")
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)

        _logger.info(f"User authenticated: {user.email}")
        return self.sessions.issue(user.email, user.name, user.role)

    def signup(self, email: str, name: str, password: str) -> Session:
        """
        Create a new user account and sign it in.

        Returns:
            A new Session for the created user

        Raises:
            ValidationError: If any field is missing or malformed
            DuplicateEmailError: If the email is already registered
            HashingError: If the password could not be hashed
        """
        form = parse(SignupForm, name=name, password=password, email=email)

        if self.credentials.find_by_email(form.email) is not None:
            _logger.info(f"Signup rejected, email in use: {form.email}")
            raise DuplicateEmailError(f"User with email {form.email} already exists")

        user = User.new(
            email=form.email,
            name=form.name,
            password_hash=self.hasher.hash(form.password),
            role=self.role_for(form.email),
        )
        # A concurrent signup can still win here; the store raises DuplicateEmailError
        self.credentials.insert(user)

        _logger.info(f"Created user: {user.email} (role={user.role.value})")
        return self.sessions.issue(user.email, user.name, user.role)

    def logout(self, token: str) -> None:
        """End the session identified by token."""
        self.sessions.destroy(token)
