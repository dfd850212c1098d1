# auth/password.py
"""
Secure password hashing using bcrypt.

Bcrypt is designed for password hashing with:
- Automatic salt generation
- Configurable work factor (cost)
- Constant-time comparison in checkpw

bcrypt reads at most 72 bytes, so passwords are first reduced to the
base64 of their SHA-256 digest (44 bytes, no NUL). Every password of any
length then hashes and verifies.
"""

from __future__ import annotations

import base64
import hashlib
import logging

import bcrypt

from auth.errors import HashingError

_logger = logging.getLogger(__name__)

# Work factor (cost) - higher = slower but more secure
BCRYPT_ROUNDS = 12
MIN_BCRYPT_ROUNDS = 4


def _prehash(password: str) -> bytes:
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest)


class PasswordHasher:
    """
    Salted one-way hashing and verification of passwords.

    Usage:
        hasher = PasswordHasher()
        stored = hasher.hash("hunter2")
        hasher.verify("hunter2", stored)  # True
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        if rounds < MIN_BCRYPT_ROUNDS:
            raise ValueError(f"bcrypt rounds must be at least {MIN_BCRYPT_ROUNDS}")
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Bcrypt hash string (includes salt)

        Raises:
            ValueError: If password is empty
            HashingError: If bcrypt fails to produce a hash
        """
        if not password:
            raise ValueError("Password cannot be empty")

        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            hashed = bcrypt.hashpw(_prehash(password), salt)
        except (ValueError, OSError) as e:
            _logger.error(f"Password hashing failed: {type(e).__name__}")
            raise HashingError("Unable to hash password") from e

        return hashed.decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            password: Plain text password to verify
            password_hash: Stored bcrypt hash

        Returns:
            True if password matches, False otherwise
        """
        if not password or not password_hash:
            return False

        try:
            return bcrypt.checkpw(_prehash(password), password_hash.encode("utf-8"))
        except ValueError as e:
            _logger.warning(f"Password verification error: {e}")
            return False
