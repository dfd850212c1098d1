# persistence/__init__.py
"""
Persistence layer.

Provides SQLite-backed storage for:
- User credentials (unique by email)
- Server-side sessions (keyed by token)
"""

from persistence.db import Database, StorageError
from persistence.users import CredentialStore
from persistence.sessions import SessionStore

__all__ = [
    "Database",
    "StorageError",
    "CredentialStore",
    "SessionStore",
]
