# persistence/db.py
"""
SQLite database connection and schema management.

Uses a file-based SQLite database for users and sessions. A Database
instance is created once by the application factory and handed to the
stores; nothing here is process-global.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Union

_logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "members.db"

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        email TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        token TEXT PRIMARY KEY,
        authenticated INTEGER NOT NULL DEFAULT 1,
        email TEXT NOT NULL,
        name TEXT NOT NULL,
        role TEXT NOT NULL,
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        last_seen_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_sessions_email
    ON sessions(email)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_sessions_expires
    ON sessions(expires_at)
    """,
)


class StorageError(Exception):
    """Raised when the database cannot be reached or a statement fails."""
    pass


class Database:
    """
    Handle to one SQLite database file.

    Each thread gets its own connection. The schema is created lazily on
    first use, so constructing a Database touches nothing on disk.

    Usage:
        db = Database("data/members.db")
        with db.connect() as conn:
            cursor = conn.execute("SELECT ...")
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_DB_PATH):
        self.path = Path(path)
        self._local = threading.local()
        self._init_lock = threading.Lock()
        self._initialized = False
        # Every thread-local connection, so close() can reach all of them
        self._connections_lock = threading.Lock()
        self._connections: List[sqlite3.Connection] = []
        self._generation = 0

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        conn = getattr(self._local, "connection", None)
        if conn is None or getattr(self._local, "generation", None) != self._generation:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            try:
                # IMMEDIATE: writers take the write lock up front and wait on
                # the busy timeout instead of failing on lock upgrade
                conn = sqlite3.connect(
                    str(self.path),
                    timeout=30.0,
                    isolation_level="IMMEDIATE",
                    check_same_thread=False,
                )
            except sqlite3.Error as e:
                raise StorageError(f"Cannot open database: {e}") from e
            conn.row_factory = sqlite3.Row
            with self._connections_lock:
                self._connections.append(conn)
                self._local.generation = self._generation
            self._local.connection = conn
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """
        Get database connection context manager.

        Commits on success, rolls back on any error. sqlite3 errors other
        than constraint violations are re-raised as StorageError; an
        IntegrityError is left for the caller to translate.
        """
        self.init_db()
        try:
            with self._transaction() as conn:
                yield conn
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            _logger.error(f"Database error on {self.path}: {e}")
            raise StorageError(str(e)) from e

    def init_db(self) -> None:
        """
        Initialize database schema.

        Creates tables if they don't exist.
        Safe to call multiple times (idempotent).
        """
        with self._init_lock:
            if self._initialized:
                return

            try:
                with self._transaction() as conn:
                    for statement in SCHEMA:
                        conn.execute(statement)
            except sqlite3.Error as e:
                raise StorageError(f"Cannot initialize schema: {e}") from e

            _logger.info(f"Database initialized at {self.path}")
            self._initialized = True

    def close(self) -> None:
        """
        Close every connection opened through this handle, whichever
        thread opened it. Threads reconnect on their next use.
        """
        with self._connections_lock:
            connections, self._connections = self._connections, []
            self._generation += 1
        for conn in connections:
            conn.close()
        self._local.connection = None
        if connections:
            _logger.info(f"Closed {len(connections)} connection(s) to {self.path}")

    def reset(self) -> None:
        """Reset database (for testing). Drops all tables."""
        with self._init_lock:
            with self._transaction() as conn:
                conn.execute("DROP TABLE IF EXISTS sessions")
                conn.execute("DROP TABLE IF EXISTS users")
            self._initialized = False
