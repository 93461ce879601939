"""
SQLite storage shared by the path store and the session stack.

One :class:`Database` is opened per invocation. Every logical operation runs
inside :meth:`Database.transaction`, which takes sqlite's write lock up front
(``BEGIN IMMEDIATE``) so two processes never interleave a read-modify-write.
"""

from __future__ import annotations

import contextlib
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from qcd.errors import QcdError, StorageBusy, StorageCorrupt
from qcd.logging import get_logger

logger = get_logger("db")

ENTRY_TABLE = "entries"
STACK_TABLE = "stack"

_SCHEMA = (
    f"""
    CREATE TABLE IF NOT EXISTS {ENTRY_TABLE} (
        idx INTEGER PRIMARY KEY,
        alias TEXT UNIQUE,
        path TEXT NOT NULL
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {STACK_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        session_id TEXT NOT NULL,
        path TEXT NOT NULL,
        timestamp INTEGER NOT NULL
    )
    """,
    f"CREATE INDEX IF NOT EXISTS {STACK_TABLE}_session ON {STACK_TABLE} (session_id, id)",
    f"CREATE INDEX IF NOT EXISTS {ENTRY_TABLE}_path ON {ENTRY_TABLE} (path, idx)",
)

_BUSY_MARKERS = ("locked", "busy")
_CORRUPT_MARKERS = ("not a database", "malformed", "unable to open", "disk i/o error")


def storage_error(error: sqlite3.Error, path: Path) -> QcdError | None:
    """Map a sqlite error onto a storage error kind, or None if it is neither."""
    message = str(error).lower()
    if isinstance(error, sqlite3.OperationalError) and any(m in message for m in _BUSY_MARKERS):
        return StorageBusy(f"Database is locked by another process: {path}")
    if any(m in message for m in _CORRUPT_MARKERS):
        return StorageCorrupt(f"Could not open database {path}\n{error}")
    return None


class Database:
    """A sqlite connection with qcd's schema and transaction discipline."""

    def __init__(self, path: str | Path, timeout: float = 5.0) -> None:
        self._path = Path(path)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database is not open")
        return self._conn

    def open(self) -> Database:
        """Open (or create) the database file and ensure the tables exist."""
        if self._conn is not None:
            return self
        try:
            # Transactions are issued explicitly, see transaction()
            conn = sqlite3.connect(self._path, timeout=self._timeout, isolation_level=None)
        except sqlite3.Error as e:
            raise StorageCorrupt(f"Could not open database {self._path}\n{e}") from e
        conn.row_factory = sqlite3.Row
        self._conn = conn

        try:
            with self.transaction() as tx:
                for statement in _SCHEMA:
                    tx.execute(statement)
        except sqlite3.DatabaseError as e:
            self.close()
            raise StorageCorrupt(f"Could not create tables in {self._path}\n{e}") from e
        except QcdError:
            self.close()
            raise

        logger.debug("Opened database %s", self._path)
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> Database:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextlib.contextmanager
    def transaction(self, write: bool = True) -> Iterator[sqlite3.Connection]:
        """
        Run the enclosed statements as one atomic unit.

        Commits on success and rolls back on any exception. With ``write``
        the reserved lock is taken at ``BEGIN``; a lock held by another
        process past the busy timeout raises :class:`StorageBusy`.
        """
        conn = self.connection
        try:
            conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
        except sqlite3.Error as e:
            translated = storage_error(e, self._path)
            if translated is not None:
                raise translated from e
            raise

        try:
            yield conn
            conn.execute("COMMIT")
        except Exception as e:
            logger.debug("Transaction failed, rolling back: %s", e)
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            if isinstance(e, sqlite3.Error):
                translated = storage_error(e, self._path)
                if translated is not None:
                    raise translated from e
            raise
