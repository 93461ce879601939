"""
Per-session directory stack.

Each shell session owns an ordered list of visited directories; the row id
gives the order, the newest row is the top. Rows older than the retention
window are pruned across all sessions at the start of every operation, so
no separate cleanup job is needed.
"""

from __future__ import annotations

import os
import sqlite3
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from qcd.config import DEFAULT_RETENTION_DAYS
from qcd.db import STACK_TABLE, Database
from qcd.errors import EmptyStack
from qcd.logging import get_logger
from qcd.models import StackEntry
from qcd.paths import validate_path

logger = get_logger("stack")

DEFAULT_RETENTION = timedelta(days=DEFAULT_RETENTION_DAYS)


def new_session_id(now_ns: int | None = None) -> str:
    """
    A fresh session id: the UTC time as ``YYYYmmddHHMMSS`` plus nanoseconds.

    Always 23 digits, so it passes ``QcdConfig.has_session``.
    """
    ns = time.time_ns() if now_ns is None else now_ns
    seconds, fraction = divmod(ns, 1_000_000_000)
    stamp = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return f"{stamp:%Y%m%d%H%M%S}{fraction:09d}"


def _row_to_stack_entry(row: sqlite3.Row) -> StackEntry:
    return StackEntry(
        id=row["id"],
        session_id=row["session_id"],
        path=row["path"],
        timestamp=row["timestamp"],
    )


class SessionStack:
    """
    Push/pop/swap over the stack rows of one session.

    Args:
        db: Open database.
        session_id: Owning shell session; rows of other sessions are never visible.
        retention: Age after which rows are pruned.
        clock: Returns the current time in seconds since the epoch.
    """

    def __init__(
        self,
        db: Database,
        session_id: str,
        retention: timedelta = DEFAULT_RETENTION,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self._session_id = session_id
        self._retention = retention
        self._clock = clock

    @property
    def session_id(self) -> str:
        return self._session_id

    # ------------------------------------------------------------------
    # Helpers running inside an open transaction
    # ------------------------------------------------------------------

    def _now(self) -> int:
        return int(self._clock())

    def _prune(self, conn: sqlite3.Connection, retention: timedelta, now: int) -> int:
        # Inclusive: a row exactly `retention` old is already expired
        cutoff = now - int(retention.total_seconds())
        cursor = conn.execute(f"DELETE FROM {STACK_TABLE} WHERE timestamp <= ?", (cutoff,))
        if cursor.rowcount:
            logger.debug("Pruned %d stack entries older than %s", cursor.rowcount, retention)
        return cursor.rowcount

    def _top(self, conn: sqlite3.Connection) -> StackEntry | None:
        row = conn.execute(
            f"SELECT id, session_id, path, timestamp FROM {STACK_TABLE}"
            " WHERE session_id = ? ORDER BY id DESC LIMIT 1",
            (self._session_id,),
        ).fetchone()
        return _row_to_stack_entry(row) if row is not None else None

    def _push(self, conn: sqlite3.Connection, path: str) -> bool:
        top = self._top(conn)
        if top is not None and top.path == path:
            logger.debug("Not pushing %s, already on top", path)
            return False
        conn.execute(
            f"INSERT INTO {STACK_TABLE} (session_id, path, timestamp) VALUES (?, ?, ?)",
            (self._session_id, path, self._now()),
        )
        logger.debug("Pushed %s for session %s", path, self._session_id)
        return True

    def _pop(self, conn: sqlite3.Connection) -> StackEntry | None:
        top = self._top(conn)
        if top is not None:
            conn.execute(f"DELETE FROM {STACK_TABLE} WHERE id = ?", (top.id,))
        return top

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def push(self, path: str | os.PathLike[str]) -> bool:
        """
        Put *path* on top of the stack unless it is already the top.

        Returns:
            True if a row was written, False if the push was suppressed.

        Raises:
            InvalidPath: path is not absolute or not valid UTF-8.
        """
        clean = validate_path(path)
        with self._db.transaction() as conn:
            self._prune(conn, self._retention, self._now())
            return self._push(conn, clean)

    def pop(self) -> str | None:
        """Remove the top entry and return its path, or None if the stack is empty."""
        with self._db.transaction() as conn:
            self._prune(conn, self._retention, self._now())
            entry = self._pop(conn)
        return entry.path if entry is not None else None

    def drop(self) -> str:
        """
        Discard the top entry.

        Raises:
            EmptyStack: nothing to drop.
        """
        path = self.pop()
        if path is None:
            raise EmptyStack()
        return path

    def swap(self, current: str | os.PathLike[str]) -> str:
        """
        Exchange the top of the stack with *current*.

        Pops the top ``T``, pushes *current* and returns ``T``, all in one
        transaction. Swapping twice in a row restores the original state,
        unless *current* equals the entry below the top, in which case the
        push is suppressed like any duplicate push.

        Raises:
            EmptyStack: nothing to swap with.
            InvalidPath: *current* is not absolute or not valid UTF-8.
        """
        clean = validate_path(current)
        with self._db.transaction() as conn:
            self._prune(conn, self._retention, self._now())
            entry = self._pop(conn)
            if entry is None:
                raise EmptyStack()
            self._push(conn, clean)
        return entry.path

    def top(self) -> StackEntry | None:
        """The current top entry without removing it."""
        with self._db.transaction() as conn:
            self._prune(conn, self._retention, self._now())
            return self._top(conn)

    def entries(self) -> list[StackEntry]:
        """This session's entries, top first."""
        with self._db.transaction() as conn:
            self._prune(conn, self._retention, self._now())
            rows = conn.execute(
                f"SELECT id, session_id, path, timestamp FROM {STACK_TABLE}"
                " WHERE session_id = ? ORDER BY id DESC",
                (self._session_id,),
            ).fetchall()
        return [_row_to_stack_entry(r) for r in rows]

    def prune(self, retention: timedelta | None = None, now: float | None = None) -> int:
        """
        Delete entries of every session that are at least *retention* old.

        Args:
            retention: Age limit, defaults to the stack's retention window.
            now: Reference time in epoch seconds, defaults to the clock.

        Returns:
            Number of deleted entries.
        """
        retention = self._retention if retention is None else retention
        reference = self._now() if now is None else int(now)
        with self._db.transaction() as conn:
            return self._prune(conn, retention, reference)
