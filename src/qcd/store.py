"""
Persistent registry of bookmarked paths.

Each entry has a unique non-negative index, an optional unique alias and an
absolute path. Lookups here are exact; abbreviated aliases are handled by
:mod:`qcd.resolver`.
"""

from __future__ import annotations

import os
import sqlite3

from qcd.db import ENTRY_TABLE, Database
from qcd.errors import DuplicateAlias, DuplicateIndex, InvalidAlias, NotFound
from qcd.logging import get_logger
from qcd.models import MAX_INDEX, Entry, is_digits, is_index_literal
from qcd.paths import validate_path

logger = get_logger("store")


def validate_alias(alias: str) -> str:
    """
    Reject aliases that could never be resolved.

    Raises:
        InvalidAlias: if *alias* is empty or purely numeric (an index would shadow it).
    """
    if not alias:
        raise InvalidAlias("Alias must not be empty")
    if is_digits(alias):
        raise InvalidAlias(f"Alias '{alias}' is numeric and would be shadowed by an index")
    return alias


def _check_index(index: int) -> None:
    if not 0 <= index <= MAX_INDEX:
        raise ValueError(f"Index must be between 0 and {MAX_INDEX}, got {index}")


def _row_to_entry(row: sqlite3.Row) -> Entry:
    return Entry(index=row["idx"], path=row["path"], alias=row["alias"])


def _index_taken(conn: sqlite3.Connection, index: int) -> bool:
    row = conn.execute(
        f"SELECT EXISTS(SELECT 1 FROM {ENTRY_TABLE} WHERE idx = ?)", (index,)
    ).fetchone()
    return bool(row[0])


def _alias_taken(conn: sqlite3.Connection, alias: str) -> bool:
    row = conn.execute(
        f"SELECT EXISTS(SELECT 1 FROM {ENTRY_TABLE} WHERE alias = ?)", (alias,)
    ).fetchone()
    return bool(row[0])


def _smallest_free_index(conn: sqlite3.Connection) -> int:
    free = 0
    for (index,) in conn.execute(f"SELECT idx FROM {ENTRY_TABLE} ORDER BY idx"):
        if index != free:
            break
        free += 1
    return free


def _lookup(conn: sqlite3.Connection, reference: str | int) -> Entry | None:
    """Exact match on index (for numeric references) or alias."""
    # Numeric aliases are rejected on insert, so a numeric reference is always an index
    if isinstance(reference, int) or is_index_literal(reference):
        index = int(reference)
        if not 0 <= index <= MAX_INDEX:
            return None
        row = conn.execute(
            f"SELECT idx, alias, path FROM {ENTRY_TABLE} WHERE idx = ?", (index,)
        ).fetchone()
    else:
        row = conn.execute(
            f"SELECT idx, alias, path FROM {ENTRY_TABLE} WHERE alias = ?", (reference,)
        ).fetchone()
    return _row_to_entry(row) if row is not None else None


class PathStore:
    """Entries table: index and alias uniqueness, add/remove/list/query."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @property
    def db(self) -> Database:
        return self._db

    def add(
        self,
        path: str | os.PathLike[str],
        index: int | None = None,
        alias: str | None = None,
    ) -> Entry:
        """
        Register *path* under *index* (smallest free one if omitted) and *alias*.

        Raises:
            InvalidPath: path is not absolute or not valid UTF-8.
            InvalidAlias: alias is empty or numeric.
            DuplicateIndex: index already in use.
            DuplicateAlias: alias already in use.
        """
        clean = validate_path(path)
        if alias is not None:
            validate_alias(alias)
        if index is not None:
            _check_index(index)

        with self._db.transaction() as conn:
            if index is None:
                index = _smallest_free_index(conn)
            elif _index_taken(conn, index):
                raise DuplicateIndex(index)
            if alias is not None and _alias_taken(conn, alias):
                raise DuplicateAlias(alias)

            conn.execute(
                f"INSERT INTO {ENTRY_TABLE} (idx, alias, path) VALUES (?, ?, ?)",
                (index, alias, clean),
            )

        entry = Entry(index=index, path=clean, alias=alias)
        logger.debug("Added %s", entry)
        return entry

    def get(self, reference: str | int) -> Entry:
        """
        Return the entry whose index or alias equals *reference* exactly.

        Raises:
            NotFound: no such entry.
        """
        with self._db.transaction(write=False) as conn:
            entry = _lookup(conn, reference)
        if entry is None:
            raise NotFound(str(reference))
        return entry

    def remove(self, reference: str | int) -> Entry:
        """
        Delete the entry matching *reference* exactly (no prefix matching).

        Raises:
            NotFound: no such entry; the store is left unchanged.
        """
        with self._db.transaction() as conn:
            entry = _lookup(conn, reference)
            if entry is None:
                raise NotFound(str(reference))
            conn.execute(f"DELETE FROM {ENTRY_TABLE} WHERE idx = ?", (entry.index,))

        logger.debug("Removed %s", entry)
        return entry

    def list(self) -> list[Entry]:
        """All entries ordered by index."""
        with self._db.transaction(write=False) as conn:
            rows = conn.execute(
                f"SELECT idx, alias, path FROM {ENTRY_TABLE} ORDER BY idx"
            ).fetchall()
        return [_row_to_entry(r) for r in rows]

    def find_by_path(self, path: str | os.PathLike[str]) -> Entry | None:
        """Entry registered for exactly *path*; the lowest index if there are several."""
        clean = validate_path(path)
        with self._db.transaction(write=False) as conn:
            row = conn.execute(
                f"SELECT idx, alias, path FROM {ENTRY_TABLE} WHERE path = ? ORDER BY idx LIMIT 1",
                (clean,),
            ).fetchone()
        return _row_to_entry(row) if row is not None else None

    def set_index(self, reference: str | int, new_index: int) -> Entry:
        """
        Move the entry matching *reference* to *new_index*.

        Raises:
            NotFound: no such entry.
            DuplicateIndex: *new_index* belongs to another entry.
        """
        _check_index(new_index)

        with self._db.transaction() as conn:
            entry = _lookup(conn, reference)
            if entry is None:
                raise NotFound(str(reference))
            if entry.index == new_index:
                return entry
            if _index_taken(conn, new_index):
                raise DuplicateIndex(new_index)
            conn.execute(
                f"UPDATE {ENTRY_TABLE} SET idx = ? WHERE idx = ?", (new_index, entry.index)
            )

        logger.debug("Moved entry %d to index %d", entry.index, new_index)
        return Entry(index=new_index, path=entry.path, alias=entry.alias)

    def set_alias(self, reference: str | int, alias: str | None) -> Entry:
        """
        Give the entry matching *reference* a new alias, or clear it with ``None``.

        Raises:
            NotFound: no such entry.
            InvalidAlias: alias is empty or numeric.
            DuplicateAlias: alias belongs to another entry.
        """
        if alias is not None:
            validate_alias(alias)

        with self._db.transaction() as conn:
            entry = _lookup(conn, reference)
            if entry is None:
                raise NotFound(str(reference))
            if entry.alias == alias:
                return entry
            if alias is not None and _alias_taken(conn, alias):
                raise DuplicateAlias(alias)
            conn.execute(
                f"UPDATE {ENTRY_TABLE} SET alias = ? WHERE idx = ?", (alias, entry.index)
            )

        logger.debug("Set alias of entry %d to %r", entry.index, alias)
        return Entry(index=entry.index, path=entry.path, alias=alias)
