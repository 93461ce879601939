"""
Resolution of user-typed references to entries.

A reference is tried, in order, as:

1. an index, if it is a non-negative integer and that index exists;
2. an exact alias;
3. a unique alias prefix (literal and case-sensitive).

With aliases ``pets`` and ``people``, ``peo`` resolves to ``people`` while
``pe`` is ambiguous. An alias that is itself a prefix of another alias
always resolves to itself, because step 2 runs first.
"""

from __future__ import annotations

from qcd.db import ENTRY_TABLE, Database
from qcd.errors import AmbiguousAlias, NotFound
from qcd.logging import get_logger
from qcd.models import Entry, is_index_literal

logger = get_logger("resolver")


class AliasResolver:
    """Read-only lookups over the entries table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def resolve(self, reference: str) -> Entry:
        """
        Resolve *reference* to exactly one entry.

        Raises:
            NotFound: nothing matches.
            AmbiguousAlias: several aliases start with *reference*.
        """
        if not reference:
            raise NotFound(reference)

        with self._db.transaction(write=False) as conn:
            if is_index_literal(reference):
                row = conn.execute(
                    f"SELECT idx, alias, path FROM {ENTRY_TABLE} WHERE idx = ?",
                    (int(reference),),
                ).fetchone()
                if row is not None:
                    logger.debug("Resolved %r by index", reference)
                    return Entry(index=row["idx"], path=row["path"], alias=row["alias"])

            row = conn.execute(
                f"SELECT idx, alias, path FROM {ENTRY_TABLE} WHERE alias = ?", (reference,)
            ).fetchone()
            if row is not None:
                logger.debug("Resolved %r by exact alias", reference)
                return Entry(index=row["idx"], path=row["path"], alias=row["alias"])

            matches = self._prefix_matches(conn, reference)

        if not matches:
            raise NotFound(reference)
        if len(matches) > 1:
            raise AmbiguousAlias(reference, [e.alias for e in matches if e.alias is not None])
        logger.debug("Resolved %r as prefix of %r", reference, matches[0].alias)
        return matches[0]

    def candidates(self, prefix: str) -> list[Entry]:
        """All entries whose alias starts with *prefix*, ordered by alias."""
        with self._db.transaction(write=False) as conn:
            return self._prefix_matches(conn, prefix)

    @staticmethod
    def _prefix_matches(conn, prefix: str) -> list[Entry]:
        # LIKE would fold case and treat % and _ as wildcards, so filter here
        rows = conn.execute(
            f"SELECT idx, alias, path FROM {ENTRY_TABLE} WHERE alias IS NOT NULL ORDER BY alias"
        ).fetchall()
        return [
            Entry(index=r["idx"], path=r["path"], alias=r["alias"])
            for r in rows
            if r["alias"].startswith(prefix)
        ]
