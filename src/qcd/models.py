"""
Data models for qcd.

These are plain records read from and written to the database; all
behaviour lives in the store, resolver and stack modules.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Entry:
    """A registered path with its index and optional alias."""

    index: int
    path: str
    alias: str | None = None

    @property
    def label(self) -> str:
        """Alias if set, otherwise the index as text."""
        return self.alias if self.alias is not None else str(self.index)


@dataclass(frozen=True)
class StackEntry:
    """One visited directory on a session's stack."""

    id: int  # Row id, defines stack order
    session_id: str
    path: str
    timestamp: int  # Seconds since epoch


# Largest value sqlite stores in an INTEGER column
MAX_INDEX = 2**63 - 1


def is_digits(text: str) -> bool:
    """Return True if *text* consists of ASCII digits only."""
    return text.isascii() and text.isdigit()


def is_index_literal(text: str) -> bool:
    """Return True if *text* is an integer in ``0..MAX_INDEX`` written in ASCII digits."""
    if not is_digits(text):
        return False
    # Check the length first: int() refuses very long digit strings
    significant = text.lstrip("0")
    return len(significant) <= len(str(MAX_INDEX)) and int(significant or "0") <= MAX_INDEX
