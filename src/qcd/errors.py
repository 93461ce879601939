"""
Error kinds raised by the qcd core.

Every error is a user-recoverable condition. The CLI catches
:class:`QcdError`, prints the message and exits with the class's
``exit_code``; exit codes 0-2 are taken by successful jumps, informational
output and argparse usage errors.
"""

from __future__ import annotations


class QcdError(Exception):
    """Base class for all qcd errors."""

    exit_code = 3


class InvalidPath(QcdError):
    """Path is not valid UTF-8 or not absolute."""

    exit_code = 3


class DuplicateIndex(QcdError):
    """Requested index is already taken."""

    exit_code = 4

    def __init__(self, index: int) -> None:
        super().__init__(f"Index {index} already exists")
        self.index = index


class DuplicateAlias(QcdError):
    """Requested alias is already taken."""

    exit_code = 5

    def __init__(self, alias: str) -> None:
        super().__init__(f"Alias '{alias}' already exists")
        self.alias = alias


class InvalidAlias(QcdError):
    """Alias is empty or would be shadowed by an index."""

    exit_code = 6


class NotFound(QcdError):
    """No entry matches the reference."""

    exit_code = 7

    def __init__(self, reference: str) -> None:
        super().__init__(f"No entry matches '{reference}'")
        self.reference = reference


class AmbiguousAlias(QcdError):
    """More than one alias starts with the reference."""

    exit_code = 8

    def __init__(self, reference: str, candidates: list[str]) -> None:
        super().__init__(
            f"Ambiguous alias '{reference}', candidates: {', '.join(candidates)}"
        )
        self.reference = reference
        self.candidates = candidates


class EmptyStack(QcdError):
    exit_code = 9

    def __init__(self, message: str = "Nothing on stack") -> None:
        super().__init__(message)


class MissingSession(QcdError):
    exit_code = 10

    def __init__(self, message: str = "Missing or wrong session-id!") -> None:
        super().__init__(message)


class StorageBusy(QcdError):
    """The database stayed locked by another process past the busy timeout."""

    exit_code = 11


class StorageCorrupt(QcdError):
    """The database file cannot be opened or is not a sqlite database."""

    exit_code = 12


class ConfigError(QcdError):
    """The config file named by the user cannot be read or parsed."""

    exit_code = 13
