"""
qcd - quickly change directories.

Register frequently visited directories under an index or alias, jump to
them by typing an abbreviation, and undo jumps with a per-shell stack. The
program only prints target paths; a small shell function performs the
actual ``cd``.

Example:
    from qcd import AliasResolver, Database, PathStore, SessionStack

    with Database("/tmp/qcd.sqlite") as db:
        PathStore(db).add("/srv/projects/pets", alias="pets")
        entry = AliasResolver(db).resolve("pe")

        stack = SessionStack(db, session_id="20240101120000000000000")
        stack.push("/home/user")
        previous = stack.pop()
"""

__version__ = "0.1.0"

from qcd.config import QcdConfig
from qcd.db import Database
from qcd.errors import (
    AmbiguousAlias,
    ConfigError,
    DuplicateAlias,
    DuplicateIndex,
    EmptyStack,
    InvalidAlias,
    InvalidPath,
    MissingSession,
    NotFound,
    QcdError,
    StorageBusy,
    StorageCorrupt,
)
from qcd.models import Entry, StackEntry
from qcd.resolver import AliasResolver
from qcd.stack import SessionStack, new_session_id
from qcd.store import PathStore

__all__ = [
    "__version__",
    # Storage
    "Database",
    "PathStore",
    "AliasResolver",
    "SessionStack",
    "new_session_id",
    # Models
    "Entry",
    "StackEntry",
    # Config
    "QcdConfig",
    # Errors
    "QcdError",
    "InvalidPath",
    "InvalidAlias",
    "DuplicateIndex",
    "DuplicateAlias",
    "NotFound",
    "AmbiguousAlias",
    "EmptyStack",
    "MissingSession",
    "StorageBusy",
    "StorageCorrupt",
    "ConfigError",
]
