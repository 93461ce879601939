"""
Command-line interface for qcd.

The program never changes directory itself. It prints one line and exits
with 0 when that line is a directory the wrapping shell function should
``cd`` into, and with a non-zero code when the output is only to be echoed
(listings, confirmations, errors).
"""

from __future__ import annotations

import argparse
import sys
from datetime import timedelta

import yaml
from rich.console import Console
from rich.markup import escape
from rich.text import Text

from qcd import __version__
from qcd.config import QcdConfig
from qcd.db import Database
from qcd.errors import EmptyStack, MissingSession, QcdError
from qcd.logging import get_logger, setup_logging
from qcd.models import is_index_literal
from qcd.paths import clean_path, current_dir
from qcd.resolver import AliasResolver
from qcd.stack import SessionStack, new_session_id
from qcd.store import PathStore

console = Console(highlight=False, emoji=False, soft_wrap=True)
logger = get_logger("cli")

# stdout holds a directory to change into
EXIT_CHDIR = 0
# stdout holds text to show the user
EXIT_ECHO = 1

POSTHELP = """\
Environment variables
=====================
  QCD_RS_DBNAME:    Name of database. Default: '.qcd_rs.sqlite'
  QCD_RS_DBPATH:    Path to database. Default: home-directory
  QCD_RS_SESSIONID: Session id of the shell, set it once from `qcd --pid`
  QCD_RS_CONFIG:    YAML config file. Default: ~/.config/qcd/config.yaml

Usage examples
==============
  qcd ENTRY [-n]                    Chdir to path with idx or alias ENTRY (w/o -n: adds work dir to stack)
  qcd -o                            (pop)  Chdir to top of stack, remove that entry from stack
  qcd -w                            (swap) Chdir to top of stack, replace it by work dir
  qcd -a PATH [-i IDX] [-s ALIAS]   Add PATH to database
  qcd -p [-i IDX] [-s ALIAS]        Add current working directory to database
  qcd -r ENTRY                      Remove row with idx or alias ENTRY
  qcd -u                            (push) Add current working directory to (top of) stack
  qcd -l                            List all indexes, aliases and paths
  qcd -q PATH                       Query index of PATH
  ls `qcd -e 4`                     List directory contents of path with idx 4

Alias matching
==============
Abbreviating an alias will match if the string equals the beginning of an alias in a unique
way. For instance, with aliases 'pets' and 'people' in the database 'qcd peo' will match the
second one while 'qcd pe' will match none."""

# dest names of the mutually exclusive commands besides the positional ENTRY
_METHODS = (
    "list_paths",
    "add",
    "add_current",
    "remove",
    "new_alias",
    "new_idx",
    "list_stack",
    "push",
    "pop",
    "drop",
    "swap",
    "query_path",
    "echo",
    "pid",
    "show_config",
)


def _index(value: str) -> int:
    if not is_index_literal(value):
        raise argparse.ArgumentTypeError(f"not a non-negative integer: {value!r}")
    return int(value)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="qcd",
        description="Quickly change directories",
        epilog=POSTHELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("entry", nargs="?", metavar="ENTRY", help="Index or alias of path")

    methods = parser.add_mutually_exclusive_group()
    methods.add_argument(
        "-l", "--list-paths", action="store_true", help="List all path-names and id's"
    )
    methods.add_argument("-a", "--add", metavar="PATH", help="Add PATH to database")
    methods.add_argument(
        "-p", "--add-current", action="store_true", help="Add current work dir to database"
    )
    methods.add_argument(
        "-r", "--remove", metavar="ENTRY", help="Remove path with index or alias equal to ENTRY"
    )
    methods.add_argument(
        "-b",
        "--set-alias",
        dest="new_alias",
        nargs=2,
        metavar=("ENTRY", "ALIAS"),
        help="Set alias for entry ENTRY",
    )
    methods.add_argument(
        "-x",
        "--set-index",
        dest="new_idx",
        nargs=2,
        metavar=("ENTRY", "NEWIDX"),
        help="Change index of entry ENTRY",
    )
    methods.add_argument(
        "-c", "--list-stack", action="store_true", help="List entries on stack (top to bottom)"
    )
    methods.add_argument("-u", "--push", action="store_true", help="Add current work dir to stack")
    methods.add_argument(
        "-o", "--pop", action="store_true", help="Chdir to top of stack and remove path from stack"
    )
    methods.add_argument("-d", "--drop", action="store_true", help="Remove entry on top of stack")
    methods.add_argument(
        "-w",
        "--swap",
        action="store_true",
        help="Chdir to top of stack and exchange top of stack by current work dir",
    )
    methods.add_argument(
        "-q",
        "--query",
        dest="query_path",
        metavar="PATH",
        help="Query index of PATH. Returns -1 if path not in table.",
    )
    methods.add_argument(
        "-e", "--echo", metavar="ENTRY", help="Print path with index or alias equal to ENTRY"
    )
    methods.add_argument("--pid", action="store_true", help=argparse.SUPPRESS)
    methods.add_argument(
        "--show-config", action="store_true", help="Print the effective configuration"
    )

    parser.add_argument(
        "-n",
        "--no-push",
        action="store_true",
        help="Do not add current path to stack when changing directory",
    )
    parser.add_argument("-i", "--idx", type=_index, help="Specify idx value when adding path")
    parser.add_argument("-s", "--alias", help="Specify alias when adding path")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output (debug logging)"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _validate_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    """Enforce the one-command rule and option dependencies argparse cannot express."""
    chosen = [name for name in _METHODS if getattr(args, name)]
    if args.entry is not None and chosen:
        parser.error("ENTRY cannot be combined with another command")
    if args.entry is None and not chosen:
        parser.error("one of ENTRY or a command option is required")

    if args.no_push and args.entry is None:
        parser.error("-n/--no-push requires ENTRY")
    if (args.idx is not None or args.alias is not None) and not (args.add or args.add_current):
        parser.error("-i/--idx and -s/--alias require -a/--add or -p/--add-current")
    if args.new_idx is not None:
        try:
            args.new_idx[1] = _index(args.new_idx[1])
        except argparse.ArgumentTypeError as e:
            parser.error(f"argument -x/--set-index: {e}")


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _validate_args(parser, args)

    try:
        config = QcdConfig.load()
    except QcdError as e:
        setup_logging("DEBUG" if args.verbose else "WARNING")
        return _report(e)

    setup_logging("DEBUG" if args.verbose else config.log_level)

    if args.pid:
        return cmd_pid(config)
    if args.show_config:
        return cmd_show_config(config)

    try:
        with Database(config.db_path, timeout=config.busy_timeout_seconds) as db:
            return _dispatch(args, config, db)
    except QcdError as e:
        return _report(e)


def _report(error: QcdError) -> int:
    logger.debug("%s: %s", type(error).__name__, error)
    console.print(f"[red]ERROR:[/red] {escape(str(error))}")
    return error.exit_code


def _dispatch(args: argparse.Namespace, config: QcdConfig, db: Database) -> int:
    if args.entry is not None:
        return cmd_jump(args, config, db)
    if args.list_paths:
        return cmd_list(db)
    if args.add is not None or args.add_current:
        return cmd_add(args, db)
    if args.echo is not None:
        return cmd_echo(args, db)
    if args.remove is not None:
        return cmd_remove(args, db)
    if args.new_alias is not None:
        return cmd_set_alias(args, db)
    if args.new_idx is not None:
        return cmd_set_index(args, db)
    if args.query_path is not None:
        return cmd_query(args, db)

    # Everything below works on the stack and needs a session
    stack = _session_stack(config, db)
    if args.list_stack:
        return cmd_list_stack(stack)
    if args.push:
        return cmd_push(stack)
    if args.pop:
        return cmd_pop(stack)
    if args.drop:
        return cmd_drop(stack)
    return cmd_swap(stack)


def _session_stack(config: QcdConfig, db: Database) -> SessionStack:
    if not config.has_session:
        raise MissingSession()
    return SessionStack(
        db,
        config.session_id,
        retention=timedelta(days=config.stack_retention_days),
    )


def _emit(text: str) -> None:
    console.print(text, markup=False)


# ----------------------------------------------------------------------
# Entries
# ----------------------------------------------------------------------


def cmd_jump(args: argparse.Namespace, config: QcdConfig, db: Database) -> int:
    """Print the path for ENTRY, pushing the work dir first unless told not to."""
    entry = AliasResolver(db).resolve(args.entry)

    if config.has_session and not args.no_push:
        try:
            _session_stack(config, db).push(current_dir())
        except QcdError as e:
            # The jump itself still succeeds
            logger.warning("Could not push current directory: %s", e)

    _emit(entry.path)
    return EXIT_CHDIR


def cmd_list(db: Database) -> int:
    """Print all entries sorted by index."""
    entries = PathStore(db).list()
    width = max((len(e.alias or "") for e in entries), default=0)

    for entry in entries:
        line = Text()
        line.append(f"{entry.index:>4}", style="cyan")
        line.append(" ")
        line.append(f"{entry.alias or '':<{width}}", style="bold")
        line.append(" ")
        line.append(entry.path)
        console.print(line)
    return EXIT_ECHO


def cmd_add(args: argparse.Namespace, db: Database) -> int:
    """Add PATH (or the work dir) to the database."""
    path = clean_path(args.add) if args.add is not None else current_dir()
    entry = PathStore(db).add(path, index=args.idx, alias=args.alias)
    _emit(f"Path added with index {entry.index}")
    return EXIT_ECHO


def cmd_echo(args: argparse.Namespace, db: Database) -> int:
    """Print the path for ENTRY without touching the stack."""
    _emit(AliasResolver(db).resolve(args.echo).path)
    return EXIT_ECHO


def cmd_remove(args: argparse.Namespace, db: Database) -> int:
    entry = PathStore(db).remove(args.remove)
    logger.info("Removed entry %d (%s)", entry.index, entry.path)
    return EXIT_ECHO


def cmd_set_alias(args: argparse.Namespace, db: Database) -> int:
    reference, alias = args.new_alias
    PathStore(db).set_alias(reference, alias)
    return EXIT_ECHO


def cmd_set_index(args: argparse.Namespace, db: Database) -> int:
    reference, new_index = args.new_idx
    PathStore(db).set_index(reference, new_index)
    return EXIT_ECHO


def cmd_query(args: argparse.Namespace, db: Database) -> int:
    """Print the index of PATH, or -1 if it is not registered."""
    entry = PathStore(db).find_by_path(clean_path(args.query_path))
    _emit(str(entry.index) if entry is not None else "-1")
    return EXIT_ECHO


# ----------------------------------------------------------------------
# Stack
# ----------------------------------------------------------------------


def cmd_list_stack(stack: SessionStack) -> int:
    for entry in stack.entries():
        _emit(entry.path)
    return EXIT_ECHO


def cmd_push(stack: SessionStack) -> int:
    stack.push(current_dir())
    return EXIT_ECHO


def cmd_pop(stack: SessionStack) -> int:
    """Print the top of the stack after removing it."""
    path = stack.pop()
    if path is None:
        raise EmptyStack()
    _emit(path)
    return EXIT_CHDIR


def cmd_drop(stack: SessionStack) -> int:
    stack.drop()
    return EXIT_ECHO


def cmd_swap(stack: SessionStack) -> int:
    """Print the former top of the stack, which is replaced by the work dir."""
    _emit(stack.swap(current_dir()))
    return EXIT_CHDIR


# ----------------------------------------------------------------------
# Session and configuration
# ----------------------------------------------------------------------


def cmd_pid(config: QcdConfig) -> int:
    """Print the session id, creating one if the shell has none yet."""
    _emit(config.session_id or new_session_id())
    return EXIT_ECHO


def cmd_show_config(config: QcdConfig) -> int:
    console.print("[bold]Current Configuration:[/bold]\n")
    _emit(yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False).rstrip())
    _emit(f"\nDatabase: {config.db_path}")
    return EXIT_ECHO


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
