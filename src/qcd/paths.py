"""Path normalization and validation."""

from __future__ import annotations

import os
from pathlib import Path

from qcd.errors import InvalidPath


def _check_utf8(path: str) -> None:
    # Undecodable bytes from os.fsdecode surface as lone surrogates
    try:
        path.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidPath(f"Only UTF-8 paths supported: {path!r}") from e


def validate_path(path: str | os.PathLike[str]) -> str:
    """
    Check that *path* is an absolute UTF-8 path and return it normalized.

    Raises:
        InvalidPath: if the path is relative, empty or not valid UTF-8.
    """
    text = os.fspath(path)
    if not text:
        raise InvalidPath("Empty path")
    _check_utf8(text)
    if not os.path.isabs(text):
        raise InvalidPath(f"Path is not absolute: {text}")
    return os.path.normpath(text)


def clean_path(path: str | os.PathLike[str], cwd: str | os.PathLike[str] | None = None) -> str:
    """
    Make *path* absolute against *cwd* (default: the process cwd) and normalize it.

    Symlinks are kept as given so the user sees the path they typed.
    """
    text = os.fspath(path)
    if not text:
        raise InvalidPath("Empty path")
    _check_utf8(text)
    text = os.path.expanduser(text)
    if not os.path.isabs(text):
        base = os.fspath(cwd) if cwd is not None else current_dir()
        text = os.path.join(base, text)
    return validate_path(text)


def current_dir() -> str:
    """Return the current working directory, preferring the shell's ``$PWD``."""
    pwd = os.environ.get("PWD")
    cwd = os.getcwd()
    # $PWD keeps symlinked paths intact; trust it only if it is the same directory
    if pwd and os.path.isabs(pwd):
        try:
            if Path(pwd).samefile(cwd):
                cwd = pwd
        except OSError:
            pass
    _check_utf8(cwd)
    return cwd
