"""
Logging utilities for qcd.

Everything is written to stderr: stdout is reserved for the single path
(or message) the shell wrapper consumes.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

# Package root logger
_root_logger = logging.getLogger("qcd")


def _coerce_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def setup_logging(
    level: str | int = "WARNING",
    format: str | None = None,
    stream: TextIO | None = None,
    file: str | None = None,
) -> None:
    """
    Configure logging for qcd.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL) or int
        format: Custom log format string
        stream: Output stream (defaults to stderr)
        file: Optional file path to write logs

    Example:
        from qcd.logging import setup_logging

        setup_logging("DEBUG")
        setup_logging("INFO", file="qcd.log")
    """
    level = _coerce_level(level)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()
    # Keep records away from the root logger's handlers
    _root_logger.propagate = False

    if format is None:
        format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    formatter = logging.Formatter(format)

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(level)
    _root_logger.addHandler(stream_handler)

    if file:
        file_handler = logging.FileHandler(file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        _root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a submodule.

    Args:
        name: Submodule name (e.g., "store", "stack")

    Returns:
        Logger instance
    """
    if name.startswith("qcd."):
        return logging.getLogger(name)
    return logging.getLogger(f"qcd.{name}")

