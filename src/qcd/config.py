"""
Configuration for qcd.

Settings come from three layers, later ones winning: built-in defaults, an
optional YAML file, and the ``QCD_RS_*`` environment variables exported by
the shell integration.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from qcd.errors import ConfigError

DEFAULT_DB_NAME = ".qcd_rs.sqlite"
DEFAULT_RETENTION_DAYS = 21

# Length of an id produced by ``--pid`` (timestamp with nanoseconds)
SESSION_ID_MIN_LENGTH = 23

ENV_DB_PATH = "QCD_RS_DBPATH"
ENV_DB_NAME = "QCD_RS_DBNAME"
ENV_SESSION_ID = "QCD_RS_SESSIONID"
ENV_CONFIG = "QCD_RS_CONFIG"
ENV_LOG_LEVEL = "QCD_RS_LOGLEVEL"


def default_config_path() -> Path:
    """Default location of the optional YAML config file."""
    return Path.home() / ".config" / "qcd" / "config.yaml"


@dataclass
class QcdConfig:
    """
    Runtime configuration.

    Example YAML:
        db_dir: ~/.local/share/qcd
        db_name: bookmarks.sqlite
        stack_retention_days: 14
        busy_timeout_seconds: 2.5
        log_level: INFO
    """

    db_dir: Path | None = None  # None means the home directory
    db_name: str = DEFAULT_DB_NAME
    session_id: str = ""
    stack_retention_days: int = DEFAULT_RETENTION_DAYS
    busy_timeout_seconds: float = 5.0
    log_level: str = "WARNING"

    @property
    def db_path(self) -> Path:
        """Full path of the sqlite database file."""
        base = self.db_dir.expanduser() if self.db_dir is not None else Path.home()
        return base / self.db_name

    @property
    def has_session(self) -> bool:
        """Whether ``session_id`` looks like an id handed out by ``--pid``."""
        return len(self.session_id) >= SESSION_ID_MIN_LENGTH

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QcdConfig:
        """Create config from a dictionary."""
        return cls(
            db_dir=Path(data["db_dir"]) if data.get("db_dir") else None,
            db_name=data.get("db_name") or DEFAULT_DB_NAME,
            session_id=str(data.get("session_id") or ""),
            stack_retention_days=int(data.get("stack_retention_days", DEFAULT_RETENTION_DAYS)),
            busy_timeout_seconds=float(data.get("busy_timeout_seconds", 5.0)),
            log_level=str(data.get("log_level", "WARNING")).upper(),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> QcdConfig:
        """Load config from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_string(cls, content: str) -> QcdConfig:
        """Load config from a YAML string."""
        data = yaml.safe_load(content)
        return cls.from_dict(data or {})

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return {
            "db_dir": str(self.db_dir) if self.db_dir else None,
            "db_name": self.db_name,
            "session_id": self.session_id,
            "stack_retention_days": self.stack_retention_days,
            "busy_timeout_seconds": self.busy_timeout_seconds,
            "log_level": self.log_level,
        }

    def apply_env(self, environ: Mapping[str, str] | None = None) -> QcdConfig:
        """Override fields from ``QCD_RS_*`` environment variables, in place."""
        env = os.environ if environ is None else environ
        if env.get(ENV_DB_PATH):
            self.db_dir = Path(env[ENV_DB_PATH])
        if env.get(ENV_DB_NAME):
            self.db_name = env[ENV_DB_NAME]
        if ENV_SESSION_ID in env:
            self.session_id = env[ENV_SESSION_ID]
        if env.get(ENV_LOG_LEVEL):
            self.log_level = env[ENV_LOG_LEVEL].upper()
        return self

    @classmethod
    def load(cls, environ: Mapping[str, str] | None = None) -> QcdConfig:
        """
        Build the effective config: defaults, then the YAML file named by
        ``QCD_RS_CONFIG`` (or the default path if it exists), then env vars.
        """
        env = os.environ if environ is None else environ
        explicit = env.get(ENV_CONFIG)
        path = Path(explicit).expanduser() if explicit else default_config_path()

        if explicit or path.exists():
            try:
                config = cls.from_yaml(path)
            except (OSError, yaml.YAMLError, AttributeError, TypeError, ValueError) as e:
                raise ConfigError(f"Failed to load config {path}: {e}") from e
        else:
            config = cls()
        return config.apply_env(env)
