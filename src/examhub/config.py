"""Configuration loading for examhub.

Settings come from environment variables so the API process can be
configured without code changes.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_DB_PATH = "examhub.db"
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = "INFO"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when configuration is invalid."""


@dataclass(frozen=True)
class Settings:
    """examhub process settings.

    Attributes:
        db_path: SQLite database file, or ":memory:".
        log_dir: Directory for rotating log files.
        log_level: Root examhub log level.
        log_to_console: Whether logs are also written to stderr.
    """

    db_path: str = DEFAULT_DB_PATH
    log_dir: str = DEFAULT_LOG_DIR
    log_level: str = DEFAULT_LOG_LEVEL
    log_to_console: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Load settings from EXAMHUB_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ.

        Raises:
            ConfigError: If a variable has an invalid value.
        """
        env = os.environ if environ is None else environ

        db_path = env.get("EXAMHUB_DB_PATH", DEFAULT_DB_PATH).strip()
        if not db_path:
            raise ConfigError("EXAMHUB_DB_PATH must not be empty")

        log_level = env.get("EXAMHUB_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
        if log_level not in VALID_LOG_LEVELS:
            raise ConfigError(
                f"EXAMHUB_LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}, got '{log_level}'"
            )

        console = env.get("EXAMHUB_LOG_CONSOLE", "true").strip().lower()
        if console not in ("true", "false", "1", "0"):
            raise ConfigError(f"EXAMHUB_LOG_CONSOLE must be true or false, got '{console}'")

        return cls(
            db_path=db_path,
            log_dir=env.get("EXAMHUB_LOG_DIR", DEFAULT_LOG_DIR),
            log_level=log_level,
            log_to_console=console in ("true", "1"),
        )
