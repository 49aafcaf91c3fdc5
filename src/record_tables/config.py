"""Configuration for the command-line tools.

Settings come from environment variables and may be overridden by
command-line flags; library code takes its paths as arguments instead.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path

from record_tables.catalog import DEFAULT_DEFINITIONS

DB_ENV = "RECORD_TABLES_DB"
DEFINITIONS_ENV = "RECORD_TABLES_DEFINITIONS"
DEFAULT_DB_PATH = Path("db")


@dataclass(frozen=True)
class Settings:
    """Typed view of the environment."""

    db_path: Path
    definitions_path: Path

    def with_overrides(
        self, db_path: Path | None = None, definitions_path: Path | None = None
    ) -> Settings:
        """Return a copy with any given (non-None) values replaced."""
        changes = {}
        if db_path is not None:
            changes["db_path"] = db_path
        if definitions_path is not None:
            changes["definitions_path"] = definitions_path
        return replace(self, **changes)


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    db = os.getenv(DB_ENV)
    definitions = os.getenv(DEFINITIONS_ENV)
    return Settings(
        db_path=Path(db) if db else DEFAULT_DB_PATH,
        definitions_path=Path(definitions) if definitions else DEFAULT_DEFINITIONS,
    )
