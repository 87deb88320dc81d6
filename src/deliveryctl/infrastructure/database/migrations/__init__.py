"""Alembic wiring for the delivery store.

No alembic.ini: the config is built in code and points at the
``versions/`` scripts next to this module.
"""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config


def build_config(db_path: Path, *, lock_timeout: float = 5.0) -> Config:
    """Alembic config for the store database at *db_path*.

    *lock_timeout* is handed to the migration engine so migrations wait
    for a busy writer the same way the CLI does.
    """
    cfg = Config()
    cfg.set_main_option("script_location", str(Path(__file__).parent))
    cfg.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    cfg.attributes["lock_timeout"] = lock_timeout
    return cfg


def stamp_head(db_path: Path, *, lock_timeout: float = 5.0) -> None:
    """Record a freshly created database as being at the head revision."""
    command.stamp(build_config(db_path, lock_timeout=lock_timeout), "head")
