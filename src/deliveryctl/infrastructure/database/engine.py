"""Database engine setup for SQLite with WAL mode and explicit BEGIN.

SQLite is the store: WAL mode for concurrent readers, foreign keys on,
and transactions opened by SQLAlchemy rather than by pysqlite. Taking
over BEGIN is what makes SAVEPOINT work under pysqlite and lets write
units of work open with ``BEGIN IMMEDIATE``, which takes the database
write lock before any rule reads state. Readers keep a deferred BEGIN.

The DB is stored at {store_root}/.deliveryctl/{db_filename}.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from deliveryctl.infrastructure.database.schema import metadata
from deliveryctl.infrastructure.database.views import create_views

if TYPE_CHECKING:
    from sqlalchemy import Connection

STATE_DIRNAME = ".deliveryctl"
DEFAULT_DB_FILENAME = "delivery.db"

# Execution option consulted by the "begin" listener.
BEGIN_MODE_OPTION = "sqlite_begin_mode"
_BEGIN_MODES = frozenset({"DEFERRED", "IMMEDIATE", "EXCLUSIVE"})


def create_db_engine(db_path: Path, *, lock_timeout: float = 5.0) -> Engine:
    """Create a SQLite engine with WAL mode, foreign keys, and managed BEGIN.

    *lock_timeout* is how long (seconds) a writer waits for another
    writer's lock before failing with ``database is locked``.
    """
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"timeout": lock_timeout, "check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn: Connection) -> None:
        mode = conn.get_execution_options().get(BEGIN_MODE_OPTION, "DEFERRED")
        if mode not in _BEGIN_MODES:
            msg = f"Unsupported SQLite BEGIN mode: {mode!r}"
            raise ValueError(msg)
        conn.exec_driver_sql(f"BEGIN {mode}")

    return engine


def db_path_for(store_root: Path, db_filename: str = DEFAULT_DB_FILENAME) -> Path:
    """Location of the database file for a store rooted at *store_root*."""
    return store_root / STATE_DIRNAME / db_filename


def init_database(
    store_root: Path,
    *,
    db_filename: str = DEFAULT_DB_FILENAME,
    lock_timeout: float = 5.0,
) -> Engine:
    """Initialize the store database under ``{store_root}/.deliveryctl/``.

    Creates the state directory, all tables from :data:`schema.metadata`,
    and the read-projection views.

    Idempotent — safe to call on an existing store.

    Returns the engine ready for use.
    """
    db_path = db_path_for(store_root, db_filename)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path, lock_timeout=lock_timeout)

    metadata.create_all(engine)

    with engine.begin() as conn:
        create_views(conn)

    return engine
