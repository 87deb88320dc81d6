"""Alembic environment for deliveryctl migrations.

Online runs go through :func:`create_db_engine`, so migrations see the
same pragmas as the CLI and hold the write lock (``BEGIN IMMEDIATE``)
for their whole transaction.
"""

from __future__ import annotations

from pathlib import Path

from alembic import context
from sqlalchemy.engine import make_url

from deliveryctl.infrastructure.database.engine import BEGIN_MODE_OPTION, create_db_engine
from deliveryctl.infrastructure.database.schema import metadata

target_metadata = metadata


def _db_url() -> str:
    url = context.config.get_main_option("sqlalchemy.url")
    if url is None:
        msg = "sqlalchemy.url must be set in the Alembic config"
        raise RuntimeError(msg)
    return url


def run_migrations_offline() -> None:
    """Emit the migration SQL instead of executing it."""
    context.configure(
        url=_db_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    db_path = Path(make_url(_db_url()).database or "")
    lock_timeout = float(context.config.attributes.get("lock_timeout", 5.0))
    engine = create_db_engine(db_path, lock_timeout=lock_timeout)
    try:
        with engine.connect() as connection:
            connection.execution_options(**{BEGIN_MODE_OPTION: "IMMEDIATE"})
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                render_as_batch=True,
            )
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
