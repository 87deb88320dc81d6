"""UpgradeService — bring a store database to the latest schema revision.

``apply`` runs CHECK, then BACKUP, then MIGRATE. Stores whose tables
were created before version tracking (``create_all`` without a stamp)
are stamped rather than migrated, since the baseline already matches.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import inspect

from deliveryctl.infrastructure.database.migrations import build_config
from deliveryctl.services.base import BaseService
from deliveryctl.services.result import ServiceResult

logger = logging.getLogger(__name__)

BACKUP_DIRNAME = "backups"


class UpgradeService(BaseService):
    """Alembic migrations for the store database."""

    def check_pending(self) -> ServiceResult:
        """Report the current and head revisions and what lies between."""
        op = "upgrade"
        try:
            script = ScriptDirectory.from_config(self._config())
            head = script.get_current_head()
            with self._store.read() as conn:
                current = MigrationContext.configure(conn).get_current_revision()
            pending = _pending_revisions(script, head, current)
        except Exception as exc:
            return ServiceResult.failure(op, "CHECK_FAILED", f"Failed to check migrations: {exc}")

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "pending_count": len(pending),
                "pending": pending,
                "current": current,
                "head": head,
            },
        )

    def apply(self, *, backup: bool = True) -> ServiceResult:
        """Apply every pending revision, backing the database up first."""
        op = "upgrade"
        check = self.check_pending()
        if not check.ok:
            return check

        pending_count = check.data["pending_count"]
        head = check.data["head"]
        if pending_count == 0:
            return ServiceResult(
                ok=True,
                op=op,
                data={
                    "applied_count": 0,
                    "current": head,
                    "message": "Database is already up to date",
                },
            )

        backup_path: Path | None = None
        if backup:
            try:
                backup_path = self._backup_db()
            except (OSError, sqlite3.Error) as exc:
                return ServiceResult.failure(op, "BACKUP_FAILED", f"Backup failed: {exc}")

        cfg = self._config()
        stamp_only = check.data["current"] is None and self._tables_exist()
        try:
            if stamp_only:
                command.stamp(cfg, "head")
            else:
                command.upgrade(cfg, "head")
        except Exception as exc:
            message = f"Migration failed: {exc}"
            if backup_path is not None:
                message += f". Backup at: {backup_path}"
            return ServiceResult.failure(
                op,
                "MIGRATION_FAILED",
                message,
                backup_path=str(backup_path) if backup_path else None,
            )

        logger.debug("Database %s to %s", "stamped" if stamp_only else "migrated", head)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "applied_count": pending_count,
                "current": head,
                "stamped": stamp_only,
                "backup_path": str(backup_path) if backup_path else None,
            },
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _config(self) -> Config:
        return build_config(
            self._store.db_path, lock_timeout=self._store.settings.store.lock_timeout
        )

    def _tables_exist(self) -> bool:
        return "orders" in inspect(self._store.engine).get_table_names()

    def _backup_db(self) -> Path:
        """Snapshot the live database (WAL contents included) into ``backups/``."""
        backups = self._store.db_path.parent / BACKUP_DIRNAME
        backups.mkdir(exist_ok=True)
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S")
        target = backups / f"{self._store.db_path.stem}-{stamp}.db"

        source = sqlite3.connect(self._store.db_path)
        dest = sqlite3.connect(target)
        try:
            source.backup(dest)
        finally:
            dest.close()
            source.close()
        logger.debug("Database backed up to %s", target)
        return target


def _pending_revisions(
    script: ScriptDirectory, head: str | None, current: str | None
) -> list[dict[str, Any]]:
    """Revisions from *head* down to (excluding) *current*, newest first."""
    pending: list[dict[str, Any]] = []
    rev = script.get_revision(head) if head is not None else None
    while rev is not None and rev.revision != current:
        pending.append({"revision": rev.revision, "description": rev.doc or ""})
        if rev.down_revision is None:
            break
        rev = script.get_revision(str(rev.down_revision))
    return pending
