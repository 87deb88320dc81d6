"""InitService — create a store directory, database, and config file."""

from __future__ import annotations

from pathlib import Path

from deliveryctl.config.discovery import CONFIG_FILENAME
from deliveryctl.config.settings import DeliverySettings
from deliveryctl.infrastructure.database.migrations import stamp_head
from deliveryctl.infrastructure.store import Store
from deliveryctl.services.result import ServiceResult

_DEFAULT_CONFIG = """\
[store]
db_filename = "{db_filename}"
lock_timeout = {lock_timeout}

[rules]
completed_status = "{completed_status}"
"""


class InitService:
    """Store initialization (no Store exists yet, so not a BaseService)."""

    @staticmethod
    def init_store(path: Path, *, db_filename: str | None = None) -> ServiceResult:
        """Initialize a store at *path*.

        Writes ``deliveryctl.toml`` (unless one exists), creates the
        database with its views, and stamps it at the migration head.
        Re-running on an existing store is safe.
        """
        op = "init"
        path.mkdir(parents=True, exist_ok=True)
        config_path = path / CONFIG_FILENAME
        created_config = False

        overrides = {"store": {"db_filename": db_filename}} if db_filename else {}
        settings = DeliverySettings.from_cli(
            config_path=str(config_path) if config_path.is_file() else None,
            store_root=path,
            **overrides,
        )

        if not config_path.exists():
            config_path.write_text(
                _DEFAULT_CONFIG.format(
                    db_filename=settings.store.db_filename,
                    lock_timeout=settings.store.lock_timeout,
                    completed_status=settings.rules.completed_status,
                ),
                encoding="utf-8",
            )
            created_config = True

        try:
            store = Store(settings)
            try:
                stamp_head(store.db_path, lock_timeout=settings.store.lock_timeout)
            finally:
                store.close()
        except Exception as exc:
            return ServiceResult.failure(op, "INIT_FAILED", f"Initialization failed: {exc}")

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "root": str(path),
                "db_path": str(store.db_path),
                "config_path": str(config_path),
                "config_created": created_config,
            },
        )
