"""MaintenanceService: schema status and migration with Alembic.

``apply`` runs CHECK, BACKUP, MIGRATE, REPORT in that order. A SQLite file
is copied to ``.mercury/backups/`` before anything is changed.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any

from sqlalchemy import inspect

from mercury.infrastructure.database.engine import sqlite_path
from mercury.infrastructure.database.migrations import (
    current_revision,
    head_revision,
    pending_revisions,
    stamp_head,
    upgrade_head,
)
from mercury.services._helpers import now_compact
from mercury.services.base import BaseService
from mercury.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)

BACKUP_DIRNAME = "backups"


class MaintenanceService(BaseService):
    """Reports and applies pending database migrations."""

    @property
    def _db_url(self) -> str:
        return self._store.settings.database_url

    def _tables_exist(self) -> bool:
        """True when ``users`` exists, stamped or not."""
        return "users" in inspect(self._store.engine).get_table_names()

    def _backup_db(self) -> Path | None:
        """Timestamped copy of the SQLite file; None for other databases."""
        db_file = sqlite_path(self._db_url)
        if db_file is None or not db_file.is_file():
            return None
        backup_dir = db_file.parent / BACKUP_DIRNAME
        backup_dir.mkdir(parents=True, exist_ok=True)
        target = backup_dir / f"{db_file.stem}-{now_compact()}{db_file.suffix}"
        shutil.copy2(db_file, target)
        logger.info("Backed up %s to %s", db_file, target)
        return target

    def check_pending(self) -> ServiceResult:
        """Report the stamped and head revisions and what lies between them."""
        op = "db_status"
        try:
            current = current_revision(self._store.engine)
            head = head_revision(self._db_url)
            pending: list[dict[str, Any]] = [
                {"revision": rev.revision, "description": rev.doc or ""}
                for rev in pending_revisions(self._db_url, current)
            ]
        except Exception as exc:
            return _failed(op, "CHECK_FAILED", f"Failed to check migrations: {exc}")

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

    def apply(self) -> ServiceResult:
        """Bring the database to head.

        Tables created by ``init_database`` without a stamp are stamped
        rather than re-created.
        """
        op = "db_upgrade"
        status = self.check_pending()
        if not status.ok:
            return status.model_copy(update={"op": op})

        head = status.data["head"]
        if status.data["pending_count"] == 0:
            return ServiceResult(
                ok=True,
                op=op,
                data={
                    "applied_count": 0,
                    "current": head,
                    "message": "Database is already up to date",
                },
            )

        backup_path = self._backup_db()
        backup = str(backup_path) if backup_path else None
        try:
            if status.data["current"] is None and self._tables_exist():
                stamp_head(self._db_url)
                action = "stamped"
            else:
                upgrade_head(self._db_url)
                action = "upgraded"
        except Exception as exc:
            return _failed(
                op, "MIGRATION_FAILED", f"Migration failed: {exc}", backup_path=backup
            )

        logger.info("Database %s to %s", action, head)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "applied_count": status.data["pending_count"],
                "action": action,
                "current": head,
                "backup_path": backup,
            },
        )

    def stamp_current(self) -> ServiceResult:
        """Mark a freshly created database as being at head."""
        op = "db_stamp"
        try:
            stamp_head(self._db_url)
            head = head_revision(self._db_url)
        except Exception as exc:
            return _failed(op, "STAMP_FAILED", f"Failed to stamp database: {exc}")
        return ServiceResult(ok=True, op=op, data={"stamped": True, "current": head})


def _failed(op: str, code: str, message: str, **detail: Any) -> ServiceResult:
    logger.warning("%s: %s", op, message)
    return ServiceResult(
        ok=False, op=op, error=ServiceError(code=code, message=message, detail=detail)
    )
