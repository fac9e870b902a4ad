"""Tests for MaintenanceService: database migration with Alembic."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from sqlalchemy import create_engine, inspect

from mercury.infrastructure.store import GraphStore
from mercury.services.maintenance import MaintenanceService


def _bare_store(tmp_path: Path) -> MagicMock:
    """A store stand-in over an empty SQLite file (no tables, no stamp)."""
    url = f"sqlite:///{tmp_path / 'bare.db'}"
    store = MagicMock()
    store.engine = create_engine(url)
    store.settings.database_url = url
    return store


class TestCheckPending:
    def test_stamped_database_is_current(self, store: GraphStore) -> None:
        svc = MaintenanceService(store)
        svc.stamp_current()
        result = svc.check_pending()
        assert result.ok
        assert result.data["pending_count"] == 0
        assert result.data["current"] == result.data["head"]

    def test_unstamped_database(self, store: GraphStore) -> None:
        result = MaintenanceService(store).check_pending()
        assert result.ok
        assert result.data["current"] is None
        assert result.data["head"] == "001_baseline"
        (pending,) = result.data["pending"]
        assert pending["revision"] == "001_baseline"
        assert pending["description"].startswith("Baseline schema")


class TestApply:
    def test_already_current(self, store: GraphStore) -> None:
        svc = MaintenanceService(store)
        svc.stamp_current()
        result = svc.apply()
        assert result.ok
        assert result.data["applied_count"] == 0
        assert "already up to date" in result.data["message"].lower()

    def test_existing_tables_are_stamped(self, store: GraphStore) -> None:
        result = MaintenanceService(store).apply()
        assert result.ok
        assert result.data["action"] == "stamped"
        assert result.data["applied_count"] == 1
        assert MaintenanceService(store).check_pending().data["pending_count"] == 0

    def test_creates_backup(self, store: GraphStore) -> None:
        result = MaintenanceService(store).apply()
        backup = Path(result.data["backup_path"])
        assert backup.is_file()
        assert backup.parent.name == "backups"

    def test_empty_database_is_upgraded(self, tmp_path: Path) -> None:
        store = _bare_store(tmp_path)
        result = MaintenanceService(store).apply()
        assert result.ok, result.error
        assert result.data["action"] == "upgraded"
        assert result.data["backup_path"] is None
        tables = set(inspect(store.engine).get_table_names())
        assert {"users", "relations", "alembic_version"} <= tables


class TestStampCurrent:
    def test_stamp_current(self, store: GraphStore) -> None:
        result = MaintenanceService(store).stamp_current()
        assert result.ok
        assert result.data == {"stamped": True, "current": "001_baseline"}


class TestTablesExist:
    def test_true_for_store(self, store: GraphStore) -> None:
        assert MaintenanceService(store)._tables_exist() is True

    def test_false_on_empty_db(self, tmp_path: Path) -> None:
        assert MaintenanceService(_bare_store(tmp_path))._tables_exist() is False
