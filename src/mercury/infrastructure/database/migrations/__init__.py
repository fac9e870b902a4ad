"""Alembic wiring for the mercury schema, configured in code (no alembic.ini).

Revision scripts live in ``versions/`` beside this module; ``env.py`` runs
them against the URL placed on the config by :func:`build_config`.
"""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import Script, ScriptDirectory
from sqlalchemy.engine import Engine

SCRIPT_LOCATION = Path(__file__).parent


def build_config(db_url: str) -> Config:
    """Alembic config for *db_url*.

    ``%`` is doubled because Alembic reads main options through
    ConfigParser interpolation (URL-encoded passwords contain it).
    """
    cfg = Config()
    cfg.set_main_option("script_location", str(SCRIPT_LOCATION))
    cfg.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))
    return cfg


def head_revision(db_url: str) -> str | None:
    return ScriptDirectory.from_config(build_config(db_url)).get_current_head()


def current_revision(engine: Engine) -> str | None:
    """Revision stamped in ``alembic_version``; None for an unstamped database."""
    with engine.connect() as conn:
        return MigrationContext.configure(conn).get_current_revision()


def pending_revisions(db_url: str, current: str | None) -> list[Script]:
    """Revisions above *current*, newest first."""
    pending: list[Script] = []
    for rev in ScriptDirectory.from_config(build_config(db_url)).walk_revisions():
        if rev.revision == current:
            break
        pending.append(rev)
    return pending


def upgrade_head(db_url: str) -> None:
    command.upgrade(build_config(db_url), "head")


def stamp_head(db_url: str) -> None:
    """Record the head revision without running any migration.

    ``mercury init`` uses this because ``init_database`` already created
    the tables from the current metadata.
    """
    command.stamp(build_config(db_url), "head")
