"""Alembic environment for mercury; executed by ``alembic.command``, not imported."""

from __future__ import annotations

from typing import Any

from alembic import context
from sqlalchemy import pool

from mercury.infrastructure.database.engine import create_db_engine
from mercury.infrastructure.database.schema import metadata


def _configure(**options: Any) -> None:
    # Batch mode lets ALTER-style operations work on SQLite.
    context.configure(target_metadata=metadata, render_as_batch=True, **options)


def main() -> None:
    url = context.config.get_main_option("sqlalchemy.url")
    if not url:
        msg = "sqlalchemy.url is not set on the Alembic config"
        raise RuntimeError(msg)

    if context.is_offline_mode():
        _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
        with context.begin_transaction():
            context.run_migrations()
        return

    engine = create_db_engine(url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _configure(connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


main()
