"""Database engine setup for SQLite with WAL mode.

Connections run in WAL mode with foreign keys on, so deleting a user
cascades to its relations. Each one also loads the sqlite-vec extension.
The DB is stored at ``{root}/.mercury/mercury.db`` unless ``[database] url`` says otherwise.

Core rather than ORM: each operation is a short request-scoped unit of
work and never needs an identity map.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

from mercury.infrastructure.database.schema import metadata
from mercury.infrastructure.database.vectors import VEC_LOADED, load_extension


def create_db_engine(url: str, *, echo: bool = False, poolclass: Any = None) -> Engine:
    """Create an engine; SQLite connections get WAL, foreign keys and sqlite-vec."""
    options: dict[str, Any] = {"echo": echo}
    if poolclass is not None:
        options["poolclass"] = poolclass
    engine = create_engine(url, **options)

    if engine.dialect.name == "sqlite":
        in_memory = make_url(url).database in (None, "", ":memory:")

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_conn: Any, record: Any) -> None:
            cursor = dbapi_conn.cursor()
            if not in_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            record.info[VEC_LOADED] = load_extension(dbapi_conn)
            # Hand transaction control to SQLAlchemy (see _do_begin).
            dbapi_conn.isolation_level = None

        @event.listens_for(engine, "begin")
        def _do_begin(conn: Any) -> None:
            # pysqlite defers BEGIN until the first write, which would leave
            # the read half of a check-then-write outside the transaction.
            conn.exec_driver_sql("BEGIN")

    return engine


def sqlite_path(url: str) -> Path | None:
    """Return the database file for a SQLite *url*, or None for other URLs."""
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite"):
        return None
    if parsed.database in (None, "", ":memory:"):
        return None
    return Path(parsed.database)


def init_database(url: str, *, echo: bool = False) -> Engine:
    """Initialize the mercury database at *url*.

    Creates the parent directory of a SQLite file and all tables from
    :data:`schema.metadata`.

    Idempotent; safe to call on an existing database.

    Returns the engine ready for use.
    """
    db_file = sqlite_path(url)
    if db_file is not None:
        db_file.parent.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(url, echo=echo)
    metadata.create_all(engine)
    return engine
