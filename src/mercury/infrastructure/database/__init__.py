"""SQLite database engine, schema and sqlite-vec indexes via SQLAlchemy Core."""

from mercury.infrastructure.database.engine import create_db_engine, init_database
from mercury.infrastructure.database.schema import metadata, relations, users
from mercury.infrastructure.database.vectors import VECTOR_INDEXES, VectorIndex, VectorIndexError

__all__ = [
    "VECTOR_INDEXES",
    "VectorIndex",
    "VectorIndexError",
    "create_db_engine",
    "init_database",
    "metadata",
    "relations",
    "users",
]
