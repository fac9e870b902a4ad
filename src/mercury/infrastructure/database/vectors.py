"""sqlite-vec nearest-neighbour indexes over stored embeddings.

Each named index is a ``vec0`` virtual table keyed by user id. The
embedding dimension is only known once the word-vector file has been
read, so the table is created on the first write and backfilled from
the source column at that point. ``users.name_embedding`` stays the
record of truth; the virtual table is what KNN queries run against.

The extension is loaded into every SQLite connection by the engine's
connect hook (see :func:`load_extension`). Connections where loading
failed are flagged in ``Connection.info`` and never touch the tables.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import sqlite_vec
from sqlalchemy import Float, Text, select, text

from mercury.infrastructure.database.schema import users

if TYPE_CHECKING:
    from sqlalchemy import Column, Connection, Row

logger = logging.getLogger(__name__)

# Key in Connection.info recording whether sqlite-vec is loaded.
VEC_LOADED = "mercury.sqlite_vec"

# sqlite-vec refuses larger ``k`` values in a KNN query.
MAX_KNN = 4096

_DIM_RE = re.compile(r"float\[(\d+)\]", re.IGNORECASE)


class VectorIndexError(RuntimeError):
    """The vector index cannot serve a query (extension missing, dimension clash)."""


def load_extension(dbapi_conn: Any) -> bool:
    """Load sqlite-vec into a raw sqlite3 connection; False if this build cannot."""
    try:
        dbapi_conn.enable_load_extension(True)
        sqlite_vec.load(dbapi_conn)
        dbapi_conn.enable_load_extension(False)
    except (AttributeError, sqlite3.OperationalError) as exc:
        logger.warning("sqlite-vec extension not loaded: %s", exc)
        return False
    return True


def vec_loaded(conn: Connection) -> bool:
    return bool(conn.info.get(VEC_LOADED, False))


def distance_to_score(distance: float | None) -> float:
    """Map sqlite-vec cosine distance (``1 - cos``) to ``(1 + cos) / 2``.

    Examples:
        >>> distance_to_score(0.0)
        1.0
        >>> distance_to_score(1.0)
        0.5
    """
    if distance is None or distance != distance:  # NaN for zero vectors
        return 0.0
    return min(1.0, max(0.0, 1.0 - distance / 2.0))


@dataclass(frozen=True)
class VectorIndex:
    """A ``vec0`` table mirroring one embedding column of ``users``."""

    name: str
    table: str
    source: Column[Any]

    def dimension(self, conn: Connection) -> int | None:
        """Declared embedding width, or None while the table does not exist."""
        ddl = conn.execute(
            text("SELECT sql FROM sqlite_master WHERE type = 'table' AND name = :name"),
            {"name": self.table},
        ).scalar()
        if ddl is None:
            return None
        found = _DIM_RE.search(ddl)
        return int(found.group(1)) if found else None

    def ensure(self, conn: Connection, dim: int) -> None:
        """Create the table for *dim*-wide vectors and backfill it.

        Raises:
            VectorIndexError: If the table exists with another dimension.
        """
        current = self.dimension(conn)
        if current == dim:
            return
        if current is not None:
            msg = f"Vector index {self.name!r} holds {current}-d vectors, got {dim}-d"
            raise VectorIndexError(msg)

        conn.execute(
            text(
                f"CREATE VIRTUAL TABLE {self.table} USING vec0("
                f"user_id TEXT PRIMARY KEY, embedding FLOAT[{dim}] distance_metric=cosine)"
            )
        )
        rows = conn.execute(select(users.c.id, self.source).where(self.source.is_not(None)))
        backfilled = 0
        for user_id, vector in rows.all():
            if vector and len(vector) == dim:
                self._insert(conn, user_id, vector)
                backfilled += 1
        logger.info("Created vector index %s (dim=%d, %d rows)", self.name, dim, backfilled)

    def upsert(self, conn: Connection, user_id: str, vector: list[float]) -> None:
        self.ensure(conn, len(vector))
        # vec0 has no ON CONFLICT; replace by delete + insert.
        self.remove(conn, user_id)
        self._insert(conn, user_id, vector)

    def remove(self, conn: Connection, user_id: str) -> None:
        if self.dimension(conn) is None:
            return
        conn.execute(text(f"DELETE FROM {self.table} WHERE user_id = :uid"), {"uid": user_id})

    def knn(self, conn: Connection, vector: list[float], k: int) -> list[Row[Any]]:
        """``(user_id, distance)`` rows of the *k* nearest entries, closest first."""
        stmt = text(
            f"SELECT user_id, distance FROM {self.table} "
            "WHERE embedding MATCH :query AND k = :k "
            "ORDER BY distance"
        ).columns(user_id=Text, distance=Float)
        rows = conn.execute(
            stmt, {"query": sqlite_vec.serialize_float32(vector), "k": min(k, MAX_KNN)}
        ).all()
        return sorted(rows, key=lambda r: (r.distance, r.user_id))

    def _insert(self, conn: Connection, user_id: str, vector: list[float]) -> None:
        conn.execute(
            text(f"INSERT INTO {self.table}(user_id, embedding) VALUES (:uid, :emb)"),
            {"uid": user_id, "emb": sqlite_vec.serialize_float32(vector)},
        )


# Named vector indexes served by StoreSession.nearest_neighbors().
VECTOR_INDEXES: dict[str, VectorIndex] = {
    "user-names": VectorIndex("user-names", "user_names", users.c.name_embedding),
}
