"""GraphStore: property-graph access over the users/relations tables.

The GraphStore is the single dependency injected into every service. It
owns the database engine and the word-vector table. Each logical operation
acquires one :class:`StoreSession` through :meth:`GraphStore.session`
(reads) or :meth:`GraphStore.transaction` (mutations); the connection is
released on every exit path, including errors.

Relation rows are keyed by the unordered pair, so the pattern queries
below treat friendship as symmetric regardless of who sent the invite.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, delete, func, insert, or_, select, union, update
from sqlalchemy.dialects import sqlite

from mercury.domain.relations import RelationKind, normalize_pair
from mercury.domain.users import ExternalIdentity, NativeIdentity, User
from mercury.infrastructure.database.engine import init_database
from mercury.infrastructure.database.schema import relations, users
from mercury.infrastructure.database.vectors import (
    VECTOR_INDEXES,
    VectorIndexError,
    distance_to_score,
    vec_loaded,
)
from mercury.infrastructure.embeddings import WordVectors

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection, Row
    from sqlalchemy.engine import Engine
    from sqlalchemy.sql import ColumnElement, CompoundSelect, Select

    from mercury.config.settings import MercurySettings

logger = logging.getLogger(__name__)

_MATCHABLE = frozenset(
    {"id", "first_name", "last_name", "country", "mail", "identity_kind", "issuer", "issuer_id"}
)


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def user_to_row(user: User, now: str) -> dict[str, Any]:
    """Flatten a :class:`User` into ``users`` column values."""
    identity = user.identity
    row: dict[str, Any] = {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "country": user.country,
        "profile_picture": user.profile_picture,
        "mail": user.mail,
        "identity_kind": identity.kind,
        "password": None,
        "issuer": None,
        "issuer_id": None,
        "name_embedding": user.name_embedding or None,
        "created": now,
        "modified": now,
    }
    if isinstance(identity, NativeIdentity):
        row["password"] = identity.password
    else:
        row["issuer"] = identity.issuer
        row["issuer_id"] = identity.issuer_id
    return row


def row_to_user(row: Row[Any]) -> User:
    """Rebuild a :class:`User` from a ``users`` row."""
    identity: NativeIdentity | ExternalIdentity
    if row.identity_kind == "native":
        identity = NativeIdentity(password=row.password)
    else:
        identity = ExternalIdentity(issuer=row.issuer, issuer_id=row.issuer_id)
    return User(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        country=row.country,
        profile_picture=row.profile_picture,
        mail=row.mail,
        identity=identity,
        name_embedding=list(row.name_embedding or []),
    )


@dataclass(frozen=True)
class RelationRecord:
    """The single relation row stored for a pair, if any."""

    kind: str
    sender_id: str


# ---------------------------------------------------------------------------
# Pattern fragments
# ---------------------------------------------------------------------------


def _pair_clause(first_id: str, second_id: str) -> ColumnElement[bool]:
    low, high = normalize_pair(first_id, second_id)
    return and_(relations.c.user_low == low, relations.c.user_high == high)


def _friend_ids(user_id: str) -> CompoundSelect:
    """Ids connected to *user_id* by a friendship, in either column."""
    kind = relations.c.kind == RelationKind.FRIENDSHIP
    return union(
        select(relations.c.user_high.label("uid")).where(kind, relations.c.user_low == user_id),
        select(relations.c.user_low.label("uid")).where(kind, relations.c.user_high == user_id),
    )


def _friend_of_friend_ids(user_id: str) -> CompoundSelect:
    """Ids two friendship hops away from *user_id* (may include one-hop ids)."""
    kind = relations.c.kind == RelationKind.FRIENDSHIP
    return union(
        select(relations.c.user_high.label("uid")).where(
            kind, relations.c.user_low.in_(_friend_ids(user_id))
        ),
        select(relations.c.user_low.label("uid")).where(
            kind, relations.c.user_high.in_(_friend_ids(user_id))
        ),
    )


def _inviter_ids(user_id: str) -> Select[Any]:
    """Ids that sent a pending invite to *user_id*."""
    return select(relations.c.sender_id).where(
        relations.c.kind == RelationKind.INVITE,
        or_(relations.c.user_low == user_id, relations.c.user_high == user_id),
        relations.c.sender_id != user_id,
    )


def _user_filters(country: str, exclude_id: str) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []
    if country:
        clauses.append(users.c.country == country)
    if exclude_id:
        clauses.append(users.c.id != exclude_id)
    return clauses


# ---------------------------------------------------------------------------
# StoreSession, yielded to callers within session()/transaction()
# ---------------------------------------------------------------------------


@dataclass
class StoreSession:
    """One connection's worth of graph queries.

    Every method runs against ``conn``; whether the work commits is decided
    by the context manager that produced the session.
    """

    conn: Connection

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def find_user(self, **props: str) -> User | None:
        """Exact-property match on ``users``; first row by id or None."""
        unknown = set(props) - _MATCHABLE
        if unknown:
            msg = f"Cannot match users on {sorted(unknown)}"
            raise ValueError(msg)
        stmt = select(users).order_by(users.c.id).limit(1)
        for key, value in props.items():
            stmt = stmt.where(users.c[key] == value)
        row = self.conn.execute(stmt).first()
        return row_to_user(row) if row is not None else None

    def user_exists(self, user_id: str) -> bool:
        row = self.conn.execute(select(users.c.id).where(users.c.id == user_id)).first()
        return row is not None

    def insert_user(self, user: User, now: str) -> None:
        self.conn.execute(insert(users).values(**user_to_row(user, now)))
        if user.name_embedding:
            self._index_embedding(user.id, user.name_embedding)

    def update_user(self, user_id: str, values: dict[str, Any], now: str) -> bool:
        """Overwrite columns of one user. Returns False if no row matched."""
        result = self.conn.execute(
            update(users).where(users.c.id == user_id).values(**values, modified=now)
        )
        if result.rowcount > 0 and values.get("name_embedding"):
            self._index_embedding(user_id, values["name_embedding"])
        return result.rowcount > 0

    def delete_user(self, user_id: str) -> bool:
        """Delete one user; relation rows go with it via ON DELETE CASCADE."""
        result = self.conn.execute(delete(users).where(users.c.id == user_id))
        if vec_loaded(self.conn):
            for index in VECTOR_INDEXES.values():
                index.remove(self.conn, user_id)
        return result.rowcount > 0

    def all_users(self) -> list[User]:
        rows = self.conn.execute(select(users).order_by(users.c.id))
        return [row_to_user(r) for r in rows]

    def count_users(self, *, country: str = "", exclude_id: str = "") -> int:
        stmt = select(func.count()).select_from(users).where(*_user_filters(country, exclude_id))
        return int(self.conn.execute(stmt).scalar_one())

    def list_users(
        self, *, country: str = "", exclude_id: str = "", skip: int = 0, limit: int = 100
    ) -> list[User]:
        """Users matching the filters, ordered by id, windowed."""
        stmt = (
            select(users)
            .where(*_user_filters(country, exclude_id))
            .order_by(users.c.id)
            .offset(skip)
            .limit(limit)
        )
        return [row_to_user(r) for r in self.conn.execute(stmt)]

    def count_embedded_users(self, *, country: str = "", exclude_id: str = "") -> int:
        stmt = (
            select(func.count())
            .select_from(users)
            .where(users.c.name_embedding.is_not(None), *_user_filters(country, exclude_id))
        )
        return int(self.conn.execute(stmt).scalar_one())

    # ------------------------------------------------------------------
    # Nearest neighbours
    # ------------------------------------------------------------------

    def nearest_neighbors(
        self,
        vector: list[float],
        k: int,
        *,
        index_name: str = "user-names",
    ) -> list[tuple[User, float]]:
        """Top-*k* users by cosine score against *vector*, best first.

        KNN query on the named sqlite-vec index; ties keep id order.

        Raises:
            ValueError: If *index_name* is unknown.
            VectorIndexError: If sqlite-vec is not loaded or *vector* has
                another dimension than the index.
        """
        index = VECTOR_INDEXES.get(index_name)
        if index is None:
            msg = f"Unknown vector index: {index_name!r}"
            raise ValueError(msg)
        if k <= 0:
            return []
        if not vec_loaded(self.conn):
            msg = "sqlite-vec extension is not loaded"
            raise VectorIndexError(msg)
        dim = index.dimension(self.conn)
        if dim is None:
            return []
        if dim != len(vector):
            msg = f"Vector index {index_name!r} holds {dim}-d vectors, got {len(vector)}-d"
            raise VectorIndexError(msg)

        hits = index.knn(self.conn, vector, k)
        if not hits:
            return []
        rows = self.conn.execute(select(users).where(users.c.id.in_([h.user_id for h in hits])))
        by_id = {row.id: row for row in rows}
        return [
            (row_to_user(by_id[h.user_id]), distance_to_score(h.distance))
            for h in hits
            if h.user_id in by_id
        ]

    def _index_embedding(self, user_id: str, vector: list[float]) -> None:
        if not vec_loaded(self.conn):
            logger.warning("sqlite-vec not loaded; user %s is not indexed for search", user_id)
            return
        for index in VECTOR_INDEXES.values():
            index.upsert(self.conn, user_id, vector)

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------

    def relation(self, first_id: str, second_id: str) -> RelationRecord | None:
        row = self.conn.execute(
            select(relations.c.kind, relations.c.sender_id).where(
                _pair_clause(first_id, second_id)
            )
        ).first()
        if row is None:
            return None
        return RelationRecord(kind=row.kind, sender_id=row.sender_id)

    def are_friends(self, first_id: str, second_id: str) -> bool:
        record = self.relation(first_id, second_id)
        return record is not None and record.kind == RelationKind.FRIENDSHIP

    def merge_invite(self, sender_id: str, recipient_id: str, now: str) -> bool:
        """Create ``INVITE(sender -> recipient)`` unless the pair already has a row.

        Returns True when the pair now holds exactly that invite (freshly
        inserted or already present), False when another relation occupies
        the pair.
        """
        low, high = normalize_pair(sender_id, recipient_id)
        stmt = self._insert_ignore().values(
            user_low=low,
            user_high=high,
            kind=RelationKind.INVITE,
            sender_id=sender_id,
            created=now,
            modified=now,
        )
        self.conn.execute(stmt)
        record = self.relation(sender_id, recipient_id)
        return (
            record is not None
            and record.kind == RelationKind.INVITE
            and record.sender_id == sender_id
        )

    def accept_invite(self, recipient_id: str, sender_id: str, now: str) -> bool:
        """Turn ``INVITE(sender -> recipient)`` into a friendship in one statement."""
        result = self.conn.execute(
            update(relations)
            .where(
                _pair_clause(recipient_id, sender_id),
                relations.c.kind == RelationKind.INVITE,
                relations.c.sender_id == sender_id,
            )
            .values(kind=RelationKind.FRIENDSHIP, modified=now)
        )
        return result.rowcount > 0

    def delete_invite(self, first_id: str, second_id: str) -> bool:
        """Delete a pending invite between the pair, whichever side sent it."""
        result = self.conn.execute(
            delete(relations).where(
                _pair_clause(first_id, second_id), relations.c.kind == RelationKind.INVITE
            )
        )
        return result.rowcount > 0

    def delete_friendship(self, first_id: str, second_id: str) -> bool:
        result = self.conn.execute(
            delete(relations).where(
                _pair_clause(first_id, second_id), relations.c.kind == RelationKind.FRIENDSHIP
            )
        )
        return result.rowcount > 0

    def _insert_ignore(self) -> Any:
        return sqlite.insert(relations).on_conflict_do_nothing()

    # ------------------------------------------------------------------
    # Relation views (paginated)
    # ------------------------------------------------------------------

    def list_friends(self, user_id: str, *, skip: int, limit: int) -> list[User]:
        return self._window(self._friends_where(user_id), users.c.id, skip=skip, limit=limit)

    def count_friends(self, user_id: str) -> int:
        return self._count(self._friends_where(user_id))

    def list_incoming_invites(self, user_id: str, *, skip: int, limit: int) -> list[User]:
        return self._window(
            self._incoming_where(user_id),
            users.c.last_name,
            users.c.first_name,
            users.c.id,
            skip=skip,
            limit=limit,
        )

    def count_incoming_invites(self, user_id: str) -> int:
        return self._count(self._incoming_where(user_id))

    def list_suggestions(self, user_id: str, *, skip: int, limit: int) -> list[User]:
        return self._window(self._suggestions_where(user_id), users.c.id, skip=skip, limit=limit)

    def count_suggestions(self, user_id: str) -> int:
        return self._count(self._suggestions_where(user_id))

    @staticmethod
    def _friends_where(user_id: str) -> list[ColumnElement[bool]]:
        return [users.c.id.in_(_friend_ids(user_id)), users.c.id != user_id]

    @staticmethod
    def _incoming_where(user_id: str) -> list[ColumnElement[bool]]:
        return [users.c.id.in_(_inviter_ids(user_id))]

    @staticmethod
    def _suggestions_where(user_id: str) -> list[ColumnElement[bool]]:
        return [
            users.c.id.in_(_friend_of_friend_ids(user_id)),
            users.c.id.not_in(_friend_ids(user_id)),
            users.c.id != user_id,
        ]

    def _window(
        self,
        where: Iterable[ColumnElement[bool]],
        *order_by: Any,
        skip: int,
        limit: int,
    ) -> list[User]:
        stmt = select(users).where(*where).order_by(*order_by).offset(skip).limit(limit)
        return [row_to_user(r) for r in self.conn.execute(stmt)]

    def _count(self, where: Iterable[ColumnElement[bool]]) -> int:
        stmt = select(func.count()).select_from(users).where(*where)
        return int(self.conn.execute(stmt).scalar_one())


# ---------------------------------------------------------------------------
# GraphStore: the repository
# ---------------------------------------------------------------------------


class GraphStore:
    """Repository encapsulating database and word-vector access.

    Constructed once from :class:`MercurySettings`. Services receive the
    store via their :class:`BaseService` constructor.
    """

    def __init__(self, settings: MercurySettings) -> None:
        self._settings = settings
        self._engine: Engine = init_database(settings.database_url, echo=settings.database.echo)
        self._vectors: WordVectors | None = None

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def settings(self) -> MercurySettings:
        return self._settings

    @property
    def vectors(self) -> WordVectors:
        """The word-vector table (file loaded lazily on first embed)."""
        if self._vectors is None:
            self._vectors = WordVectors(
                self._settings.vectors_path, lowercase=self._settings.search.lowercase
            )
        return self._vectors

    @contextmanager
    def session(self) -> Iterator[StoreSession]:
        """Read-only unit of work; nothing is committed."""
        with self._engine.connect() as conn:
            yield StoreSession(conn)

    @contextmanager
    def transaction(self) -> Iterator[StoreSession]:
        """Atomic unit of work: commit on success, rollback on any exception.

        Usage::

            with store.transaction() as s:
                if s.user_exists(a) and s.user_exists(b):
                    s.merge_invite(a, b, now)
        """
        with self._engine.begin() as conn:
            yield StoreSession(conn)

    def close(self) -> None:
        """Dispose the connection pool."""
        self._engine.dispose()
