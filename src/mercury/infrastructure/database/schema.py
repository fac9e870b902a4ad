"""SQLAlchemy Core table definitions for the mercury database.

Two tables carry the whole social graph:

- ``users``: one row per account. The identity variant is stored in
  ``identity_kind`` and a CHECK constraint keeps the variant columns
  mutually exclusive.
- ``relations``: at most one row per unordered pair of users, keyed by
  ``(user_low, user_high)``. ``kind`` is ``invite`` or ``friendship`` and
  ``sender_id`` records which side sent the invite. The primary key makes
  invite/friendship exclusion and single invite direction a property of
  the store.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    MetaData,
    PrimaryKeyConstraint,
    Table,
    Text,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Text, primary_key=True),
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    Column("country", Text, nullable=False, default="", server_default=""),
    Column("profile_picture", Text, nullable=False, default="", server_default=""),
    Column("mail", Text, nullable=False),
    Column("identity_kind", Text, nullable=False),  # native | external
    Column("password", Text),  # native only, already hashed
    Column("issuer", Text),  # external only
    Column("issuer_id", Text),  # external only
    Column("name_embedding", JSON(none_as_null=True)),  # averaged first/last name vector
    Column("created", Text, nullable=False),
    Column("modified", Text, nullable=False),
    CheckConstraint(
        "(identity_kind = 'native' AND password IS NOT NULL"
        " AND issuer IS NULL AND issuer_id IS NULL)"
        " OR (identity_kind = 'external' AND password IS NULL"
        " AND issuer IS NOT NULL AND issuer_id IS NOT NULL)",
        name="ck_users_identity_variant",
    ),
)

relations = Table(
    "relations",
    metadata,
    Column("user_low", Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("user_high", Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("kind", Text, nullable=False),  # invite | friendship
    Column("sender_id", Text, nullable=False),
    Column("created", Text, nullable=False),
    Column("modified", Text, nullable=False),
    PrimaryKeyConstraint("user_low", "user_high", name="pk_relations_pair"),
    CheckConstraint("user_low < user_high", name="ck_relations_ordered_pair"),
    CheckConstraint(
        "sender_id = user_low OR sender_id = user_high", name="ck_relations_sender_in_pair"
    ),
    CheckConstraint("kind IN ('invite', 'friendship')", name="ck_relations_kind"),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_users_mail", users.c.mail)
Index("ix_users_country", users.c.country)
Index("ix_users_name_order", users.c.last_name, users.c.first_name)
Index(
    "uq_users_native_mail",
    users.c.mail,
    unique=True,
    sqlite_where=users.c.identity_kind == "native",
)
Index(
    "uq_users_external_mail_issuer",
    users.c.mail,
    users.c.issuer,
    unique=True,
    sqlite_where=users.c.identity_kind == "external",
)
Index("ix_relations_high", relations.c.user_high)
Index("ix_relations_kind", relations.c.kind)
