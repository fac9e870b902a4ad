"""Baseline schema: users and pair-keyed relations.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-09-14

Existing databases created by ``mercury init`` are stamped at this
revision without running it; databases created without a stamp get it
applied during ``mercury db upgrade``.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("first_name", sa.Text, nullable=False),
        sa.Column("last_name", sa.Text, nullable=False),
        sa.Column("country", sa.Text, nullable=False, server_default=""),
        sa.Column("profile_picture", sa.Text, nullable=False, server_default=""),
        sa.Column("mail", sa.Text, nullable=False),
        sa.Column("identity_kind", sa.Text, nullable=False),
        sa.Column("password", sa.Text),
        sa.Column("issuer", sa.Text),
        sa.Column("issuer_id", sa.Text),
        sa.Column("name_embedding", sa.JSON(none_as_null=True)),
        sa.Column("created", sa.Text, nullable=False),
        sa.Column("modified", sa.Text, nullable=False),
        sa.CheckConstraint(
            "(identity_kind = 'native' AND password IS NOT NULL"
            " AND issuer IS NULL AND issuer_id IS NULL)"
            " OR (identity_kind = 'external' AND password IS NULL"
            " AND issuer IS NOT NULL AND issuer_id IS NOT NULL)",
            name="ck_users_identity_variant",
        ),
    )
    op.create_index("ix_users_mail", "users", ["mail"])
    op.create_index("ix_users_country", "users", ["country"])
    op.create_index("ix_users_name_order", "users", ["last_name", "first_name"])
    op.create_index(
        "uq_users_native_mail",
        "users",
        ["mail"],
        unique=True,
        sqlite_where=sa.text("identity_kind = 'native'"),
    )
    op.create_index(
        "uq_users_external_mail_issuer",
        "users",
        ["mail", "issuer"],
        unique=True,
        sqlite_where=sa.text("identity_kind = 'external'"),
    )

    op.create_table(
        "relations",
        sa.Column(
            "user_low", sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "user_high", sa.Text, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("kind", sa.Text, nullable=False),
        sa.Column("sender_id", sa.Text, nullable=False),
        sa.Column("created", sa.Text, nullable=False),
        sa.Column("modified", sa.Text, nullable=False),
        sa.PrimaryKeyConstraint("user_low", "user_high", name="pk_relations_pair"),
        sa.CheckConstraint("user_low < user_high", name="ck_relations_ordered_pair"),
        sa.CheckConstraint(
            "sender_id = user_low OR sender_id = user_high",
            name="ck_relations_sender_in_pair",
        ),
        sa.CheckConstraint("kind IN ('invite', 'friendship')", name="ck_relations_kind"),
    )
    op.create_index("ix_relations_high", "relations", ["user_high"])
    op.create_index("ix_relations_kind", "relations", ["kind"])


def downgrade() -> None:
    op.drop_table("relations")
    op.drop_table("users")
