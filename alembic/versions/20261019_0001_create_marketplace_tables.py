# mypy: ignore-errors
"""
Migration Alembic initiale de la place de marché.

Crée les comptes (`users`), les profils (`profiles`, rôle par compte) et les trois tables de
catalogue (`places`, `artists`, `rentals`) avec leurs colonnes miroirs `_kg` et `_ru`.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

_COMMON = (
    ("name", sa.String(length=255), False),
    ("description", sa.Text(), True),
    ("price", sa.String(length=255), True),
    ("contacts", sa.Text(), True),
)
_SPECIFIC = {
    "places": (("address", sa.Text()), ("capacity", sa.String(length=255))),
    "artists": (("genre", sa.String(length=255)), ("experience", sa.Text())),
    "rentals": (("specs", sa.Text()),),
}


def _localized(name: str, type_, nullable: bool = True) -> list[sa.Column]:
    return [
        sa.Column(name, type_, nullable=nullable),
        sa.Column(f"{name}_kg", type_, nullable=True),
        sa.Column(f"{name}_ru", type_, nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_table(
        "profiles",
        sa.Column(
            "id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="user"),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    for table, specific in _SPECIFIC.items():
        columns = [
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("owner_id", sa.String(length=36), nullable=False),
        ]
        for name, type_, nullable in _COMMON:
            columns.extend(_localized(name, type_, nullable))
        for name, type_ in specific:
            columns.extend(_localized(name, type_))
        columns.extend(
            [
                sa.Column("rating", sa.Float(), nullable=True),
                sa.Column("image_url", sa.Text(), nullable=True),
                sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
                sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            ]
        )
        op.create_table(table, *columns)
        op.create_index(f"ix_{table}_owner_id", table, ["owner_id"])


def downgrade() -> None:
    for table in ("rentals", "artists", "places"):
        op.drop_index(f"ix_{table}_owner_id", table_name=table)
        op.drop_table(table)
    op.drop_table("profiles")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
