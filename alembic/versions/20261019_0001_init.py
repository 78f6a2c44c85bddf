"""init schema (users + labels + notes + note_labels)

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if not _table_exists("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
            sa.Column("email", sa.String(length=254), nullable=False),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_users_email", "users", ["email"], unique=True)
        op.create_index("ix_users_created_at", "users", ["created_at"], unique=False)

    if not _table_exists("labels"):
        op.create_table(
            "labels",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("name", "owner_id", name="uq_labels_name_owner_id"),
        )
        op.create_index("ix_labels_owner_id", "labels", ["owner_id"], unique=False)
        op.create_index("ix_labels_updated_at", "labels", ["updated_at"], unique=False)

    if not _table_exists("notes"):
        op.create_table(
            "notes",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("title", sa.Text(), nullable=True),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("pinned", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("order", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_notes_user_id", "notes", ["user_id"], unique=False)
        op.create_index("ix_notes_order", "notes", ["order"], unique=False)
        op.create_index("ix_notes_updated_at", "notes", ["updated_at"], unique=False)

    if not _table_exists("note_labels"):
        op.create_table(
            "note_labels",
            sa.Column("note_id", sa.Integer(), sa.ForeignKey("notes.id"), primary_key=True, nullable=False),
            sa.Column("label_id", sa.Integer(), sa.ForeignKey("labels.id"), primary_key=True, nullable=False),
        )
        op.create_index("ix_note_labels_label_id", "note_labels", ["label_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_note_labels_label_id", table_name="note_labels")
    op.drop_table("note_labels")

    op.drop_index("ix_notes_updated_at", table_name="notes")
    op.drop_index("ix_notes_order", table_name="notes")
    op.drop_index("ix_notes_user_id", table_name="notes")
    op.drop_table("notes")

    op.drop_index("ix_labels_updated_at", table_name="labels")
    op.drop_index("ix_labels_owner_id", table_name="labels")
    op.drop_table("labels")

    op.drop_index("ix_users_created_at", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
