# basedpyright: reportAssignmentType=false
# basedpyright: reportIncompatibleVariableOverride=false

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    # Millisecond precision: rows must compare exactly against epoch-ms sync watermarks.
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


class User(SQLModel, table=True):
    __tablename__ = "users"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True, min_length=3, max_length=254)
    password_hash: str = Field(min_length=1, max_length=255)

    created_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), index=True
    )


class Label(SQLModel, table=True):
    __tablename__ = "labels"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]
    __table_args__ = (UniqueConstraint("name", "owner_id", name="uq_labels_name_owner_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=200)
    owner_id: int = Field(index=True, foreign_key="users.id")

    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), index=True
    )


class Note(SQLModel, table=True):
    __tablename__ = "notes"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True, foreign_key="users.id")

    title: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    content: str = Field(default="", sa_column=Column(Text, nullable=False))
    pinned: bool = Field(default=False)
    # Display order on the client. Not unique: concurrent edits may produce duplicates.
    order: int = Field(default=0, index=True)

    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), index=True
    )


class NoteLabel(SQLModel, table=True):
    __tablename__ = "note_labels"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    note_id: int = Field(primary_key=True, foreign_key="notes.id")
    label_id: int = Field(primary_key=True, foreign_key="labels.id", index=True)
