from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import cast

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from notes_backend.config import settings
from notes_backend.db_urls import database_dialect
from notes_backend.models import Label, NoteLabel, utc_now


async def find_owned_label_ids(
    session: AsyncSession, *, user_id: int, ids: Sequence[int]
) -> set[int]:
    if not ids:
        return set()
    result = await session.exec(
        select(Label.id)
        .where(Label.owner_id == user_id)
        .where(cast(ColumnElement[object], cast(object, Label.id)).in_(sorted(set(ids))))
    )
    return {int(label_id) for label_id in result.all() if label_id is not None}


async def delete_labels(session: AsyncSession, *, user_id: int, ids: Sequence[int]) -> int:
    """Physically delete the owner's labels among `ids`; foreign or missing ids are ignored."""

    owned = sorted(await find_owned_label_ids(session, user_id=user_id, ids=ids))
    if not owned:
        return 0

    await session.exec(
        sa.delete(NoteLabel).where(
            cast(ColumnElement[object], cast(object, NoteLabel.label_id)).in_(owned)
        )
    )
    result = await session.exec(
        sa.delete(Label)
        .where(cast(ColumnElement[object], cast(object, Label.owner_id)) == user_id)
        .where(cast(ColumnElement[object], cast(object, Label.id)).in_(owned))
    )
    return int(getattr(result, "rowcount", 0) or 0)


async def create_labels_skip_duplicates(
    session: AsyncSession, *, user_id: int, names: Sequence[str]
) -> None:
    """Insert one label per name, silently skipping `(name, owner)` collisions."""

    unique_names = list(dict.fromkeys(names))
    if not unique_names:
        return

    table = Label.__table__  # pyright: ignore[reportAttributeAccessIssue]
    now = utc_now()
    rows: list[dict[str, object]] = [
        {"name": name, "owner_id": user_id, "created_at": now, "updated_at": now}
        for name in unique_names
    ]

    dialect = database_dialect(settings.database_url)
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as dialect_insert

        stmt = dialect_insert(table).values(rows)
        await session.exec(stmt.on_conflict_do_nothing(index_elements=["name", "owner_id"]))
        return
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as dialect_insert

        stmt = dialect_insert(table).values(rows)
        await session.exec(stmt.on_conflict_do_nothing(index_elements=["name", "owner_id"]))
        return

    # Best-effort fallback for other DBs: insert only the names not present yet.
    existing_rows = await find_labels_by_names(session, user_id=user_id, names=unique_names)
    existing = {label.name for label in existing_rows}
    for row in rows:
        if row["name"] in existing:
            continue
        session.add(Label.model_validate(row))
    await session.flush()


async def find_labels_by_names(
    session: AsyncSession, *, user_id: int, names: Sequence[str]
) -> list[Label]:
    if not names:
        return []
    result = await session.exec(
        select(Label)
        .where(Label.owner_id == user_id)
        .where(cast(ColumnElement[object], cast(object, Label.name)).in_(list(set(names))))
    )
    return list(result.all())


async def rename_label(
    session: AsyncSession, *, user_id: int, label_id: int, name: str
) -> Label | None:
    label = (
        await session.exec(
            select(Label).where(Label.owner_id == user_id).where(Label.id == label_id)
        )
    ).first()
    if label is None:
        return None

    label.name = name
    label.updated_at = utc_now()
    session.add(label)
    await session.flush()
    return label


async def list_labels_changed_since(
    session: AsyncSession, *, user_id: int, since: datetime
) -> list[Label]:
    result = await session.exec(
        select(Label)
        .where(Label.owner_id == user_id)
        .where(cast(ColumnElement[datetime], cast(object, Label.updated_at)) > since)
        .order_by(cast(ColumnElement[object], cast(object, Label.id)).asc())
    )
    return list(result.all())
