from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import cast

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from notes_backend.models import Note, NoteLabel, utc_now


async def find_owned_note_ids(
    session: AsyncSession, *, user_id: int, ids: Sequence[int]
) -> set[int]:
    if not ids:
        return set()
    result = await session.exec(
        select(Note.id)
        .where(Note.user_id == user_id)
        .where(cast(ColumnElement[object], cast(object, Note.id)).in_(sorted(set(ids))))
    )
    return {int(note_id) for note_id in result.all() if note_id is not None}


async def delete_notes(session: AsyncSession, *, user_id: int, ids: Sequence[int]) -> int:
    """Physically delete the user's notes among `ids`; foreign or missing ids are ignored."""

    owned = sorted(await find_owned_note_ids(session, user_id=user_id, ids=ids))
    if not owned:
        return 0

    await session.exec(
        sa.delete(NoteLabel).where(
            cast(ColumnElement[object], cast(object, NoteLabel.note_id)).in_(owned)
        )
    )
    result = await session.exec(
        sa.delete(Note)
        .where(cast(ColumnElement[object], cast(object, Note.user_id)) == user_id)
        .where(cast(ColumnElement[object], cast(object, Note.id)).in_(owned))
    )
    return int(getattr(result, "rowcount", 0) or 0)


async def get_max_order(session: AsyncSession, *, user_id: int) -> int | None:
    result = await session.exec(
        select(sa.func.max(Note.order)).where(Note.user_id == user_id)
    )
    value = result.first()
    return None if value is None else int(value)


async def set_note_labels(
    session: AsyncSession, *, note_id: int, label_ids: Sequence[int]
) -> None:
    """Replace the label set of a note with `label_ids` (already ownership-checked)."""

    desired = set(label_ids)
    existing = list(
        (await session.exec(select(NoteLabel).where(NoteLabel.note_id == note_id))).all()
    )
    existing_ids = {link.label_id for link in existing}

    for link in existing:
        if link.label_id not in desired:
            await session.delete(link)
    for label_id in label_ids:
        if label_id in existing_ids:
            continue
        existing_ids.add(label_id)
        session.add(NoteLabel(note_id=note_id, label_id=label_id))


async def create_note(
    session: AsyncSession,
    *,
    user_id: int,
    title: str | None,
    content: str,
    pinned: bool,
    order: int,
    label_ids: Sequence[int],
) -> Note:
    now = utc_now()
    note = Note(
        user_id=user_id,
        title=title,
        content=content,
        pinned=pinned,
        order=order,
        created_at=now,
        updated_at=now,
    )
    session.add(note)
    await session.flush()

    if note.id is None:
        raise RuntimeError("note id missing after insert")
    if label_ids:
        await set_note_labels(session, note_id=int(note.id), label_ids=label_ids)
        await session.flush()
    return note


async def update_note(
    session: AsyncSession,
    *,
    user_id: int,
    note_id: int,
    title: str | None,
    content: str | None,
    pinned: bool | None,
    order: int | None,
    label_ids: Sequence[int] | None,
) -> Note | None:
    """Partial update scoped to `(note_id, user_id)`; `None` leaves a field untouched.

    Returns None when the note does not exist for this user.
    """

    note = (
        await session.exec(select(Note).where(Note.user_id == user_id).where(Note.id == note_id))
    ).first()
    if note is None:
        return None

    if title is not None:
        note.title = title
    if content is not None:
        note.content = content
    if pinned is not None:
        note.pinned = pinned
    if order is not None:
        note.order = order
    if label_ids is not None:
        await set_note_labels(session, note_id=note_id, label_ids=label_ids)

    # Label-set changes must also move updated_at: it is the only down-sync signal.
    note.updated_at = utc_now()
    session.add(note)
    await session.flush()
    return note


async def list_notes_changed_since(
    session: AsyncSession, *, user_id: int, since: datetime
) -> list[Note]:
    result = await session.exec(
        select(Note)
        .where(Note.user_id == user_id)
        .where(cast(ColumnElement[datetime], cast(object, Note.updated_at)) > since)
        .order_by(cast(ColumnElement[object], cast(object, Note.id)).asc())
    )
    return list(result.all())


async def list_label_ids_by_note(
    session: AsyncSession, *, note_ids: Sequence[int]
) -> dict[int, list[int]]:
    if not note_ids:
        return {}
    result = await session.exec(
        select(NoteLabel)
        .where(cast(ColumnElement[object], cast(object, NoteLabel.note_id)).in_(list(note_ids)))
        .order_by(cast(ColumnElement[object], cast(object, NoteLabel.label_id)).asc())
    )
    by_note: dict[int, list[int]] = {}
    for link in result.all():
        by_note.setdefault(link.note_id, []).append(link.label_id)
    return by_note
