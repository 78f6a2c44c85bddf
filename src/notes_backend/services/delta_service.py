from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from sqlmodel.ext.asyncio.session import AsyncSession

from notes_backend.models import Label, Note
from notes_backend.repositories import labels_repo, notes_repo
from notes_backend.schemas_changes import (
    ChangesData,
    CurrentData,
    DeletedIds,
    LabelOut,
    NoteOut,
)
from notes_backend.sync_utils import from_epoch_ms, to_epoch_ms


def serialize_note(note: Note, *, label_ids: list[int], offline_id: str | None) -> NoteOut:
    if note.id is None:
        raise ValueError("note id missing")
    return NoteOut(
        id=int(note.id),
        title=note.title,
        content=note.content,
        pinned=note.pinned,
        order=note.order,
        user_id=note.user_id,
        labels=label_ids,
        created_at=to_epoch_ms(note.created_at),
        updated_at=to_epoch_ms(note.updated_at),
        offline_id=offline_id,
    )


def serialize_label(label: Label, *, offline_id: str | None) -> LabelOut:
    if label.id is None:
        raise ValueError("label id missing")
    return LabelOut(
        id=int(label.id),
        name=label.name,
        owner_id=label.owner_id,
        created_at=to_epoch_ms(label.created_at),
        updated_at=to_epoch_ms(label.updated_at),
        offline_id=offline_id,
    )


def missing_ids(claimed: Sequence[int], existing: Iterable[int]) -> list[int]:
    """Ids the client claims to hold that the store no longer has (client order, no repeats)."""

    present = set(existing)
    out: list[int] = []
    seen: set[int] = set()
    for entity_id in claimed:
        if entity_id in present or entity_id in seen:
            continue
        seen.add(entity_id)
        out.append(entity_id)
    return out


async def changed_since(
    session: AsyncSession,
    *,
    user_id: int,
    last_synced_at_ms: int,
    note_offline_ids: Mapping[int, str],
    label_offline_ids: Mapping[int, str],
) -> ChangesData:
    since = from_epoch_ms(last_synced_at_ms)

    notes = await notes_repo.list_notes_changed_since(session, user_id=user_id, since=since)
    label_ids_by_note = await notes_repo.list_label_ids_by_note(
        session, note_ids=[int(n.id) for n in notes if n.id is not None]
    )
    labels = await labels_repo.list_labels_changed_since(session, user_id=user_id, since=since)

    return ChangesData(
        notes=[
            serialize_note(
                n,
                label_ids=label_ids_by_note.get(int(n.id or 0), []),
                offline_id=note_offline_ids.get(int(n.id or 0)),
            )
            for n in notes
        ],
        labels=[
            serialize_label(label, offline_id=label_offline_ids.get(int(label.id or 0)))
            for label in labels
        ],
    )


async def deleted_since(
    session: AsyncSession, *, user_id: int, current_data: CurrentData
) -> DeletedIds:
    """Tombstone detection: diff the client's id inventory against what still exists."""

    existing_notes = await notes_repo.find_owned_note_ids(
        session, user_id=user_id, ids=current_data.notes
    )
    existing_labels = await labels_repo.find_owned_label_ids(
        session, user_id=user_id, ids=current_data.labels
    )
    return DeletedIds(
        notes=missing_ids(current_data.notes, existing_notes),
        labels=missing_ids(current_data.labels, existing_labels),
    )


async def build_delta(
    session: AsyncSession,
    *,
    user_id: int,
    last_synced_at_ms: int,
    current_data: CurrentData,
    note_offline_ids: Mapping[int, str],
    label_offline_ids: Mapping[int, str],
) -> tuple[ChangesData, DeletedIds]:
    data = await changed_since(
        session,
        user_id=user_id,
        last_synced_at_ms=last_synced_at_ms,
        note_offline_ids=note_offline_ids,
        label_offline_ids=label_offline_ids,
    )
    deleted = await deleted_since(session, user_id=user_id, current_data=current_data)
    return data, deleted
