"""`/changes` reconciliation pipeline.

Phases run strictly in this order, each consuming the id resolutions of the
previous ones:

1. delete labels
2. delete notes
3. create labels   -> offline label ids resolved in pending creates/edits/renames
4. create notes    -> offline note ids resolved in pending edits
5. edit notes
6. rename labels

Phases 1-3 share the request session and are committed before phase 4. Items of
phases 4-6 are independent: each runs on its own session and commits on its own,
so one failed item never aborts its siblings. Failed items are reported back to
the client instead of failing the request.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TypeVar

from sqlmodel.ext.asyncio.session import AsyncSession

from notes_backend.config import settings
from notes_backend.db import session_scope
from notes_backend.domain.id_resolution import (
    LabelPairing,
    assign_note_orders,
    database_ids,
    is_database_id,
    pair_labels_by_name,
    substitute_label_ids,
    substitute_note_ids,
)
from notes_backend.domain.operations import classify_operations
from notes_backend.repositories import labels_repo, notes_repo
from notes_backend.schemas_changes import (
    ChangeLabelNameOp,
    ChangesData,
    ChangesRequest,
    ChangesResponse,
    DeletedIds,
    EditNoteOp,
    FailedToEdit,
    Id,
    NewLabel,
    NewNote,
)
from notes_backend.services import delta_service
from notes_backend.sync_utils import now_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CreatedNotes:
    offline_to_db: Mapping[str, int]
    db_to_offline: Mapping[int, str]
    not_created: tuple[NewNote, ...]


async def _settle_all(items: Iterable[Awaitable[T]]) -> list[T | Exception]:
    """Await every item and collect each outcome, success or failure, in input order."""

    semaphore = asyncio.Semaphore(settings.item_concurrency())

    async def _bounded(item: Awaitable[T]) -> T:
        async with semaphore:
            return await item

    outcomes = await asyncio.gather(*(_bounded(i) for i in items), return_exceptions=True)
    settled: list[T | Exception] = []
    for outcome in outcomes:
        # Cancellation and interpreter exits are not item failures.
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
        settled.append(outcome)
    return settled


async def _owned_label_refs(
    session: AsyncSession, *, user_id: int, refs: Sequence[Id]
) -> list[int]:
    # Unresolved offline ids and labels of other users are dropped from the connection set.
    requested = database_ids(refs)
    owned = await labels_repo.find_owned_label_ids(session, user_id=user_id, ids=requested)
    return [label_id for label_id in requested if label_id in owned]


# --- phase 3: create labels -------------------------------------------------


async def create_labels(
    session: AsyncSession, *, user_id: int, labels: Sequence[NewLabel]
) -> LabelPairing:
    if not labels:
        return LabelPairing(offline_to_db={}, db_to_offline={}, not_created=())

    names = [label.name for label in labels]
    await labels_repo.create_labels_skip_duplicates(session, user_id=user_id, names=names)
    rows = await labels_repo.find_labels_by_names(session, user_id=user_id, names=names)
    return pair_labels_by_name(labels, [(int(r.id), r.name) for r in rows if r.id is not None])


# --- phase 4: create notes --------------------------------------------------


async def _create_note(*, user_id: int, note: NewNote, order: int) -> int:
    async with session_scope() as session:
        label_ids = await _owned_label_refs(session, user_id=user_id, refs=note.labels or [])
        created = await notes_repo.create_note(
            session,
            user_id=user_id,
            title=note.title,
            content=note.content,
            pinned=note.pinned,
            order=order,
            label_ids=label_ids,
        )
        note_id = int(created.id or 0)
        await session.commit()
        return note_id


async def create_notes(
    session: AsyncSession, *, user_id: int, notes: Sequence[NewNote]
) -> CreatedNotes:
    if not notes:
        return CreatedNotes(offline_to_db={}, db_to_offline={}, not_created=())

    max_order = await notes_repo.get_max_order(session, user_id=user_id)
    orders = assign_note_orders(notes, (max_order or 0) + 1)

    outcomes = await _settle_all(
        _create_note(user_id=user_id, note=note, order=order)
        for note, order in zip(notes, orders, strict=True)
    )

    offline_to_db: dict[str, int] = {}
    db_to_offline: dict[int, str] = {}
    for note, outcome in zip(notes, outcomes, strict=True):
        if isinstance(outcome, Exception):
            logger.warning(
                "note create failed user_id=%s offline_id=%s",
                user_id,
                note.offline_id,
                exc_info=outcome,
            )
            continue
        offline_to_db.setdefault(note.offline_id, outcome)
        db_to_offline[outcome] = note.offline_id

    return CreatedNotes(
        offline_to_db=offline_to_db,
        db_to_offline=db_to_offline,
        not_created=tuple(n for n in notes if n.offline_id not in offline_to_db),
    )


# --- phase 5: edit notes ----------------------------------------------------


async def _edit_note(*, user_id: int, op: EditNoteOp) -> bool:
    async with session_scope() as session:
        label_ids: list[int] | None = None
        if op.labels is not None:
            label_ids = await _owned_label_refs(session, user_id=user_id, refs=op.labels)

        updated = await notes_repo.update_note(
            session,
            user_id=user_id,
            note_id=int(op.id),
            title=op.title,
            content=op.content,
            pinned=op.pinned,
            order=op.order,
            label_ids=label_ids,
        )
        if updated is None:
            return False
        await session.commit()
        return True


async def edit_notes(*, user_id: int, edits: Sequence[EditNoteOp]) -> list[EditNoteOp]:
    """Apply note edits; return the ones that did not make it."""

    if not edits:
        return []

    # Edits still pointing at an offline id reference a note that was never created.
    attempted = [op for op in edits if is_database_id(op.id)]
    outcomes = await _settle_all(_edit_note(user_id=user_id, op=op) for op in attempted)

    edited: set[int] = set()
    for op, outcome in zip(attempted, outcomes, strict=True):
        if isinstance(outcome, Exception):
            logger.warning(
                "note edit failed user_id=%s note_id=%s", user_id, op.id, exc_info=outcome
            )
            continue
        if outcome:
            edited.add(int(op.id))

    return [op for op in edits if not (is_database_id(op.id) and op.id in edited)]


# --- phase 6: rename labels -------------------------------------------------


async def _rename_label(*, user_id: int, op: ChangeLabelNameOp) -> bool:
    async with session_scope() as session:
        renamed = await labels_repo.rename_label(
            session, user_id=user_id, label_id=int(op.id), name=op.name
        )
        if renamed is None:
            return False
        await session.commit()
        return True


async def rename_labels(
    *, user_id: int, renames: Sequence[ChangeLabelNameOp]
) -> list[ChangeLabelNameOp]:
    """Apply label renames; return the ones that did not make it."""

    if not renames:
        return []

    attempted = [op for op in renames if is_database_id(op.id)]
    outcomes = await _settle_all(_rename_label(user_id=user_id, op=op) for op in attempted)

    renamed: set[int] = set()
    for op, outcome in zip(attempted, outcomes, strict=True):
        if isinstance(outcome, Exception):
            logger.warning(
                "label rename failed user_id=%s label_id=%s", user_id, op.id, exc_info=outcome
            )
            continue
        if outcome:
            renamed.add(int(op.id))

    return [op for op in renames if not (is_database_id(op.id) and op.id in renamed)]


# --- response ---------------------------------------------------------------


def assemble_response(
    *,
    data: ChangesData,
    deleted: DeletedIds,
    labels_not_created: Sequence[NewLabel],
    notes_not_created: Sequence[NewNote],
    notes_not_edited: Sequence[EditNoteOp],
    labels_not_renamed: Sequence[ChangeLabelNameOp],
    just_synced_at: int,
) -> ChangesResponse:
    return ChangesResponse(
        data=data,
        deleted=deleted,
        failed_to_create=[label.offline_id for label in labels_not_created]
        + [note.offline_id for note in notes_not_created],
        failed_to_edit=FailedToEdit(notes=list(notes_not_edited), labels=list(labels_not_renamed)),
        just_synced_at=just_synced_at,
    )


async def apply_changes(
    *, session: AsyncSession, user_id: int, req: ChangesRequest
) -> ChangesResponse:
    ops = classify_operations(req.operations)

    deleted_labels = 0
    if ops.delete_label_ids:
        deleted_labels = await labels_repo.delete_labels(
            session, user_id=user_id, ids=ops.delete_label_ids
        )

    deleted_notes = 0
    if ops.delete_note_ids:
        deleted_notes = await notes_repo.delete_notes(
            session, user_id=user_id, ids=ops.delete_note_ids
        )

    labels = await create_labels(session, user_id=user_id, labels=ops.create_labels)
    ops = substitute_label_ids(ops, labels.offline_to_db)

    # Per-item phases use their own sessions; make phases 1-3 visible to them.
    await session.commit()

    notes = await create_notes(session, user_id=user_id, notes=ops.create_notes)
    ops = substitute_note_ids(ops, notes.offline_to_db)

    notes_not_edited = await edit_notes(user_id=user_id, edits=ops.edit_notes)
    labels_not_renamed = await rename_labels(user_id=user_id, renames=ops.change_labels_name)

    data, deleted = await delta_service.build_delta(
        session,
        user_id=user_id,
        last_synced_at_ms=req.last_synced_at,
        current_data=req.current_data,
        note_offline_ids=notes.db_to_offline,
        label_offline_ids=labels.db_to_offline,
    )

    logger.info(
        "changes applied user_id=%s deleted_labels=%d deleted_notes=%d created_labels=%d "
        "created_notes=%d failed_to_create=%d failed_to_edit=%d",
        user_id,
        deleted_labels,
        deleted_notes,
        len(labels.db_to_offline),
        len(notes.db_to_offline),
        len(labels.not_created) + len(notes.not_created),
        len(notes_not_edited) + len(labels_not_renamed),
    )

    return assemble_response(
        data=data,
        deleted=deleted,
        labels_not_created=labels.not_created,
        notes_not_created=notes.not_created,
        notes_not_edited=notes_not_edited,
        labels_not_renamed=labels_not_renamed,
        just_synced_at=now_ms(),
    )
