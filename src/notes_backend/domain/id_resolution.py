"""Offline id -> database id resolution for a classified batch.

Pure helpers:
- No DB/network/time.
- Never mutate their inputs; every substitution returns new operations.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import TypeGuard

from notes_backend.domain.operations import ClassifiedOperations
from notes_backend.schemas_changes import EditNoteOp, Id, NewLabel, NewNote


@dataclass(frozen=True)
class LabelPairing:
    offline_to_db: Mapping[str, int]
    # Annotation for down-sync: first offline id submitted for a recovered row.
    db_to_offline: Mapping[int, str]
    not_created: tuple[NewLabel, ...]


def is_database_id(value: object) -> TypeGuard[int]:
    return isinstance(value, int) and not isinstance(value, bool)


def database_ids(refs: Iterable[Id] | None) -> list[int]:
    """Keep only resolved (numeric) references, de-duplicated in input order."""

    out: list[int] = []
    seen: set[int] = set()
    for ref in refs or ():
        if not is_database_id(ref) or ref in seen:
            continue
        seen.add(ref)
        out.append(ref)
    return out


def pair_labels_by_name(
    submitted: Sequence[NewLabel], rows: Iterable[tuple[int, str]]
) -> LabelPairing:
    """Pair recovered label rows `(id, name)` back to the offline ids that asked for them.

    Name is the only correlation key after a skip-duplicates insert, so two offline
    labels sharing a name both resolve to the same row.
    """

    db_id_by_name = {name: db_id for db_id, name in rows}

    offline_to_db: dict[str, int] = {}
    db_to_offline: dict[int, str] = {}
    not_created: list[NewLabel] = []
    for label in submitted:
        db_id = db_id_by_name.get(label.name)
        if db_id is None:
            not_created.append(label)
            continue
        offline_to_db.setdefault(label.offline_id, db_id)
        db_to_offline.setdefault(db_id, label.offline_id)

    return LabelPairing(
        offline_to_db=offline_to_db,
        db_to_offline=db_to_offline,
        not_created=tuple(not_created),
    )


def _resolve(ref: Id, mapping: Mapping[str, int]) -> Id:
    if isinstance(ref, str):
        return mapping.get(ref, ref)
    return ref


def _with_resolved_labels(op: NewNote | EditNoteOp, mapping: Mapping[str, int]):
    if op.labels is None:
        return op
    return op.model_copy(update={"labels": [_resolve(ref, mapping) for ref in op.labels]})


def substitute_label_ids(
    ops: ClassifiedOperations, mapping: Mapping[str, int]
) -> ClassifiedOperations:
    """Rewrite offline label ids in pending note creates/edits and label renames."""

    if not mapping:
        return ops

    return replace(
        ops,
        create_notes=tuple(_with_resolved_labels(n, mapping) for n in ops.create_notes),
        edit_notes=tuple(_with_resolved_labels(e, mapping) for e in ops.edit_notes),
        change_labels_name=tuple(
            op.model_copy(update={"id": _resolve(op.id, mapping)})
            for op in ops.change_labels_name
        ),
    )


def substitute_note_ids(
    ops: ClassifiedOperations, mapping: Mapping[str, int]
) -> ClassifiedOperations:
    """Point pending note edits at the database ids of notes created in this batch."""

    if not mapping:
        return ops

    return replace(
        ops,
        edit_notes=tuple(
            op.model_copy(update={"id": _resolve(op.id, mapping)}) for op in ops.edit_notes
        ),
    )


def assign_note_orders(notes: Sequence[NewNote], next_order: int) -> list[int]:
    """Caller-supplied orders win; the rest count up from `next_order` in batch order."""

    orders: list[int] = []
    counter = next_order
    for note in notes:
        if note.order is not None:
            orders.append(note.order)
            continue
        orders.append(counter)
        counter += 1
    return orders
