from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import assert_never

from notes_backend.schemas_changes import (
    ChangeLabelNameOp,
    CreateLabelsOp,
    CreateNotesOp,
    DeleteLabelsOp,
    DeleteNotesOp,
    EditNoteOp,
    NewLabel,
    NewNote,
    Operation,
)


@dataclass(frozen=True)
class ClassifiedOperations:
    delete_label_ids: tuple[int, ...] = ()
    delete_note_ids: tuple[int, ...] = ()
    create_labels: tuple[NewLabel, ...] = ()
    create_notes: tuple[NewNote, ...] = ()
    edit_notes: tuple[EditNoteOp, ...] = ()
    change_labels_name: tuple[ChangeLabelNameOp, ...] = ()


def classify_operations(operations: Sequence[Operation]) -> ClassifiedOperations:
    """Fold a validated batch into per-kind buckets.

    - Bulk kinds (label/note deletes and creates) are expected once per batch;
      when repeated, the last one seen wins.
    - Edits and renames accumulate in encounter order.
    """

    delete_label_ids: tuple[int, ...] = ()
    delete_note_ids: tuple[int, ...] = ()
    create_labels: tuple[NewLabel, ...] = ()
    create_notes: tuple[NewNote, ...] = ()
    edit_notes: list[EditNoteOp] = []
    change_labels_name: list[ChangeLabelNameOp] = []

    for op in operations:
        if isinstance(op, DeleteLabelsOp):
            delete_label_ids = tuple(op.ids)
        elif isinstance(op, DeleteNotesOp):
            delete_note_ids = tuple(op.ids)
        elif isinstance(op, CreateLabelsOp):
            create_labels = tuple(op.labels)
        elif isinstance(op, CreateNotesOp):
            create_notes = tuple(op.notes)
        elif isinstance(op, EditNoteOp):
            edit_notes.append(op)
        elif isinstance(op, ChangeLabelNameOp):
            change_labels_name.append(op)
        else:
            assert_never(op)

    return ClassifiedOperations(
        delete_label_ids=delete_label_ids,
        delete_note_ids=delete_note_ids,
        create_labels=create_labels,
        create_notes=create_notes,
        edit_notes=tuple(edit_notes),
        change_labels_name=tuple(change_labels_name),
    )
