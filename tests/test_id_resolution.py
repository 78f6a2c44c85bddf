from __future__ import annotations

import pytest

from notes_backend.domain.id_resolution import (
    assign_note_orders,
    database_ids,
    is_database_id,
    pair_labels_by_name,
    substitute_label_ids,
    substitute_note_ids,
)
from notes_backend.domain.operations import ClassifiedOperations
from notes_backend.schemas_changes import ChangeLabelNameOp, EditNoteOp, NewLabel, NewNote


def _note(offline_id: str, *, order: int | None = None, labels=None) -> NewNote:
    return NewNote(offline_id=offline_id, content="c", pinned=False, order=order, labels=labels)


@pytest.mark.parametrize(
    ("value", "expected"),
    [(1, True), (0, True), ("1", False), (True, False), (None, False)],
)
def test_is_database_id(value, expected):
    assert is_database_id(value) is expected


def test_database_ids_drops_offline_refs_and_repeats():
    assert database_ids([3, "tmp", 1, 3, "x", 2]) == [3, 1, 2]
    assert database_ids(None) == []


def test_pair_labels_by_name():
    submitted = [
        NewLabel(offline_id="a", name="work"),
        NewLabel(offline_id="b", name="home"),
        NewLabel(offline_id="c", name="lost"),
    ]

    pairing = pair_labels_by_name(submitted, [(10, "work"), (11, "home")])

    assert pairing.offline_to_db == {"a": 10, "b": 11}
    assert pairing.db_to_offline == {10: "a", 11: "b"}
    assert [label.offline_id for label in pairing.not_created] == ["c"]


def test_pair_labels_same_name_share_one_row():
    submitted = [NewLabel(offline_id="a", name="dup"), NewLabel(offline_id="b", name="dup")]

    pairing = pair_labels_by_name(submitted, [(5, "dup")])

    assert pairing.offline_to_db == {"a": 5, "b": 5}
    # Down-sync annotates the row with the first offline id.
    assert pairing.db_to_offline == {5: "a"}
    assert pairing.not_created == ()


def test_substitute_label_ids_rewrites_pending_ops_without_mutating_input():
    ops = ClassifiedOperations(
        create_notes=(_note("n1", labels=["l1", 7, "unknown"]),),
        edit_notes=(EditNoteOp(id=3, labels=["l1"]), EditNoteOp(id=4, title="t")),
        change_labels_name=(
            ChangeLabelNameOp(id="l1", name="renamed"),
            ChangeLabelNameOp(id=8, name="other"),
        ),
    )

    out = substitute_label_ids(ops, {"l1": 42})

    assert out.create_notes[0].labels == [42, 7, "unknown"]
    assert out.edit_notes[0].labels == [42]
    assert out.edit_notes[1].labels is None
    assert [r.id for r in out.change_labels_name] == [42, 8]
    # Input untouched.
    assert ops.create_notes[0].labels == ["l1", 7, "unknown"]
    assert ops.change_labels_name[0].id == "l1"


def test_substitute_note_ids_only_touches_edits():
    ops = ClassifiedOperations(
        create_notes=(_note("n1"),),
        edit_notes=(EditNoteOp(id="n1", content="x"), EditNoteOp(id="gone", content="y")),
    )

    out = substitute_note_ids(ops, {"n1": 100})

    assert [e.id for e in out.edit_notes] == [100, "gone"]
    assert out.create_notes == ops.create_notes


def test_assign_note_orders():
    notes = [_note("a"), _note("b", order=50), _note("c")]

    assert assign_note_orders(notes, 1) == [1, 50, 2]
    assert assign_note_orders(notes, 8) == [8, 50, 9]
    assert assign_note_orders([], 3) == []
