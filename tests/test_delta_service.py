from __future__ import annotations

from datetime import datetime, timezone

from notes_backend.models import Note, utc_now
from notes_backend.services.delta_service import missing_ids, serialize_note
from notes_backend.sync_utils import from_epoch_ms, to_epoch_ms


def test_missing_ids_keeps_client_order_and_reports_once():
    assert missing_ids([5, 3, 9, 3, 1], existing={1, 9}) == [5, 3]
    assert missing_ids([], existing={1}) == []


def test_epoch_ms_conversions_are_exact():
    dt = datetime(2024, 5, 1, 12, 30, 15, 123000, tzinfo=timezone.utc)
    ms = to_epoch_ms(dt)
    assert from_epoch_ms(ms) == dt
    # Naive values are read as UTC.
    assert to_epoch_ms(dt.replace(tzinfo=None)) == ms


def test_utc_now_has_millisecond_precision():
    assert utc_now().microsecond % 1000 == 0


def test_serialize_note_flattens_labels_and_annotates_offline_id():
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    note = Note(
        id=3, user_id=1, title=None, content="c", pinned=False, order=2, created_at=ts, updated_at=ts
    )

    out = serialize_note(note, label_ids=[4, 6], offline_id="tmp-3")

    assert out.model_dump(by_alias=True, exclude_none=True) == {
        "id": 3,
        "content": "c",
        "pinned": False,
        "order": 2,
        "userId": 1,
        "labels": [4, 6],
        "createdAt": to_epoch_ms(ts),
        "updatedAt": to_epoch_ms(ts),
        "offlineId": "tmp-3",
    }
