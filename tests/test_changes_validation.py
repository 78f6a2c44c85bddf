from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from sqlmodel import select

from notes_backend.config import settings
from notes_backend.db import init_db, reset_engine_cache, session_scope
from notes_backend.main import app
from notes_backend.models import Label, User
from notes_backend.security import hash_password
from notes_backend.user_session import make_user_session


async def _client_with_user(tmp_path: Path, name: str) -> tuple[httpx.AsyncClient, int]:
    settings.database_url = f"sqlite:///{tmp_path / name}"
    reset_engine_cache()
    await init_db()

    async with session_scope() as session:
        user = User(email="validator@example.com", password_hash=hash_password("pass1234"))
        session.add(user)
        await session.commit()
        await session.refresh(user)
    assert user.id is not None

    transport = httpx.ASGITransport(app=app)
    client = httpx.AsyncClient(transport=transport, base_url="http://test")
    client.cookies.set(settings.session_cookie_name, make_user_session(user_id=int(user.id)))
    return client, int(user.id)


def _batch(*operations: dict) -> dict:
    return {
        "operations": list(operations),
        "lastSyncedAt": 0,
        "currentData": {"labels": [], "notes": []},
    }


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("body", "message_prefix"),
    [
        pytest.param(_batch({"operation": "ARCHIVE_NOTE", "id": 1}), "operations.0", id="unknown-tag"),
        pytest.param(_batch({"id": 1}), "operations.0", id="missing-tag"),
        pytest.param(
            _batch(
                {"operation": "DELETE_NOTES", "ids": []},
                {"operation": "CREATE_NOTES", "notes": [{"offlineId": "n1", "pinned": False}]},
            ),
            "operations.1.CREATE_NOTES.notes.0.content",
            id="missing-field",
        ),
        pytest.param(
            _batch({"operation": "DELETE_LABELS", "ids": ["tmp-1"]}),
            "operations.0.DELETE_LABELS.ids.0",
            id="offline-id-where-database-id-required",
        ),
        pytest.param(
            _batch({"operation": "CHANGE_LABEL_NAME", "id": 1, "name": 5}),
            "operations.0.CHANGE_LABEL_NAME.name",
            id="wrong-type",
        ),
        pytest.param(_batch(), "operations", id="empty-batch"),
        pytest.param(
            {"operations": [{"operation": "DELETE_NOTES", "ids": []}], "lastSyncedAt": 0},
            "currentData",
            id="missing-current-data",
        ),
        pytest.param(
            {
                "operations": [{"operation": "DELETE_NOTES", "ids": []}],
                "lastSyncedAt": -1,
                "currentData": {"labels": [], "notes": []},
            },
            "lastSyncedAt",
            id="negative-watermark",
        ),
        pytest.param(
            {
                "operations": [{"operation": "DELETE_NOTES", "ids": []}],
                "lastSyncedAt": 10**15,
                "currentData": {"labels": [], "notes": []},
            },
            "lastSyncedAt",
            id="watermark-past-year-9999",
        ),
        pytest.param(
            {
                "operations": [{"operation": "DELETE_NOTES", "ids": []}],
                "lastSyncedAt": 0,
                "currentData": {"labels": [], "notes": [2**70]},
            },
            "currentData.notes.0",
            id="current-id-beyond-64-bits",
        ),
        pytest.param(
            _batch({"operation": "DELETE_LABELS", "ids": [2**63]}),
            "operations.0.DELETE_LABELS.ids.0",
            id="delete-id-beyond-64-bits",
        ),
    ],
)
async def test_malformed_batches_are_rejected_with_400(
    tmp_path: Path, body: dict, message_prefix: str
) -> None:
    old_db = settings.database_url
    try:
        client, _user_id = await _client_with_user(tmp_path, "test-validation.db")
        async with client:
            r = await client.post("/changes", json=body)

        assert r.status_code == 400
        payload = r.json()
        assert payload["error"] == "validation_error"
        assert payload["message"].startswith(message_prefix)
        assert isinstance(payload["details"], list) and payload["details"]
        assert r.headers.get("x-request-id")
    finally:
        settings.database_url = old_db


@pytest.mark.anyio
async def test_invalid_json_is_rejected(tmp_path: Path) -> None:
    old_db = settings.database_url
    try:
        client, _user_id = await _client_with_user(tmp_path, "test-invalid-json.db")
        async with client:
            r = await client.post(
                "/changes",
                content=b'{"operations": [',
                headers={"content-type": "application/json"},
            )

        assert r.status_code == 400
        assert r.json()["message"] == "Invalid JSON."
    finally:
        settings.database_url = old_db


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("bad_operation", "overrides"),
    [
        pytest.param({"operation": "EDIT_NOTE"}, {}, id="bad-element"),
        pytest.param(None, {"lastSyncedAt": 10**15}, id="out-of-range-watermark"),
        pytest.param(
            None, {"currentData": {"labels": [], "notes": [2**70]}}, id="out-of-range-current-id"
        ),
    ],
)
async def test_rejected_batches_mutate_nothing(
    tmp_path: Path, bad_operation: dict | None, overrides: dict
) -> None:
    old_db = settings.database_url
    try:
        client, user_id = await _client_with_user(tmp_path, "test-all-or-nothing.db")
        operations = [{"operation": "CREATE_LABELS", "labels": [{"offlineId": "l1", "name": "ok"}]}]
        if bad_operation is not None:
            operations.append(bad_operation)
        body = {**_batch(*operations), **overrides}
        async with client:
            r = await client.post("/changes", json=body)
        assert r.status_code == 400

        async with session_scope() as session:
            labels = list((await session.exec(select(Label).where(Label.owner_id == user_id))).all())
        assert labels == []
    finally:
        settings.database_url = old_db


@pytest.mark.anyio
async def test_unknown_keys_are_ignored(tmp_path: Path) -> None:
    old_db = settings.database_url
    try:
        client, _user_id = await _client_with_user(tmp_path, "test-extra-keys.db")
        body = _batch(
            {
                "operation": "CREATE_LABELS",
                "labels": [{"offlineId": "l1", "name": "ok", "color": "red"}],
                "clientVersion": 3,
            }
        )
        body["deviceId"] = "d1"
        async with client:
            r = await client.post("/changes", json=body)

        assert r.status_code == 200, r.text
        assert [label["name"] for label in r.json()["data"]["labels"]] == ["ok"]
    finally:
        settings.database_url = old_db
