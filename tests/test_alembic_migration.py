from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from alembic import command
from alembic.config import Config

from notes_backend.config import settings
from notes_backend.db import reset_engine_cache
from notes_backend.main import app


def _alembic_upgrade_head() -> None:
    cfg = Config("alembic.ini")
    command.upgrade(cfg, "head")


def _make_async_client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


@pytest.mark.anyio
async def test_migrated_schema_serves_a_sync_round(tmp_path: Path) -> None:
    old_db = settings.database_url
    try:
        settings.database_url = f"sqlite:///{tmp_path / 'test-migrations.db'}"
        reset_engine_cache()
        _alembic_upgrade_head()

        async with _make_async_client() as client:
            r = await client.post(
                "/auth/signup", json={"email": "migrated@example.com", "password": "pass1234"}
            )
            assert r.status_code == 200, r.text
            cookie_value = r.cookies.get(settings.session_cookie_name)
            assert cookie_value
            client.cookies.set(settings.session_cookie_name, cookie_value)

            body = {
                "operations": [
                    {"operation": "CREATE_LABELS", "labels": [{"offlineId": "l1", "name": "a"}]},
                    {"operation": "CREATE_LABELS", "labels": [{"offlineId": "l2", "name": "a"}]},
                    {
                        "operation": "CREATE_NOTES",
                        "notes": [
                            {"offlineId": "n1", "content": "x", "pinned": True, "labels": ["l2"]}
                        ],
                    },
                ],
                "lastSyncedAt": 0,
                "currentData": {"labels": [], "notes": []},
            }
            r = await client.post("/changes", json=body)
            assert r.status_code == 200, r.text

        data = r.json()["data"]
        assert [label["offlineId"] for label in data["labels"]] == ["l2"]
        assert data["notes"][0]["labels"] == [data["labels"][0]["id"]]
    finally:
        settings.database_url = old_db
