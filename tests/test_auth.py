from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from notes_backend.config import settings
from notes_backend.db import init_db, reset_engine_cache
from notes_backend.main import app
from notes_backend.user_session import make_user_session, verify_user_session


def _make_async_client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


def test_user_session_roundtrip_and_tamper_detection():
    cookie = make_user_session(user_id=7, now_ts=1_000)
    assert verify_user_session(cookie, now_ts=1_000) == {
        "user_id": 7,
        "exp": 1_000 + settings.session_max_age_seconds,
    }

    v, exp, user_id, nonce, sig = cookie.split(".")
    assert verify_user_session(f"{v}.{exp}.8.{nonce}.{sig}", now_ts=1_000) is None
    assert verify_user_session(cookie, now_ts=1_000 + settings.session_max_age_seconds + 1) is None
    assert verify_user_session("garbage", now_ts=1_000) is None
    assert verify_user_session(None) is None


@pytest.mark.anyio
async def test_signup_login_me_logout(tmp_path: Path) -> None:
    old_db = settings.database_url
    try:
        settings.database_url = f"sqlite:///{tmp_path / 'test-auth.db'}"
        reset_engine_cache()
        await init_db()

        async with _make_async_client() as client:
            r = await client.post(
                "/auth/signup", json={"email": "Alice@Example.com", "password": "pass1234"}
            )
            assert r.status_code == 200, r.text
            assert r.json()["email"] == "alice@example.com"
            user_id = r.json()["id"]
            set_cookie = r.headers.get("set-cookie") or ""
            assert f"{settings.session_cookie_name}=" in set_cookie
            assert "httponly" in set_cookie.lower()

            r = await client.post(
                "/auth/signup", json={"email": "alice@example.com", "password": "other123"}
            )
            assert r.status_code == 409
            assert r.json()["error"] == "conflict"

            r = await client.post(
                "/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"}
            )
            assert r.status_code == 401
            assert r.json()["message"] == "invalid credentials"

            r = await client.post(
                "/auth/login", json={"email": "alice@example.com", "password": "pass1234"}
            )
            assert r.status_code == 200
            cookie_value = r.cookies.get(settings.session_cookie_name)
            assert cookie_value
            assert verify_user_session(cookie_value) is not None

            client.cookies.clear()
            client.cookies.set(settings.session_cookie_name, cookie_value)
            r = await client.get("/me")
            assert r.status_code == 200
            assert r.json() == {"id": user_id, "email": "alice@example.com"}

            r = await client.post("/auth/logout")
            assert r.status_code == 200
            assert r.json() == {"ok": True}
            assert f"{settings.session_cookie_name}=" in (r.headers.get("set-cookie") or "")
    finally:
        settings.database_url = old_db


@pytest.mark.anyio
async def test_session_for_unknown_user_is_rejected(tmp_path: Path) -> None:
    old_db = settings.database_url
    try:
        settings.database_url = f"sqlite:///{tmp_path / 'test-auth-unknown.db'}"
        reset_engine_cache()
        await init_db()

        async with _make_async_client() as client:
            client.cookies.set(settings.session_cookie_name, make_user_session(user_id=404))
            r = await client.get("/me")
        assert r.status_code == 401
        assert r.json()["message"] == "invalid session"
    finally:
        settings.database_url = old_db


@pytest.mark.anyio
async def test_signup_validates_payload(tmp_path: Path) -> None:
    old_db = settings.database_url
    try:
        settings.database_url = f"sqlite:///{tmp_path / 'test-auth-validation.db'}"
        reset_engine_cache()
        await init_db()

        async with _make_async_client() as client:
            r = await client.post("/auth/signup", json={"email": "not-an-email", "password": "x"})
        assert r.status_code == 400
        assert r.json()["message"].startswith("email")
    finally:
        settings.database_url = old_db


@pytest.mark.anyio
async def test_health_echoes_request_id() -> None:
    async with _make_async_client() as client:
        r = await client.get("/health", headers={"X-Request-Id": "req-123"})
    assert r.status_code == 200
    assert r.json() == {"ok": True}
    assert r.headers["x-request-id"] == "req-123"


@pytest.mark.anyio
async def test_unknown_path_returns_error_response() -> None:
    async with _make_async_client() as client:
        r = await client.get("/nope")
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"
    assert r.json()["request_id"]
