from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import time

from fastapi import Request
from starlette.responses import Response

from notes_backend.config import settings


_USER_SESSION_VERSION = "v1"


def _hmac_sha256(secret: str, message: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    # URL-safe and slightly shorter.
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def make_user_session(user_id: int, now_ts: int | None = None) -> str:
    """Create a signed session cookie value.

    Cookie format (dot-separated):
      version.exp.user_id.nonce.sig
    """

    now = int(now_ts if now_ts is not None else time.time())
    exp = now + int(settings.session_max_age_seconds)
    nonce = secrets.token_urlsafe(16)
    payload = f"{_USER_SESSION_VERSION}.{exp}.{int(user_id)}.{nonce}"
    sig = _hmac_sha256(settings.session_secret, payload)
    return f"{payload}.{sig}"


def verify_user_session(cookie_value: str | None, now_ts: int | None = None) -> dict | None:
    """Verify and parse a session cookie value.

    Returns None if missing, malformed, tampered or expired.
    Returns {"user_id": int, "exp": int} otherwise.
    """

    if not cookie_value:
        return None

    parts = cookie_value.split(".")
    if len(parts) != 5:
        return None

    v, exp_s, user_id_s, nonce, sig = parts
    if v != _USER_SESSION_VERSION:
        return None
    if not exp_s.isdigit() or not user_id_s.isdigit() or not nonce:
        return None

    exp = int(exp_s)
    now = int(now_ts if now_ts is not None else time.time())
    if exp < now:
        return None

    payload = f"{v}.{exp_s}.{user_id_s}.{nonce}"
    expected = _hmac_sha256(settings.session_secret, payload)
    if not secrets.compare_digest(sig, expected):
        return None

    return {"user_id": int(user_id_s), "exp": exp}


def _is_secure_request(request: Request) -> bool:
    return request.url.scheme == "https"


def set_user_session_cookie(resp: Response, request: Request, user_id: int) -> None:
    resp.set_cookie(
        key=settings.session_cookie_name,
        value=make_user_session(user_id=user_id),
        max_age=int(settings.session_max_age_seconds),
        httponly=True,
        samesite="lax",
        secure=_is_secure_request(request),
        path="/",
    )


def clear_user_session_cookie(resp: Response) -> None:
    resp.delete_cookie(key=settings.session_cookie_name, path="/")
