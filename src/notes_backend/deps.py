from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from notes_backend.config import settings
from notes_backend.db import get_session
from notes_backend.models import User
from notes_backend.user_session import verify_user_session


async def get_current_user(
    request: Request,
    # Use a dedicated session for auth so services can own tx boundaries
    # on a separate request-scoped session.
    session: AsyncSession = Depends(get_session, use_cache=False),
) -> User:
    cookie_value = request.cookies.get(settings.session_cookie_name)
    if not cookie_value:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing session")

    session_payload = verify_user_session(cookie_value)
    if not session_payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid session")

    user = (
        await session.exec(select(User).where(User.id == int(session_payload["user_id"])))
    ).first()
    if user is None or user.id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid session")
    return user


async def get_current_user_id(user: User = Depends(get_current_user)) -> int:
    if user.id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="user missing id"
        )
    return int(user.id)
