from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from notes_backend.db import get_session
from notes_backend.models import User
from notes_backend.schemas import LoginRequest, MeResponse, OkResponse, SignupRequest
from notes_backend.security import hash_password, verify_password
import notes_backend.user_session

router = APIRouter(prefix="/auth", tags=["auth"])


def _normalize_email(email: str) -> str:
    return email.strip().lower()


@router.post("/signup", response_model=MeResponse)
async def signup(
    payload: SignupRequest,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    email = _normalize_email(payload.email)
    existing = (await session.exec(select(User).where(User.email == email))).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email already registered")

    user = User(email=email, password_hash="")
    try:
        user.password_hash = hash_password(payload.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    try:
        session.add(user)
        await session.commit()
        await session.refresh(user)
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email already registered")

    user_id = user.id
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="user id missing after signup",
        )

    notes_backend.user_session.set_user_session_cookie(response, request, int(user_id))
    return MeResponse(id=int(user_id), email=user.email)


@router.post("/login", response_model=MeResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    email = _normalize_email(payload.email)
    user = (await session.exec(select(User).where(User.email == email))).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid credentials")
    if user.id is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="user id missing")

    notes_backend.user_session.set_user_session_cookie(response, request, int(user.id))
    return MeResponse(id=int(user.id), email=user.email)


@router.post("/logout", response_model=OkResponse)
async def logout(response: Response):
    notes_backend.user_session.clear_user_session_cookie(response)
    return OkResponse()
