from __future__ import annotations

from fastapi import APIRouter, Depends

from notes_backend.deps import get_current_user
from notes_backend.models import User
from notes_backend.schemas import MeResponse

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=MeResponse)
async def get_me(user: User = Depends(get_current_user)):
    return MeResponse(id=int(user.id or 0), email=user.email)
