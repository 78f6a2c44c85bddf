from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from notes_backend.db import get_session
from notes_backend.deps import get_current_user_id
from notes_backend.schemas import ErrorResponse
from notes_backend.schemas_changes import ChangesRequest, ChangesResponse
from notes_backend.services import changes_service

router = APIRouter(tags=["changes"])


@router.post(
    "/changes",
    response_model=ChangesResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed batch"},
        401: {"model": ErrorResponse, "description": "Missing or invalid session"},
    },
)
async def post_changes(
    payload: ChangesRequest,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Apply a batch of offline operations and return everything changed since `lastSyncedAt`."""

    return await changes_service.apply_changes(session=session, user_id=user_id, req=payload)
