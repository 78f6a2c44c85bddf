from __future__ import annotations

from pydantic import BaseModel, Field

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class SignupRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254, pattern=_EMAIL_PATTERN)
    password: str = Field(min_length=6, max_length=72)


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=1, max_length=72)


class MeResponse(BaseModel):
    id: int
    email: str


class OkResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    """Error body shared by every endpoint."""

    error: str
    message: str
    request_id: str | None = None
    details: object | None = None
