"""Unified exception handling.

Every error leaves the API as `ErrorResponse`: {error, message, request_id, details}.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import cast

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from notes_backend.schemas import ErrorResponse

logger = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "Invalid JSON."


def _map_http_status_to_error(status_code: int) -> str:
    mapping: dict[int, str] = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        413: "payload_too_large",
    }
    return mapping.get(status_code, f"http_{status_code}")


def _format_loc(loc: Sequence[object]) -> str:
    parts = [str(p) for p in loc]
    # FastAPI prefixes body errors with the parameter source.
    if parts and parts[0] == "body":
        parts = parts[1:]
    return ".".join(parts)


def validation_message(errors: Sequence[Mapping[str, object]]) -> str:
    """Human readable summary of the first validation error."""

    if not errors:
        return "Request validation error"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return INVALID_JSON_MESSAGE

    msg = str(first.get("msg") or "invalid value")
    loc = _format_loc(cast(Sequence[object], first.get("loc") or ()))
    return f"{loc}: {msg}" if loc else msg


async def _http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)

    details: object | None = None
    message = str(http_exc.detail)
    if isinstance(http_exc.detail, dict):
        # Convention: {'message': str, 'details': object}
        msg = http_exc.detail.get("message")
        if isinstance(msg, str):
            message = msg
            details = http_exc.detail.get("details")
        else:
            details = http_exc.detail
    elif isinstance(http_exc.detail, list):
        details = http_exc.detail

    payload = ErrorResponse(
        error=_map_http_status_to_error(http_exc.status_code),
        message=message,
        request_id=getattr(request.state, "request_id", None),
        details=details,
    )
    headers = getattr(http_exc, "headers", None)
    return JSONResponse(
        status_code=http_exc.status_code,
        content=jsonable_encoder(payload, exclude_none=True),
        headers=headers,
    )


async def _validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    validation_exc = cast(RequestValidationError, exc)
    errors = list(validation_exc.errors())
    payload = ErrorResponse(
        error="validation_error",
        message=validation_message(errors),
        request_id=getattr(request.state, "request_id", None),
        details=errors,
    )
    return JSONResponse(status_code=400, content=jsonable_encoder(payload, exclude_none=True))


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        "unhandled exception request_id=%s method=%s path=%s",
        request_id,
        request.method,
        request.url.path,
        exc_info=exc,
    )
    payload = ErrorResponse(
        error="internal_error",
        message="An unexpected error has occurred.",
        request_id=request_id,
    )
    return JSONResponse(status_code=500, content=jsonable_encoder(payload, exclude_none=True))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
