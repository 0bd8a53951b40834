"""Error envelope for FileVault API responses.

Every non-2xx JSON response has the same shape, see ErrorEnvelope. Codes
for storage errors come from ``filevault.api.errors.STORAGE_ERROR_MAP``;
plain HTTP errors get a code derived from the status phrase
(404 -> "NOT_FOUND", 405 -> "METHOD_NOT_ALLOWED").
"""

from __future__ import annotations

import uuid
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from filevault.api.middleware.request_id import REQUEST_ID_HEADER


class ErrorEnvelope(BaseModel):
    """Body of every FileVault error response."""

    code: str
    message: str
    details: dict[str, Any] | None = None
    request_id: str


def request_id_for(request: Request) -> str:
    """Return the request id set by RequestIdMiddleware.

    Falls back to the incoming header, then to a fresh uuid4, for errors
    raised outside the middleware.
    """
    request_id: str | None = getattr(request.state, "request_id", None)
    if request_id is not None:
        return str(request_id)
    return request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())


def code_for_status(status_code: int) -> str:
    """Derive an error code from an HTTP status ("ERROR" if unknown)."""
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        return "ERROR"
    return phrase.upper().replace(" ", "_").replace("-", "_")


def make_error_response(
    request: Request,
    *,
    code: str,
    message: str,
    http_status: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    envelope = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        request_id=request_id_for(request),
    )
    return JSONResponse(
        status_code=http_status,
        content=envelope.model_dump(),
        headers={REQUEST_ID_HEADER: envelope.request_id},
    )
