"""Response envelope shared by every endpoint."""

from __future__ import annotations

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(data: Any = None, message: str = "Request successful") -> dict:
    """Successful envelope: ``{"success": true, "message", "data"?}``."""

    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    return body


def fail(
    status_code: int,
    message: str,
    data: Any = None,
    errors: Optional[list] = None,
    error: Optional[str] = None,
) -> JSONResponse:
    """Failure envelope with the given HTTP status."""

    body: dict[str, Any] = {"success": False, "message": message}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    if errors is not None:
        body["errors"] = errors
    if error is not None:
        body["error"] = error
    return JSONResponse(status_code=status_code, content=body)
