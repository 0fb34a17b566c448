"""Exception handlers translating service errors into the response envelope."""

from __future__ import annotations

import logging
import traceback
from typing import Any, Callable, Coroutine

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from backend.errors import ReservationError

from .responses import fail

logger = logging.getLogger(__name__)

ExceptionHandler = Callable[[Request, Exception], Coroutine[Any, Any, Response]]


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(location),
            "message": error.get("msg", "Invalid value"),
        })
    return errors


async def reservation_error_handler(request: Request, exc: Exception) -> Response:
    error = exc if isinstance(exc, ReservationError) else ReservationError(str(exc))
    logger.debug("%s %s rejected: %s", request.method, request.url.path, error.message)
    return fail(error.status_code, error.message, data=error.data)


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    error = exc if isinstance(exc, RequestValidationError) else RequestValidationError([])
    return fail(status.HTTP_400_BAD_REQUEST, "Validation failed", errors=_field_errors(error))


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = getattr(exc, "detail", None) or "Request failed"
    return fail(status_code, str(detail))


async def general_500_exception_handler(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)

    settings = getattr(request.app.state, "settings", None)
    detail = None
    if settings is not None and settings.is_development:
        detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return fail(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", error=detail)


# Resolved along the exception MRO; anything outside ReservationError becomes a logged 500
EXCEPTION_HANDLERS: dict[type[Exception], ExceptionHandler] = {
    ReservationError: reservation_error_handler,
    RequestValidationError: validation_error_handler,
    StarletteHTTPException: http_exception_handler,
    Exception: general_500_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
