"""
Exception handlers.

Domain exceptions carry their own ``status_code`` and ``code``; these
handlers only put them in the envelope. Unexpected exceptions become a
500 whose details are hidden unless the app runs in debug mode.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from modules.ratelimit.exceptions import RateLimitExceededError
from shared.config import get_settings
from shared.exceptions import SalesdeskError

from .models.envelope import error_envelope

logger = logging.getLogger(__name__)

_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    429: "RATE_LIMIT_EXCEEDED",
}


def error_response(exc: SalesdeskError) -> JSONResponse:
    """Envelope response for a domain exception."""
    headers = exc.headers if isinstance(exc, RateLimitExceededError) else None
    if exc.status_code >= 500:
        logger.warning(f"{exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.code, exc.message, exc.details),
        headers=headers,
    )


async def salesdesk_error_handler(request: Request, exc: SalesdeskError) -> JSONResponse:
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_envelope("VALIDATION_ERROR", "Validation failed", {"errors": errors}),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    if get_settings().debug:
        body = error_envelope("INTERNAL_ERROR", str(exc), {"type": type(exc).__name__})
    else:
        body = error_envelope("INTERNAL_ERROR", "An unexpected error occurred")
    return JSONResponse(status_code=500, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SalesdeskError, salesdesk_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
