"""
Response envelope.

Every JSON response has the same shape:
``{"success": bool, "data": ..., "error": {"code", "message", "details?"} | null}``.
"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class Envelope(BaseModel):
    """Documented response shape; handlers build it with ``envelope()``."""

    success: bool
    data: Any = None
    error: Optional[ErrorBody] = None


def envelope(data: Any = None) -> dict[str, Any]:
    """Successful response body, JSON ready."""
    return {"success": True, "data": jsonable_encoder(data), "error": None}


def error_envelope(
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Failed response body, JSON ready."""
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = jsonable_encoder(details)
    return {"success": False, "data": None, "error": error}
