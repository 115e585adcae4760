"""
Base exception classes for the Salesdesk backend.

Each module should define its own exceptions that inherit from these bases.
The API layer maps them onto the response envelope using ``status_code``
and ``code``, so raising the right class is all a handler needs to do.
"""

from typing import Optional, Any


class SalesdeskError(Exception):
    """
    Base exception for all Salesdesk errors.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to the error part of the response envelope."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            error["details"] = self.details
        return error


class ValidationError(SalesdeskError):
    """Input validation failed."""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationError(SalesdeskError):
    """Authentication failed (invalid or missing credentials)."""

    status_code = 401
    default_code = "UNAUTHORIZED"


class AuthorizationError(SalesdeskError):
    """Authorization failed (insufficient permissions)."""

    status_code = 403
    default_code = "FORBIDDEN"


class NotFoundError(SalesdeskError):
    """Resource not found."""

    status_code = 404
    default_code = "NOT_FOUND"


class DuplicateError(SalesdeskError):
    """Resource already exists. Non-fatal, the caller may proceed differently."""

    status_code = 409
    default_code = "DUPLICATE"


class PayloadTooLargeError(SalesdeskError):
    """Uploaded payload exceeds the allowed size."""

    status_code = 413
    default_code = "PAYLOAD_TOO_LARGE"

    def __init__(self, max_bytes: int, actual_bytes: Optional[int] = None):
        details: dict[str, Any] = {"max_bytes": max_bytes}
        if actual_bytes is not None:
            details["actual_bytes"] = actual_bytes
        super().__init__(
            f"Payload too large. Maximum size is {max_bytes // (1024 * 1024)}MB",
            details=details,
        )


class ExternalServiceError(SalesdeskError):
    """Error communicating with an external service."""

    status_code = 502
    default_code = "UPSTREAM_ERROR"

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service


class AllStrategiesFailedError(ExternalServiceError):
    """Every strategy of a fallback chain failed."""

    def __init__(self, service: str, errors: list[tuple[str, BaseException]]):
        self.errors = errors
        attempted = ", ".join(f"{name}: {error}" for name, error in errors)
        super().__init__(
            f"All {service} strategies failed ({attempted})",
            service=service,
            details={"attempted": [name for name, _ in errors]},
        )
