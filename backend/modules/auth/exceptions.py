"""
Authentication module exceptions.

These exceptions are raised by the auth module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from shared.exceptions import AuthenticationError, ValidationError


class InvalidTokenError(AuthenticationError):
    """Raised when a JWT token is invalid or malformed."""

    def __init__(self, message: str = "Invalid authentication token"):
        super().__init__(message, code="INVALID_TOKEN")


class ExpiredTokenError(AuthenticationError):
    """Raised when a JWT token has expired."""

    def __init__(self, message: str = "Authentication token has expired"):
        super().__init__(message, code="TOKEN_EXPIRED")


class MissingTokenError(AuthenticationError):
    """Raised when no authentication token is provided."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="MISSING_TOKEN")


class InvalidPhoneError(ValidationError):
    def __init__(self, phone: str):
        super().__init__(
            "Invalid Malaysian phone number format",
            code="INVALID_PHONE",
            details={"phone": phone},
        )


class OtpSendFailedError(ValidationError):
    """The identity provider refused to send a code."""

    def __init__(self, reason: str):
        super().__init__(reason or "Failed to send OTP", code="OTP_SEND_FAILED")


class VerificationFailedError(ValidationError):
    """Wrong or expired code."""

    def __init__(self, reason: str = "Invalid or expired OTP"):
        super().__init__(reason, code="VERIFICATION_FAILED")


class RefreshFailedError(AuthenticationError):
    def __init__(self, reason: str = "Invalid or expired refresh token"):
        super().__init__(reason, code="REFRESH_FAILED")
