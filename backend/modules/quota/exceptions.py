"""
Quota module exceptions.
"""

from typing import Optional

from shared.exceptions import AuthorizationError, ExternalServiceError


class QuotaExceededError(AuthorizationError):
    """
    Raised when a write would push a tenant past its plan ceiling.

    The UI should handle this by offering an upgrade.
    """

    default_code = "QUOTA_EXCEEDED"

    def __init__(
        self,
        current: int,
        limit: int,
        requested: int = 1,
        plan: Optional[str] = None,
        code: Optional[str] = None,
    ):
        remaining = max(0, limit - current)
        if remaining == 0:
            message = (
                f"Contact limit reached ({current}/{limit}). "
                "Upgrade your plan to add more contacts."
            )
        else:
            message = (
                f"Cannot add {requested} contacts. "
                f"Only {remaining} remaining on your plan ({current}/{limit})."
            )
        super().__init__(
            message,
            code=code,
            details={
                "current": current,
                "max": limit,
                "remaining": remaining,
                "requested": requested,
            },
        )
        if plan:
            self.details["plan"] = plan


class QuotaUnavailableError(ExternalServiceError):
    """
    Raised when the quota store cannot be reached in time.

    Quota fails closed: the write is blocked rather than risk under-counting.
    """

    status_code = 503
    default_code = "QUOTA_UNAVAILABLE"

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Contact quota is temporarily unavailable ({operation}): {reason}",
            service="quota-store",
        )
        self.details["operation"] = operation


class TenantProfileNotFoundError(AuthorizationError):
    """Raised when a tenant has no profile row to count against."""

    def __init__(self, tenant_id: str):
        super().__init__(
            "User profile not found",
            code="NO_PROFILE",
            details={"tenant_id": tenant_id},
        )
