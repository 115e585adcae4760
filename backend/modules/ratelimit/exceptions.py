"""
Rate limiter exceptions.
"""

import math
from typing import Optional

from shared.exceptions import SalesdeskError

from .models import RateLimitDecision


class RateLimitExceededError(SalesdeskError):
    """Raised when a request is over its route class window."""

    status_code = 429
    default_code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        decision: RateLimitDecision,
        message: str,
        plan: Optional[str] = None,
    ):
        if plan in ("free", "trial"):
            message = f"{message} Upgrade for higher limits."
        super().__init__(
            message,
            details={
                "route_class": decision.route_class.value,
                "limit": decision.limit,
                "retry_after_seconds": self.retry_after_seconds(decision),
            },
        )
        self.decision = decision

    @staticmethod
    def retry_after_seconds(decision: RateLimitDecision) -> int:
        return max(1, math.ceil(decision.reset_after_ms / 1000))

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Retry-After": str(self.retry_after_seconds(self.decision)),
            "X-RateLimit-Limit": str(self.decision.limit),
            "X-RateLimit-Remaining": "0",
        }
