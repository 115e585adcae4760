"""
Rate limiter data models.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class RouteClass(str, Enum):
    """Route classes with independent windows and ceilings."""

    GLOBAL = "global"
    AUTH_SEND = "auth_send"
    OTP_VERIFY = "otp_verify"
    CHAT = "chat"
    UPLOAD = "upload"
    CONTACT_CREATE = "contact_create"
    SEARCH = "search"
    PAYMENT = "payment"
    EXPORT = "export"


@dataclass(frozen=True)
class RequestIdentity:
    """Everything a key function may derive a limiter key from."""

    address: str
    tenant_id: Optional[str] = None
    claimed_identity: Optional[str] = None


KeyFn = Callable[[RequestIdentity], str]


@dataclass(frozen=True)
class LimiterConfig:
    """
    Window and ceiling for one route class.

    ``plan_scaled`` classes multiply ``max`` by the tenant's plan multiplier
    at admission time.
    """

    window_ms: int
    max: int
    key_fn: KeyFn
    message: str
    plan_scaled: bool = True


@dataclass(frozen=True)
class WindowHit:
    """Raw answer from a window store."""

    admitted: bool
    count: int  # tokens in the window before this call
    oldest_ms: Optional[int] = None


@dataclass(frozen=True)
class RateLimitDecision:
    """Admission outcome returned to the caller."""

    route_class: RouteClass
    allowed: bool
    remaining: int
    limit: int
    reset_after_ms: int = 0
    degraded: bool = False  # store unavailable, admitted without counting
